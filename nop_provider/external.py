# Copyright contributors to the nop-provider project. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from nop_provider.conditions import ConditionApplier
from nop_provider.models.nop_resource import NopResource
from nop_provider.models.status import get_timestamp
from nop_provider.schedule import ConditionScheduleEvaluator

logger = logging.getLogger(__name__)

ERR_NOT_NOP_RESOURCE = "managed resource is not a NopResource custom resource"

Clock = Callable[[], datetime]


class NotNopResourceError(TypeError):

    def __init__(self, obj: Any):
        self.obj_type = type(obj).__name__
        super().__init__(f"{ERR_NOT_NOP_RESOURCE} (got {self.obj_type})")


class ExternalObservation(BaseModel):
    resource_exists: bool = Field(..., description="False tells the reconciler to create the resource, or that its deletion is complete.")
    resource_up_to_date: bool = Field(False, description="False tells the reconciler to update the resource.")
    connection_details: Dict[str, bytes] = Field(default_factory=dict)
    selected: List[int] = Field(default_factory=list, description="Indices of the rules applied by this observation.")


class ExternalCreation(BaseModel):
    connection_details: Dict[str, bytes] = Field(default_factory=dict)


class ExternalUpdate(BaseModel):
    connection_details: Dict[str, bytes] = Field(default_factory=dict)


def as_nop_resource(mg: Any) -> NopResource:
    if not isinstance(mg, NopResource):
        raise NotNopResourceError(mg)
    return mg


class NopExternal:
    """Simulated external resource whose state depends only on its age.

    observe() runs the condition schedule on every call; create, update and
    delete talk to nothing and only log.
    """

    def __init__(
        self,
        evaluator: Optional[ConditionScheduleEvaluator] = None,
        applier: Optional[ConditionApplier] = None,
        clock: Clock = get_timestamp,
        _logger: Optional[logging.Logger] = None,
    ) -> None:
        self.logger = _logger if _logger else logger
        self.evaluator = evaluator if evaluator else ConditionScheduleEvaluator(_logger=_logger)
        self.applier = applier if applier else ConditionApplier(_logger=_logger)
        self.clock = clock

    def observe(self, mg: Any, now: Optional[datetime] = None) -> ExternalObservation:
        cr = as_nop_resource(mg)

        # report a deleted resource as gone so the reconciler can finalize it
        if cr.was_deleted():
            return ExternalObservation(resource_exists=False)

        now = now if now else self.clock()
        rules = cr.rules
        selected = self.evaluator.evaluate_at(rules, cr.metadata.creationTimestamp, now)
        if selected:
            self.applier.apply(cr, selected, rules, now)
        self.logger.debug(f"Observed {cr.metadata.name} at age {now - cr.metadata.creationTimestamp}: selected rules {sorted(selected)}")

        return ExternalObservation(resource_exists=True, resource_up_to_date=True, selected=sorted(selected))

    def create(self, mg: Any) -> ExternalCreation:
        cr = as_nop_resource(mg)
        self.logger.info(f"Creating: {cr.metadata.name}")
        return ExternalCreation()

    def update(self, mg: Any) -> ExternalUpdate:
        cr = as_nop_resource(mg)
        self.logger.info(f"Updating: {cr.metadata.name}")
        return ExternalUpdate()

    def delete(self, mg: Any, now: Optional[datetime] = None) -> None:
        cr = as_nop_resource(mg)
        self.logger.info(f"Deleting: {cr.metadata.name}")
        self.applier.apply_deleting(cr, now if now else self.clock())


class Connector:
    """Hands out an external client for a NopResource.

    A real provider would resolve a ProviderConfig and credentials here.
    """

    def __init__(self, clock: Clock = get_timestamp, _logger: Optional[logging.Logger] = None) -> None:
        self.clock = clock
        self.logger = _logger

    def connect(self, mg: Any) -> NopExternal:
        as_nop_resource(mg)
        return NopExternal(clock=self.clock, _logger=self.logger)
