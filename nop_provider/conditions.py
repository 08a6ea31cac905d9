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
from typing import Iterable, List, Optional, Sequence

from nop_provider.models.nop_resource import NopResource, ResourceConditionAfter
from nop_provider.models.status import Condition, ReasonEnum, deleting

logger = logging.getLogger(__name__)


class ConditionApplier:
    """Writes the outcome of a schedule evaluation into a resource's status.

    This is the only place the observed state of a NopResource is mutated.
    Re-applying the same selection only moves lastTransitionTime forward.
    """

    def __init__(self, _logger: Optional[logging.Logger] = None) -> None:
        self.logger = _logger if _logger else logger

    def to_condition(self, rule: ResourceConditionAfter, now: datetime) -> Condition:
        return Condition(type=rule.conditionType, status=rule.conditionStatus, reason=ReasonEnum.Available.value, lastTransitionTime=now)

    def apply(self, resource: NopResource, selected: Iterable[int], rules: Sequence[ResourceConditionAfter], now: datetime) -> List[Condition]:
        name = resource.metadata.name
        records = []
        for i in sorted(selected):
            record = self.to_condition(rules[i], now)
            current = resource.status.get_condition(record.type)
            if current is None or not current.equal(record):
                self.logger.info(f"Condition '{record.type}' of {name} is now {record.status.value} (rule {i}).")
            records.append(record)
        return resource.status.set_conditions(*records)

    def apply_deleting(self, resource: NopResource, now: datetime) -> List[Condition]:
        self.logger.info(f"Set Deleting condition for {resource.metadata.name}.")
        return resource.status.set_conditions(deleting(now))
