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
from datetime import timedelta
from typing import List, Optional

import pandas as pd
from pandas import DataFrame
from pydantic import BaseModel, Field

from nop_provider.conditions import ConditionApplier
from nop_provider.models.nop_resource import NopResource
from nop_provider.models.status import Condition
from nop_provider.schedule import ConditionScheduleEvaluator

logger = logging.getLogger(__name__)


class TimelineEntry(BaseModel):
    elapsed: timedelta = Field(..., description="Age of the resource at this step.")
    selected: List[int] = Field(..., description="Indices of the governing rules at this age.")
    conditions: List[Condition] = Field(..., description="Conditions of the resource after applying the governing rules.")

    class Column:
        elapsed = "elapsed"
        type = "type"
        status = "status"
        reason = "reason"

    @classmethod
    def to_dataframe(cls, entries: List["TimelineEntry"]) -> DataFrame:
        rows = [
            {
                cls.Column.elapsed: entry.elapsed,
                cls.Column.type: condition.type,
                cls.Column.status: condition.status.value,
                cls.Column.reason: condition.reason,
            }
            for entry in entries
            for condition in entry.conditions
        ]
        if len(rows) > 0:
            return DataFrame(rows)
        return DataFrame(
            {
                cls.Column.elapsed: pd.Series(dtype="timedelta64[ns]"),
                cls.Column.type: pd.Series(dtype="str"),
                cls.Column.status: pd.Series(dtype="str"),
                cls.Column.reason: pd.Series(dtype="str"),
            }
        )


def build_timeline(
    resource: NopResource,
    until: timedelta,
    step: timedelta,
    evaluator: Optional[ConditionScheduleEvaluator] = None,
    applier: Optional[ConditionApplier] = None,
) -> List[TimelineEntry]:
    """Replay the condition schedule of ``resource`` at ages 0, step, 2*step, ... <= until.

    The resource itself is left untouched; a deep copy accumulates the conditions.
    """
    if step <= timedelta(0):
        raise ValueError(f"step must be positive, got {step}")
    evaluator = evaluator if evaluator else ConditionScheduleEvaluator()
    applier = applier if applier else ConditionApplier(_logger=logger)

    cr = resource.model_copy(deep=True)
    created = cr.metadata.creationTimestamp
    rules = cr.rules
    entries = []
    elapsed = timedelta(0)
    while elapsed <= until:
        selected = evaluator.evaluate(rules, elapsed)
        applier.apply(cr, selected, rules, created + elapsed)
        entries.append(TimelineEntry(elapsed=elapsed, selected=sorted(selected), conditions=[x.model_copy() for x in cr.status.conditions]))
        elapsed += step
    return entries
