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

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ConditionStatusEnum(str, Enum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ReasonEnum(str, Enum):
    Available = "Available"
    Deleting = "Deleting"


TYPE_READY = "Ready"


def get_timestamp() -> datetime:
    return datetime.now(timezone.utc)


class Condition(BaseModel):
    type: str = Field(..., description="The type of condition (e.g., 'Ready', 'Synced').")
    status: ConditionStatusEnum = Field(..., description='The status of the condition: "True", "False", or "Unknown".')
    lastTransitionTime: datetime = Field(
        default_factory=get_timestamp, description="The last time the condition transitioned from one status to another."
    )
    reason: Optional[str] = Field(default=None, description="A brief machine-readable explanation for the condition's status.")
    message: Optional[str] = Field(default=None, description="A human-readable message indicating details about the condition.")

    def equal(self, other: "Condition") -> bool:
        """Compare everything except lastTransitionTime."""
        return self.type == other.type and self.status == other.status and self.reason == other.reason and self.message == other.message


def deleting(now: Optional[datetime] = None) -> Condition:
    return Condition(type=TYPE_READY, status=ConditionStatusEnum.FALSE, reason=ReasonEnum.Deleting.value, lastTransitionTime=now or get_timestamp())


class ResourceStatus(BaseModel):
    conditions: List[Condition] = Field(default_factory=list, description="List of conditions for the resource, at most one per type.")

    def get_condition(self, type: str) -> Optional[Condition]:
        founds = [x for x in self.conditions if x.type == type]
        return founds[0] if len(founds) > 0 else None

    def set_conditions(self, *conditions: Condition) -> List[Condition]:
        """Insert or replace conditions by type.

        A record of an existing type is replaced in place so that the order of
        the list stays stable across polls; new types are appended.
        """
        for condition in conditions:
            founds = [i for i, x in enumerate(self.conditions) if x.type == condition.type]
            if len(founds) > 0:
                self.conditions[founds[0]] = condition
            else:
                self.conditions.append(condition)
        return self.conditions
