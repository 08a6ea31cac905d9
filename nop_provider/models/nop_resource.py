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
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from nop_provider.models.status import (
    ConditionStatusEnum,
    ResourceStatus,
    get_timestamp,
)

API_VERSION = "sample.crossplane.io/v1alpha1"
KIND = "NopResource"


class ResourceConditionAfter(BaseModel):
    model_config = ConfigDict(frozen=True)

    time: str = Field(..., description="Duration after creation when the condition is set, e.g. '10s', '1m30s'.")
    conditionType: str = Field(..., description="The type of condition to set (e.g., 'Ready', 'Synced').")
    conditionStatus: ConditionStatusEnum = Field(..., description='The status to set: "True", "False", or "Unknown".')

    @field_validator("conditionStatus", mode="before")
    @classmethod
    def yaml_bool_to_status(cls, v):
        # unquoted True/False in YAML arrive as booleans
        if isinstance(v, bool):
            return "True" if v else "False"
        return v

    @field_validator("time", mode="before")
    @classmethod
    def number_to_text(cls, v):
        # left to the duration parser, which rejects numbers without a unit (except 0)
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class NopResourceParameters(BaseModel):
    conditionAfter: List[ResourceConditionAfter] = Field(
        default_factory=list, description="Ordered list of timed condition rules. Earlier entries win ties."
    )


class NopResourceSpec(BaseModel):
    forProvider: NopResourceParameters = Field(default_factory=NopResourceParameters)
    providerConfigRef: Optional[Dict[str, str]] = None


class ObjectMeta(BaseModel):
    name: str
    namespace: Optional[str] = None
    creationTimestamp: datetime = Field(default_factory=get_timestamp, description="Fixed when the resource is created.")
    deletionTimestamp: Optional[datetime] = Field(None, description="Set when the resource has been marked for deletion.")
    labels: Optional[Dict[str, str]] = None
    annotations: Dict[str, str] = Field(default_factory=dict)

    @field_validator("creationTimestamp", "deletionTimestamp")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class NopResource(BaseModel):
    apiVersion: str = API_VERSION
    kind: str = KIND
    metadata: ObjectMeta
    spec: NopResourceSpec = Field(default_factory=NopResourceSpec)
    status: ResourceStatus = Field(default_factory=ResourceStatus)

    @property
    def rules(self) -> List[ResourceConditionAfter]:
        return self.spec.forProvider.conditionAfter

    def was_deleted(self) -> bool:
        return self.metadata.deletionTimestamp is not None

    def mark_deleted(self, now: Optional[datetime] = None) -> None:
        if self.metadata.deletionTimestamp is None:
            self.metadata.deletionTimestamp = now or get_timestamp()
