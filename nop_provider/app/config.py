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

import os
from typing import Optional

import yaml
from pydantic import BaseModel, Field

DEFAULT_POLL_INTERVAL_SECONDS = 1
DEFAULT_RECONCILE_TIMEOUT_SECONDS = 300

POLL_INTERVAL_SECONDS = float(os.getenv("POLL_INTERVAL_SECONDS", str(DEFAULT_POLL_INTERVAL_SECONDS)))
RECONCILE_TIMEOUT_SECONDS = float(os.getenv("RECONCILE_TIMEOUT_SECONDS", str(DEFAULT_RECONCILE_TIMEOUT_SECONDS)))
PROJECT_LOG_LEVEL = os.getenv("PROJECT_LOG_LEVEL", "")
ROOT_LOG_LEVEL = os.getenv("ROOT_LOG_LEVEL", "")

EXTERNAL_NAME_ANNOTATION = "crossplane.io/external-name"
CONTROLLER_NAME = "managed/nopresource.sample.crossplane.io"


class ProviderConfig(BaseModel):
    poll_interval: Optional[float] = Field(POLL_INTERVAL_SECONDS, description="Seconds between two reconcile ticks of a resource.")
    timeout: Optional[float] = Field(
        RECONCILE_TIMEOUT_SECONDS, description="Maximum time in seconds the poll loop keeps reconciling a resource before giving up."
    )
    log_level: Optional[str] = Field(None, description="Log level for the nop_provider loggers. Falls back to PROJECT_LOG_LEVEL.")


def load_provider_config(path: Optional[str] = None) -> ProviderConfig:
    if not path:
        return ProviderConfig()
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    return ProviderConfig.model_validate(data)
