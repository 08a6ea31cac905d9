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
from typing import Optional, Union

from nop_provider.app.config import PROJECT_LOG_LEVEL, ROOT_LOG_LEVEL

log_format = "[%(asctime)s %(levelname)s %(name)s] %(message)s"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.FATAL,
    "notset": logging.NOTSET,
    "none": logging.NOTSET,
}


def to_log_level(level: Optional[Union[str, int]]) -> int:
    if isinstance(level, int):
        return level
    if not isinstance(level, str):
        return logging.INFO
    return _LEVELS.get(level.lower(), logging.INFO)


def init(project_log_level: Optional[Union[str, int]] = PROJECT_LOG_LEVEL) -> logging.Logger:
    logging.basicConfig(format=log_format, level=to_log_level(ROOT_LOG_LEVEL))
    logger = logging.getLogger("nop_provider")
    logger.setLevel(to_log_level(project_log_level))
    return logger
