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

import json
import logging
from datetime import date, datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel

from nop_provider.models.status import get_timestamp

logger = logging.getLogger(__name__)


class EventData(BaseModel):
    event: str
    timestamp: Optional[datetime] = None
    data: Dict[str, Any]


class Observer:
    """Fan-out of reconcile events to registered callbacks.

    A failing callback is logged and skipped; it never interrupts reconciliation.
    """

    def __init__(self):
        self.callbacks: List[Callable[[EventData], None]] = []

    def register(self, callback: Callable[[EventData], None]):
        self.callbacks.append(callback)

    def notify(self, event: str, data: Dict[str, Any]):
        event_data = EventData(event=event, data=data, timestamp=get_timestamp())
        for callback in self.callbacks:
            try:
                callback(event_data)
            except Exception as e:
                name = getattr(callback, "__name__", repr(callback))
                logger.warning(f"Callback {name} failed with exception for event {event}: {e}")


def custom_serializer(obj):
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, timedelta):
        return obj.total_seconds()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    if isinstance(obj, Path):
        return obj.as_posix()
    raise TypeError(f"Type {type(obj)} not serializable")


def gen_json_logging_callback(logger: logging.Logger) -> Callable[[EventData], None]:
    def json_logging(event_data: EventData):
        json_str = json.dumps({"event": event_data.event, **event_data.data}, default=custom_serializer)
        logger.info(json_str)

    return json_logging


def gen_recording_callback(events: List[EventData]) -> Callable[[EventData], None]:
    def record(event_data: EventData):
        events.append(event_data)

    return record


DEFAULT_OBSERVER = Observer()
DEFAULT_OBSERVER.register(gen_json_logging_callback(logging.getLogger("nop_provider.events")))
