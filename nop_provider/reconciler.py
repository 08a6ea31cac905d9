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
import threading
import time
from datetime import timedelta
from typing import Callable, Optional

from pydantic import BaseModel, Field

from nop_provider.app.config import (
    CONTROLLER_NAME,
    EXTERNAL_NAME_ANNOTATION,
    POLL_INTERVAL_SECONDS,
    RECONCILE_TIMEOUT_SECONDS,
)
from nop_provider.external import Clock, Connector, ExternalObservation, NotNopResourceError
from nop_provider.models.nop_resource import NopResource
from nop_provider.models.status import get_timestamp
from nop_provider.observer import DEFAULT_OBSERVER, Observer

logger = logging.getLogger(__name__)

StatusWriter = Callable[[NopResource], None]


class ReconcileResult(BaseModel):
    requeue: bool = Field(..., description="True when the resource should be polled again.")
    finalized: bool = Field(False, description="True once the deleted resource has been released.")
    observation: Optional[ExternalObservation] = None


def name_as_external_name(resource: NopResource) -> bool:
    annotations = resource.metadata.annotations
    if annotations.get(EXTERNAL_NAME_ANNOTATION):
        return False
    annotations[EXTERNAL_NAME_ANNOTATION] = resource.metadata.name
    return True


class NopResourceOperator:
    """Periodic poller for a single NopResource.

    Each tick connects, observes (which runs the condition schedule), then
    creates, updates or deletes as the observation demands and hands the
    resource to the status writer. Ticks on one operator are serialized.
    """

    def __init__(
        self,
        resource: NopResource,
        connector: Optional[Connector] = None,
        observer: Observer = DEFAULT_OBSERVER,
        clock: Optional[Clock] = None,
        status_writer: Optional[StatusWriter] = None,
        _logger: Optional[logging.Logger] = None,
    ) -> None:
        self.resource = resource
        self.clock = clock if clock else get_timestamp
        self.connector = connector if connector else Connector(clock=self.clock, _logger=_logger)
        self.observer = observer
        self.status_writer = status_writer
        self.logger = _logger if _logger else logger
        self.finalized = False
        self._lock = threading.Lock()

    def elapsed(self) -> timedelta:
        return self.clock() - self.resource.metadata.creationTimestamp

    def delete(self):
        """Request deletion. The next tick runs the deletion transition."""
        self.logger.info(f"Mark {self.resource.metadata.name} for deletion.")
        self.resource.mark_deleted(self.clock())

    def reconcile(self) -> ReconcileResult:
        with self._lock:
            if self.finalized:
                return ReconcileResult(requeue=False, finalized=True)
            try:
                return self._reconcile()
            except NotNopResourceError as e:
                self.observer.notify("reconcile:error", {"controller": CONTROLLER_NAME, "error": str(e)})
                self.logger.error(f"Reconcile failed: {e}")
                raise

    def _reconcile(self) -> ReconcileResult:
        external = self.connector.connect(self.resource)
        cr = self.resource
        name = cr.metadata.name

        if not cr.was_deleted() and name_as_external_name(cr):
            self.logger.debug(f"Set external name of {name}.")

        now = self.clock()
        observation = external.observe(cr, now)
        self.observer.notify(
            "reconcile:observe",
            {"name": name, "elapsed": now - cr.metadata.creationTimestamp, "observation": observation, "conditions": cr.status.conditions},
        )
        if observation.selected:
            self.observer.notify(
                "reconcile:conditions:applied",
                {"name": name, "selected": observation.selected, "conditions": cr.status.conditions},
            )

        if cr.was_deleted():
            external.delete(cr, now)
            self.observer.notify("reconcile:delete", {"name": name, "conditions": cr.status.conditions})
            self.finalized = True
            self.observer.notify("reconcile:finalized", {"name": name})
            self._write_status()
            return ReconcileResult(requeue=False, finalized=True, observation=observation)

        if not observation.resource_exists:
            creation = external.create(cr)
            self.observer.notify("reconcile:create", {"name": name, "creation": creation})
        elif not observation.resource_up_to_date:
            update = external.update(cr)
            self.observer.notify("reconcile:update", {"name": name, "update": update})

        self._write_status()
        return ReconcileResult(requeue=True, observation=observation)

    def _write_status(self):
        if self.status_writer:
            self.status_writer(self.resource)

    def run(
        self,
        interval: Optional[float] = None,
        timeout: Optional[float] = None,
        delete_after: Optional[timedelta] = None,
    ) -> bool:
        """Poll until the resource is finalized or the timeout elapses.

        Returns True when the resource was finalized. ``delete_after`` marks the
        resource for deletion once it is that old.
        """
        interval = interval if interval is not None else POLL_INTERVAL_SECONDS
        timeout = timeout if timeout is not None else RECONCILE_TIMEOUT_SECONDS
        logger = self.logger

        name = self.resource.metadata.name
        logger.info(f"Start reconciling {name} every {interval}s...")
        start_time = time.monotonic()
        while time.monotonic() - start_time < timeout:
            if delete_after is not None and not self.resource.was_deleted() and self.elapsed() >= delete_after:
                self.delete()
            result = self.reconcile()
            if result.finalized:
                logger.info(f"Finished reconciling {name}.")
                return True
            time.sleep(interval)
        logger.info(f"Stop reconciling {name} after {timeout}s.")
        return False
