"""Readiness barrier over the component endpoints of one child process."""

from __future__ import annotations

import logging
import queue
import time
from collections.abc import Callable, Mapping
from typing import Literal

from ..errors import ChildExitError, HarnessError, StartupIOError, StartupTimeoutError
from ..schemas.endpoints import (
    AddressFound,
    ComponentEndpoint,
    ReadinessEvent,
    StreamClosed,
    StreamFailed,
)

logger = logging.getLogger(__name__)

BarrierState = Literal["pending", "ready", "failed"]


class ReadinessBarrier:
    """Blocks until every required endpoint has a confirmed address.

    Success is never declared while any endpoint is unresolved. The terminal
    state is monotonic: once ready or failed, later calls return the same
    outcome.
    """

    def __init__(
        self,
        endpoints: Mapping[str, ComponentEndpoint],
        events: queue.Queue[ReadinessEvent],
        returncode: Callable[[], int | None] | None = None,
    ) -> None:
        self.endpoints = endpoints
        self._events = events
        self._returncode = returncode
        self.state: BarrierState = "pending"
        self._failure: HarnessError | None = None

    @property
    def unresolved(self) -> list[ComponentEndpoint]:
        return [endpoint for endpoint in self.endpoints.values() if not endpoint.resolved]

    def apply(self, event: AddressFound) -> None:
        endpoint = self.endpoints.get(event.name)
        if endpoint is None:
            return
        if endpoint.resolve(event.address):
            logger.debug("component %s listening at %s", event.name, event.address)

    def await_all(
        self,
        timeout: float,
        on_timeout: Callable[[], None] | None = None,
    ) -> Mapping[str, ComponentEndpoint]:
        """Consume events until all endpoints resolve, the deadline passes, or the stream fails."""
        if self.state == "ready":
            return self.endpoints
        if self._failure is not None:
            raise self._failure

        deadline = time.monotonic() + timeout
        while self.unresolved:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                if on_timeout is not None:
                    on_timeout()
                pending = [endpoint.describe() for endpoint in self.unresolved]
                self._fail(StartupTimeoutError(timeout, pending))
            try:
                event = self._events.get(timeout=remaining)
            except queue.Empty:
                continue

            if isinstance(event, AddressFound):
                self.apply(event)
            elif isinstance(event, StreamFailed):
                failure = StartupIOError(f"error reading child process stderr: {event.error}")
                failure.__cause__ = event.error
                self._fail(failure)
            elif isinstance(event, StreamClosed):
                returncode = self._returncode() if self._returncode else None
                pending = ", ".join(endpoint.describe() for endpoint in self.unresolved)
                self._fail(
                    ChildExitError(
                        f"child process exited before it was ready (code {returncode}); "
                        f"waiting on: {pending}",
                        returncode=returncode,
                    )
                )

        self.state = "ready"
        return self.endpoints

    def _fail(self, error: HarnessError) -> None:
        self.state = "failed"
        self._failure = error
        raise error
