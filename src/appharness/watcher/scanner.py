"""Line scanner that discovers component addresses on the child's stderr."""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable, Iterable, Mapping

from ..schemas.endpoints import (
    AddressFound,
    ComponentEndpoint,
    ReadinessEvent,
    StreamClosed,
    StreamFailed,
)

logger = logging.getLogger(__name__)


class AddressScanner:
    """Reads the diagnostic stream for the lifetime of the child.

    Each line is mirrored (when a mirror is set) and tested against every
    component pattern that has not matched yet. The first match per component
    emits one AddressFound event; later banners for the same name are ignored.
    """

    def __init__(
        self,
        stream: Iterable[str],
        endpoints: Mapping[str, ComponentEndpoint],
        events: queue.Queue[ReadinessEvent],
        mirror: Callable[[str], None] | None = None,
    ) -> None:
        self._stream = stream
        self._endpoints = endpoints
        self._events = events
        self._mirror = mirror
        self._matched: set[str] = set()
        self._thread: threading.Thread | None = None

    def scan_line(self, line: str) -> list[AddressFound]:
        """Match one line, emit and return the events it produced."""
        found: list[AddressFound] = []
        for name, endpoint in self._endpoints.items():
            if name in self._matched:
                continue
            match = endpoint.pattern.search(line)
            if match is None:
                continue
            self._matched.add(name)
            event = AddressFound(name=name, address=match.group(1))
            self._events.put(event)
            found.append(event)
        return found

    def run(self) -> None:
        try:
            for raw in self._stream:
                line = raw.rstrip("\r\n")
                if self._mirror is not None:
                    self._mirror(line)
                self.scan_line(line)
        except (OSError, ValueError) as exc:
            logger.debug("diagnostic stream read failed: %s", exc)
            self._events.put(StreamFailed(error=exc))
            return
        finally:
            self._close_stream()
        self._events.put(StreamClosed())

    def _close_stream(self) -> None:
        # Closed here so no other thread contends for the stream's buffer lock.
        close = getattr(self._stream, "close", None)
        if close is None:
            return
        try:
            close()
        except OSError as exc:
            logger.debug("closing diagnostic stream failed: %s", exc)

    def start(self) -> threading.Thread:
        """Pump the stream on a daemon thread."""
        thread = threading.Thread(target=self.run, name="appharness-stderr", daemon=True)
        thread.start()
        self._thread = thread
        return thread

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)
