"""Process-wide admission control: at most one live harness per process.

The child binds host ports and owns an on-disk workspace, so two harnesses
in one process would corrupt each other.
"""

from __future__ import annotations

import threading

from ..errors import AlreadyRunningError


class AdmissionPermit:
    """Capability returned by a successful acquire; release is idempotent."""

    def __init__(self, semaphore: threading.BoundedSemaphore) -> None:
        self._semaphore = semaphore
        self._lock = threading.Lock()
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        with self._lock:
            if self._released:
                return
            self._released = True
        self._semaphore.release()


class AdmissionGate:
    """Counting permit of capacity one."""

    def __init__(self) -> None:
        self._semaphore = threading.BoundedSemaphore(1)

    @property
    def held(self) -> bool:
        if self._semaphore.acquire(blocking=False):
            self._semaphore.release()
            return False
        return True

    def acquire(self) -> AdmissionPermit:
        """Take the permit or fail fast with AlreadyRunningError."""
        if not self._semaphore.acquire(blocking=False):
            raise AlreadyRunningError()
        return AdmissionPermit(self._semaphore)


_gate = AdmissionGate()


def admission_gate() -> AdmissionGate:
    """Return the process-wide gate."""
    return _gate
