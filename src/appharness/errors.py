"""Exception taxonomy for harness setup, teardown, and RPC."""

from __future__ import annotations

from collections.abc import Sequence


class HarnessError(Exception):
    """Base class for every error raised by the harness."""


class AlreadyRunningError(HarnessError, RuntimeError):
    """Another harness holds the admission permit."""

    def __init__(self) -> None:
        super().__init__("appharness already running, make sure to call close()")


class ConfigInvalidError(HarnessError, ValueError):
    """Harness configuration was rejected before anything was spawned."""


class DependencyNotFoundError(HarnessError, FileNotFoundError):
    """The interpreter or the server executable could not be located."""


class UnsupportedPlatformError(HarnessError, OSError):
    """No command line shape exists for the host platform."""

    def __init__(self, platform: str) -> None:
        super().__init__(f"appharness not supported on your platform of {platform}")
        self.platform = platform


class WorkspaceError(HarnessError, OSError):
    """The temporary workspace could not be created or populated."""


class StartupTimeoutError(HarnessError, TimeoutError):
    """One or more components never announced an address."""

    def __init__(self, timeout: float, unresolved: Sequence[str]) -> None:
        listing = ", ".join(unresolved)
        super().__init__(f"timeout after {timeout:g}s starting child process; waiting on: {listing}")
        self.timeout = timeout
        self.unresolved = list(unresolved)


class StartupIOError(HarnessError, OSError):
    """Reading the child's diagnostic stream failed during startup."""


class ChildExitError(HarnessError, RuntimeError):
    """The child exited before it was ready, or could not be reaped."""

    def __init__(self, message: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class RPCError(HarnessError):
    """Base class for failed RPC calls."""


class RPCTransportError(RPCError, ConnectionError):
    """The HTTP round trip to the backend failed."""


class RPCStatusError(RPCError):
    """The backend answered with a non-200 status."""

    def __init__(self, status_code: int, body: bytes) -> None:
        super().__init__(f"got status {status_code}; body: {body!r}")
        self.status_code = status_code
        self.body = body


class RPCCodecError(RPCError, ValueError):
    """A request could not be marshaled or a response unmarshaled."""
