"""Test harness that runs a local development app server as a child process."""

from .context import Harness, derive_user_id, new_harness
from .errors import (
    AlreadyRunningError,
    ChildExitError,
    ConfigInvalidError,
    DependencyNotFoundError,
    HarnessError,
    RPCCodecError,
    RPCError,
    RPCStatusError,
    RPCTransportError,
    StartupIOError,
    StartupTimeoutError,
    UnsupportedPlatformError,
    WorkspaceError,
)
from .schemas import ComponentSpec, HarnessConfig, LogLevel, ReporterSink, StringValue, User

__all__ = [
    "AlreadyRunningError",
    "ChildExitError",
    "ComponentSpec",
    "ConfigInvalidError",
    "DependencyNotFoundError",
    "Harness",
    "HarnessConfig",
    "HarnessError",
    "LogLevel",
    "RPCCodecError",
    "RPCError",
    "RPCStatusError",
    "RPCTransportError",
    "ReporterSink",
    "StartupIOError",
    "StartupTimeoutError",
    "StringValue",
    "UnsupportedPlatformError",
    "User",
    "WorkspaceError",
    "derive_user_id",
    "new_harness",
]
