"""Pydantic schemas and records for configuration, endpoints, and messages."""

from .endpoints import (
    AddressFound,
    ComponentEndpoint,
    ReadinessEvent,
    StreamClosed,
    StreamFailed,
    build_endpoints,
)
from .messages import StringValue, User, VoidMessage
from .options import ComponentSpec, HarnessConfig, LogLevel, ReporterSink

__all__ = [
    "AddressFound",
    "ComponentEndpoint",
    "ComponentSpec",
    "HarnessConfig",
    "LogLevel",
    "ReadinessEvent",
    "ReporterSink",
    "StreamClosed",
    "StreamFailed",
    "StringValue",
    "User",
    "VoidMessage",
    "build_endpoints",
]
