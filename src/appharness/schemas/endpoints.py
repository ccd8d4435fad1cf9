"""Component endpoints and the readiness events that resolve them."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

API_COMPONENT = "api"
ADMIN_COMPONENT = "admin"
# The implicit application module generated into the workspace; RPCs go here.
DEFAULT_COMPONENT = "default"

API_SERVER_PATTERN = re.compile(r"Starting API server at: (\S+)")
ADMIN_SERVER_PATTERN = re.compile(r"Starting admin server at: (\S+)")


def module_pattern(name: str) -> re.Pattern[str]:
    """Banner pattern for a configured module; both banner shapes are accepted."""
    return re.compile(rf'Starting module "{re.escape(name)}" (?:running|server) at: (\S+)')


@dataclass(slots=True)
class ComponentEndpoint:
    """A component whose address is discovered from the child's banner."""

    name: str
    kind: Literal["api", "admin", "module"]
    pattern: re.Pattern[str]
    manifest: Path | None = None
    address: str | None = field(default=None)

    @property
    def resolved(self) -> bool:
        return self.address is not None

    def resolve(self, address: str) -> bool:
        """Record the address on first announcement. Returns False if already set."""
        if self.address is not None:
            return False
        self.address = address
        return True

    def describe(self) -> str:
        if self.kind != "module":
            return f"{self.kind} server"
        if self.manifest is None:
            return f'module "{self.name}"'
        return f'module "{self.name}" ({self.manifest})'


def build_endpoints(components: list[tuple[str, Path]]) -> dict[str, ComponentEndpoint]:
    """Create the unresolved endpoint set: built-ins first, then components in order."""
    endpoints = {
        API_COMPONENT: ComponentEndpoint(API_COMPONENT, "api", API_SERVER_PATTERN),
        ADMIN_COMPONENT: ComponentEndpoint(ADMIN_COMPONENT, "admin", ADMIN_SERVER_PATTERN),
        DEFAULT_COMPONENT: ComponentEndpoint(
            DEFAULT_COMPONENT, "module", module_pattern(DEFAULT_COMPONENT)
        ),
    }
    for name, manifest in components:
        endpoints[name] = ComponentEndpoint(name, "module", module_pattern(name), manifest)
    return endpoints


@dataclass(frozen=True, slots=True)
class AddressFound:
    """A component announced its listening address."""

    name: str
    address: str


@dataclass(frozen=True, slots=True)
class StreamFailed:
    """Reading the diagnostic stream raised."""

    error: BaseException


@dataclass(frozen=True, slots=True)
class StreamClosed:
    """The diagnostic stream reached end of file."""


ReadinessEvent = AddressFound | StreamFailed | StreamClosed
