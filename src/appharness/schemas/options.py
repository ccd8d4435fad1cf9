"""Pydantic models for harness configuration."""

from __future__ import annotations

from enum import IntEnum
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from ..errors import ConfigInvalidError

DEFAULT_APP_ID = "testapp"

# Names taken by the built-in sub-services and the implicit default module.
RESERVED_COMPONENT_NAMES = frozenset({"api", "admin", "default"})


class LogLevel(IntEnum):
    """Log threshold, ordered from most to least verbose.

    ERROR is the most severe level the backend reports. CHILD additionally
    mirrors every line the child writes to its diagnostic stream.
    """

    CHILD = 0
    DEBUG = 10
    INFO = 20
    WARNING = 30
    CRITICAL = 40
    ERROR = 50

    @classmethod
    def from_name(cls, name: str) -> LogLevel:
        """Parse a case-insensitive level name like 'warning'."""
        try:
            return cls[name.strip().upper()]
        except KeyError as exc:
            choices = ", ".join(level.name.lower() for level in cls)
            raise ConfigInvalidError(f"Unknown log level '{name}'. Expected one of: {choices}") from exc

    @property
    def child_flag(self) -> str:
        """Value passed to the child's --log_level flag."""
        if self is LogLevel.CHILD:
            return LogLevel.DEBUG.name.lower()
        return self.name.lower()


@runtime_checkable
class ReporterSink(Protocol):
    """Test-reporter sink that receives formatted log lines."""

    def log(self, message: str) -> None: ...


class ComponentSpec(BaseModel):
    """A named sub-component started alongside the default application."""

    name: str = Field(min_length=1, description="Component name, unique within the harness")
    manifest: Path = Field(description="Path to the component's manifest file")

    def validate_manifest(self) -> None:
        """Fail fast when the manifest is missing on disk."""
        if not self.manifest.exists():
            raise ConfigInvalidError(
                f"Manifest for component '{self.name}' does not exist: {self.manifest}"
            )


class HarnessConfig(BaseModel):
    """Options for one harness instance. A default HarnessConfig is valid."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    app_id: str | None = Field(
        default=None,
        description="Application id to pretend to be; defaults to 'testapp'",
    )
    task_queues: list[str] = Field(default_factory=list, description="Task queues to declare")
    log_level: LogLevel = Field(default=LogLevel.ERROR, description="Log threshold")
    reporter: ReporterSink | None = Field(
        default=None,
        exclude=True,
        description="Test-reporter sink; process logging is used when unset",
    )
    components: list[ComponentSpec] = Field(
        default_factory=list,
        description="Additional components, started in order after the default one",
    )
    startup_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Readiness deadline in seconds; settings default when unset",
    )

    @property
    def resolved_app_id(self) -> str:
        return self.app_id or DEFAULT_APP_ID

    def validate_config(self) -> None:
        """Validate cross-field constraints before any process is spawned."""
        if self.components and not self.app_id:
            raise ConfigInvalidError(
                "An explicit app_id is required when components are configured, "
                "since component manifests name their application."
            )
        seen: set[str] = set()
        for component in self.components:
            if component.name in RESERVED_COMPONENT_NAMES:
                raise ConfigInvalidError(f"Component name '{component.name}' is reserved.")
            if component.name in seen:
                raise ConfigInvalidError(f"Duplicate component name '{component.name}'.")
            seen.add(component.name)
            component.validate_manifest()
