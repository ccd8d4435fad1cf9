"""Process-wide knobs for launching and talking to the development server.

These are the values a CI host tends to need to change, such as how long a
slow machine may take to boot the server or which interpreter runs it.
Per-harness options live on HarnessConfig instead.
Set APPHARNESS_STARTUP_TIMEOUT=30 to give a slow runner more room.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class HarnessSettings(BaseSettings):
    """Launch and transport settings, each readable from an APPHARNESS_* variable."""

    model_config = SettingsConfigDict(env_prefix="APPHARNESS_")

    startup_timeout: float = Field(
        default=15.0,
        gt=0,
        description="Seconds to wait for every component to announce its address",
    )
    rpc_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Per-call deadline for RPC round trips",
    )
    teardown_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds to wait for the child to exit after termination",
    )
    interpreter_candidates: list[str] = Field(
        default_factory=lambda: ["python2.7", "python"],
        description="Interpreter names tried in order; first found wins",
    )
    server_filename: str = Field(
        default="dev_appserver.py",
        description="Server script looked up on PATH",
    )
    storage_dir: str = Field(
        default="data.datastore",
        description="Storage directory created inside the workspace",
    )
    datastore_file: str = Field(
        default="datastore.db",
        description="Datastore file inside the storage directory, used by export on close",
    )


# Singleton instance
settings = HarnessSettings()
