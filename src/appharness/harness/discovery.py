"""Locate the interpreter and the development server on the host."""

from __future__ import annotations

import os
import shutil
from collections.abc import Mapping, Sequence
from pathlib import Path

from ..config import settings
from ..errors import DependencyNotFoundError

SERVER_ENV_VAR = "APPENGINE_DEV_APPSERVER"


def find_interpreter(candidates: Sequence[str] | None = None) -> str:
    """Return the first interpreter found on PATH, trying candidates in order."""
    names = list(candidates) if candidates is not None else settings.interpreter_candidates
    for name in names:
        path = shutil.which(name)
        if path:
            return path
    raise DependencyNotFoundError(
        f"Could not find python interpreter; tried: {', '.join(names) or '(none)'}"
    )


def find_server(env: Mapping[str, str] | None = None) -> str:
    """Return the server script path, honoring the environment override first."""
    environ = os.environ if env is None else env
    override = environ.get(SERVER_ENV_VAR)
    if override:
        if Path(override).exists():
            return override
        raise DependencyNotFoundError(
            f"invalid {SERVER_ENV_VAR} environment variable; path {override!r} doesn't exist"
        )
    path = shutil.which(settings.server_filename)
    if not path:
        raise DependencyNotFoundError(
            f"{settings.server_filename} not found on PATH. Set {SERVER_ENV_VAR} or install the SDK."
        )
    return path
