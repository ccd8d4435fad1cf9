"""Manifest generation for the default application and its task queues."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import yaml

APP_MANIFEST = "app.yaml"
QUEUE_MANIFEST = "queue.yaml"
HELPER_MODULE = "helper.py"

QUEUE_RATE = "35/s"
QUEUE_STORAGE_LIMIT = "120M"

# Minimal WSGI app so the default module has something to serve.
HELPER_SOURCE = '''def app(environ, start_response):
    start_response("200 OK", [("Content-Type", "text/plain")])
    return [b"appharness helper"]
'''


def render_app_manifest(app_id: str) -> str:
    """Render the default application manifest for an app id."""
    manifest = {
        "application": app_id,
        "version": "1",
        "runtime": "python27",
        "api_version": "1",
        "threadsafe": True,
        "handlers": [{"url": "/.*", "script": "helper.app"}],
    }
    return yaml.safe_dump(manifest, sort_keys=False)


def render_queue_manifest(queues: Sequence[str]) -> str:
    """Render a queue manifest declaring each queue at a fixed rate."""
    manifest = {
        "total_storage_limit": QUEUE_STORAGE_LIMIT,
        "queue": [{"name": name, "rate": QUEUE_RATE} for name in queues],
    }
    return yaml.safe_dump(manifest, sort_keys=False)


def write_manifests(workspace: Path, app_id: str, queues: Sequence[str]) -> list[Path]:
    """Write the manifests into the workspace and return the written paths.

    The queue manifest is only written when queues were declared.
    """
    written: list[Path] = []

    app_path = workspace / APP_MANIFEST
    app_path.write_text(render_app_manifest(app_id), encoding="utf-8")
    written.append(app_path)

    helper_path = workspace / HELPER_MODULE
    helper_path.write_text(HELPER_SOURCE, encoding="utf-8")
    written.append(helper_path)

    if queues:
        queue_path = workspace / QUEUE_MANIFEST
        queue_path.write_text(render_queue_manifest(queues), encoding="utf-8")
        written.append(queue_path)

    return written
