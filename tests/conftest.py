"""Shared test fixtures for the harness."""

import sys
from pathlib import Path

import pytest

from appharness.config import settings
from appharness.harness.admission import AdmissionGate
from appharness.harness.discovery import SERVER_ENV_VAR
from appharness.schemas.endpoints import (
    ADMIN_COMPONENT,
    API_COMPONENT,
    DEFAULT_COMPONENT,
    build_endpoints,
)

# Stands in for the development server: prints the startup banners on stderr,
# serves /call on the module port only, and honors a few FAKE_SERVER_* switches
# from the environment.
FAKE_SERVER_SOURCE = '''
import json
import os
import subprocess
import sys
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from urllib.parse import parse_qs, urlparse

ECHO_SERVICES = {"echo", "datastore_v3"}


class Handler(BaseHTTPRequestHandler):
    def do_POST(self):
        query = parse_qs(urlparse(self.path).query)
        service = query.get("s", [""])[0]
        method = query.get("m", [""])[0]
        body = self.rfile.read(int(self.headers.get("Content-Length", 0)))
        if service in ECHO_SERVICES:
            payload = body
        elif service == "whoami":
            email = self.headers.get("X-AppEngine-Internal-User-Email", "")
            payload = json.dumps({"value": email}).encode()
        else:
            payload = f"unknown call {service}.{method}".encode()
            self.send_response(500)
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            self.wfile.write(payload)
            return
        self.send_response(200)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, *args):
        pass


class APIHandler(BaseHTTPRequestHandler):
    def do_POST(self):
        self.rfile.read(int(self.headers.get("Content-Length", 0)))
        payload = b"api server does not serve /call"
        self.send_response(404)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, *args):
        pass


def serve(handler):
    server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
    threading.Thread(target=server.serve_forever, daemon=True).start()
    return server.server_address[:2]


def module_name(manifest):
    for line in Path(manifest).read_text().splitlines():
        if line.startswith("module:"):
            return line.split(":", 1)[1].strip()
    return "default"


def banner(text):
    print(text, file=sys.stderr, flush=True)


def main(argv):
    flags = dict(arg[2:].split("=", 1) for arg in argv if arg.startswith("--"))
    paths = [arg for arg in argv if not arg.startswith("--")]

    if os.environ.get("FAKE_SERVER_ARGS_FILE"):
        Path(os.environ["FAKE_SERVER_ARGS_FILE"]).write_text(json.dumps(argv))
    if os.environ.get("FAKE_SERVER_PID_FILE"):
        Path(os.environ["FAKE_SERVER_PID_FILE"]).write_text(str(os.getpid()))
    if os.environ.get("FAKE_SERVER_MODE") == "exit":
        banner("ERROR something went wrong\\n  while booting")
        sys.exit(3)

    storage = Path(flags["storage_path"])
    storage.mkdir(parents=True, exist_ok=True)
    (storage / "datastore.db").write_bytes(b"fake-datastore")

    if os.environ.get("FAKE_SERVER_GRANDCHILD"):
        # A runtime instance that inherits stderr and outlives a plain kill.
        subprocess.Popen([sys.executable, "-c", "import time; time.sleep(30)"])

    api_host, api_port = serve(APIHandler)
    host, port = serve(Handler)

    banner("INFO booting fake server")
    banner(f"INFO Starting API server at: http://{api_host}:{api_port}")
    banner("INFO Starting API server at: http://127.0.0.1:1")
    banner("INFO Starting admin server at: http://127.0.0.1:8000")
    banner(f'INFO Starting module "default" running at: http://{host}:{port}')
    for manifest in paths[1:]:
        name = module_name(manifest)
        if name.startswith("silent"):
            continue
        banner(f'INFO Starting module "{name}" running at: http://{host}:{port}')

    while True:
        time.sleep(0.1)


if __name__ == "__main__":
    main(sys.argv[1:])
'''


@pytest.fixture
def fake_server(tmp_path: Path) -> Path:
    """Write the fake development server script."""
    script = tmp_path / "fake_dev_appserver.py"
    script.write_text(FAKE_SERVER_SOURCE)
    return script


@pytest.fixture
def fake_backend(monkeypatch, fake_server: Path) -> Path:
    """Point discovery at the fake server and the running interpreter."""
    monkeypatch.setenv(SERVER_ENV_VAR, str(fake_server))
    monkeypatch.setattr(settings, "interpreter_candidates", [sys.executable])
    monkeypatch.setattr(settings, "startup_timeout", 10.0)
    monkeypatch.setattr(settings, "teardown_timeout", 5.0)
    return fake_server


@pytest.fixture
def module_manifest(tmp_path: Path):
    """Factory writing a component manifest named after the module."""

    def _make(name: str) -> Path:
        path = tmp_path / "modules" / name / "app.yaml"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"application: exampleapp\nmodule: {name}\nruntime: python27\n")
        return path

    return _make


@pytest.fixture
def gate() -> AdmissionGate:
    """A private admission gate, independent of the process-wide one."""
    return AdmissionGate()


class ListReporter:
    """Reporter sink collecting lines in memory."""

    def __init__(self) -> None:
        self.lines: list[str] = []

    def log(self, message: str) -> None:
        self.lines.append(message)


@pytest.fixture
def reporter() -> ListReporter:
    return ListReporter()


class StubSupervisor:
    """Supervisor double with resolved endpoints and a counted teardown."""

    def __init__(self, module_address: str = "http://127.0.0.1:9999") -> None:
        self.endpoints = build_endpoints([])
        self.endpoints[API_COMPONENT].resolve("http://127.0.0.1:9998")
        self.endpoints[DEFAULT_COMPONENT].resolve(module_address)
        self.endpoints[ADMIN_COMPONENT].resolve("http://127.0.0.1:8000")
        self.workspace: Path | None = None
        self.teardowns: list[Path | None] = []

    def teardown(self, export_to: Path | None = None) -> Path | None:
        self.teardowns.append(export_to)
        return export_to


@pytest.fixture
def stub_supervisor() -> StubSupervisor:
    return StubSupervisor()
