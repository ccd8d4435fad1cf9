"""Child process lifecycle: workspace, command line, start, readiness, teardown."""

from __future__ import annotations

import logging
import os
import queue
import shlex
import shutil
import signal
import subprocess
import sys
import tempfile
from pathlib import Path

from ..config import settings
from ..errors import (
    ChildExitError,
    DependencyNotFoundError,
    UnsupportedPlatformError,
    WorkspaceError,
)
from ..logs import LogRouter
from ..schemas.endpoints import ComponentEndpoint, ReadinessEvent, build_endpoints
from ..schemas.options import HarnessConfig
from ..watcher.readiness import ReadinessBarrier
from ..watcher.scanner import AddressScanner
from .discovery import find_interpreter, find_server
from .manifests import write_manifests

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "appharness"


def _signal_group(process: subprocess.Popen[str], sig: int) -> None:
    # The child leads its own session, so runtime instances it starts share its
    # process group and hold the same stderr pipe.
    try:
        os.killpg(process.pid, sig)
    except (ProcessLookupError, PermissionError):
        pass


def _terminate_group(process: subprocess.Popen[str]) -> None:
    if os.name == "posix":
        _signal_group(process, signal.SIGTERM)
    else:
        process.terminate()


def _kill_group(process: subprocess.Popen[str]) -> None:
    if os.name == "posix":
        _signal_group(process, signal.SIGKILL)
    else:
        process.kill()


def build_command(
    interpreter: str,
    server: str,
    workspace: Path,
    config: HarnessConfig,
    platform: str | None = None,
) -> list[str]:
    """Construct the child command line for the host platform.

    Every sub-service gets port 0 so the OS assigns ephemeral ports. The
    workspace holding the default manifest comes first, then each configured
    component manifest in order.
    """
    platform = sys.platform if platform is None else platform
    args = [
        server,
        "--clear_datastore=true",
        "--datastore_consistency_policy=consistent",
        "--skip_sdk_update_check=true",
        f"--storage_path={workspace / settings.storage_dir}",
        f"--log_level={config.log_level.child_flag}",
        "--dev_appserver_log_level=debug",
        "--port=0",
        "--api_port=0",
        "--admin_port=0",
        str(workspace),
        *(str(component.manifest) for component in config.components),
    ]
    if platform == "win32":
        return ["cmd", "/C", interpreter, *args]
    if platform.startswith("linux") or platform == "darwin":
        return [interpreter, *args]
    raise UnsupportedPlatformError(platform)


class ProcessSupervisor:
    """Owns the child process handle and its workspace for one harness."""

    def __init__(self, config: HarnessConfig, router: LogRouter) -> None:
        self.config = config
        self.router = router
        self.process: subprocess.Popen[str] | None = None
        self.workspace: Path | None = None
        self.endpoints: dict[str, ComponentEndpoint] = {}
        self._scanner: AddressScanner | None = None

    @property
    def running(self) -> bool:
        return self.process is not None and self.process.poll() is None

    @property
    def storage_path(self) -> Path | None:
        if self.workspace is None:
            return None
        return self.workspace / settings.storage_dir

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------
    def spawn(self) -> dict[str, ComponentEndpoint]:
        """Start the child and block until every component reports an address.

        Any failure after the workspace exists kills the child (if started)
        and removes the workspace before the error propagates.
        """
        interpreter = find_interpreter()
        server = find_server()
        try:
            self.workspace = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX))
        except OSError as exc:
            raise WorkspaceError(f"could not create workspace: {exc}") from exc

        try:
            return self._start(interpreter, server)
        except BaseException as exc:
            logger.debug("cleaning up workspace because of an error: %s", exc)
            self._abort()
            raise

    def _start(self, interpreter: str, server: str) -> dict[str, ComponentEndpoint]:
        assert self.workspace is not None
        try:
            write_manifests(self.workspace, self.config.resolved_app_id, self.config.task_queues)
        except OSError as exc:
            raise WorkspaceError(f"could not write manifests: {exc}") from exc

        command = build_command(interpreter, server, self.workspace, self.config)
        logger.debug("starting child: %s", shlex.join(command))
        try:
            self.process = subprocess.Popen(
                command,
                stdout=None,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                start_new_session=os.name == "posix",
            )
        except FileNotFoundError as exc:
            raise DependencyNotFoundError(f"could not start child: {exc}") from exc
        except OSError as exc:
            raise ChildExitError(f"could not start child: {exc}") from exc

        events: queue.Queue[ReadinessEvent] = queue.Queue()
        endpoints = build_endpoints(
            [(component.name, component.manifest) for component in self.config.components]
        )
        mirror = self.router.mirror_child if self.router.mirrors_child else None
        assert self.process.stderr is not None
        self._scanner = AddressScanner(self.process.stderr, endpoints, events, mirror)
        self._scanner.start()

        barrier = ReadinessBarrier(endpoints, events, returncode=self._exit_code)
        timeout = self.config.startup_timeout or settings.startup_timeout
        barrier.await_all(timeout, on_timeout=self.kill)

        self.endpoints = dict(endpoints)
        return self.endpoints

    def _exit_code(self) -> int | None:
        # stderr can close a moment before the exit status is observable.
        if self.process is None:
            return None
        try:
            return self.process.wait(timeout=1.0)
        except subprocess.TimeoutExpired:
            return None

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------
    def kill(self) -> None:
        """Forcibly stop the child and everything in its process group, then reap it."""
        process = self.process
        if process is None:
            return
        _kill_group(process)
        process.wait()

    def teardown(self, export_to: Path | None = None) -> Path | None:
        """Terminate the child, wait for it, and remove the workspace.

        A no-op when no child is running. When export_to is given the datastore
        file is copied there after the child exits and before the workspace is
        removed. Returns the export path, if any.
        """
        process = self.process
        if process is None:
            return None
        exported: Path | None = None
        try:
            if process.poll() is None:
                _terminate_group(process)
            try:
                returncode = process.wait(timeout=settings.teardown_timeout)
            except subprocess.TimeoutExpired as exc:
                _kill_group(process)
                process.wait()
                logger.error("Error closing child - did not exit within %ss", settings.teardown_timeout)
                raise ChildExitError(
                    f"child did not exit within {settings.teardown_timeout}s of termination",
                    returncode=process.returncode,
                ) from exc
            logger.debug("child exited with code %s", returncode)
            # Runtime instances that outlived the server would keep stderr open.
            _kill_group(process)
            if export_to is not None:
                exported = self.export_datastore(export_to)
        finally:
            self.process = None
            self._close_stream(process)
            self._remove_workspace()
        return exported

    def export_datastore(self, target: Path) -> Path:
        """Copy the backend's datastore file out of the workspace.

        The on-disk name is backend specific and comes from settings.
        """
        storage = self.storage_path
        if storage is None:
            raise WorkspaceError("no workspace to export from")
        source = storage / settings.datastore_file
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
        except OSError as exc:
            raise WorkspaceError(f"could not export datastore file {source}: {exc}") from exc
        return target

    def _abort(self) -> None:
        process = self.process
        self.kill()
        self.process = None
        if process is not None:
            self._close_stream(process)
        self._remove_workspace()

    def _close_stream(self, process: subprocess.Popen[str]) -> None:
        scanner = self._scanner
        self._scanner = None
        if scanner is not None:
            scanner.join(timeout=1.0)
            if scanner.alive:
                # Closing would block on the reader's buffer lock until every
                # holder of the pipe exits. The daemon reader closes it on EOF.
                logger.debug("stderr still held open; leaving it to the reader thread")
                return
        if process.stderr is not None and not process.stderr.closed:
            process.stderr.close()

    def _remove_workspace(self) -> None:
        workspace = self.workspace
        self.workspace = None
        if workspace is None:
            return
        try:
            shutil.rmtree(workspace)
        except OSError as exc:
            logger.warning("could not remove workspace %s: %s", workspace, exc)
