"""Tests for command construction and supervisor cleanup paths."""

from pathlib import Path

import pytest

import appharness.harness.supervisor as supervisor_module
from appharness.errors import DependencyNotFoundError, UnsupportedPlatformError
from appharness.harness.supervisor import ProcessSupervisor, build_command
from appharness.logs import LogRouter
from appharness.schemas.options import ComponentSpec, HarnessConfig, LogLevel


@pytest.fixture
def config(module_manifest) -> HarnessConfig:
    return HarnessConfig(
        app_id="exampleapp",
        log_level=LogLevel.INFO,
        components=[
            ComponentSpec(name="alpha", manifest=module_manifest("alpha")),
            ComponentSpec(name="beta", manifest=module_manifest("beta")),
        ],
    )


class TestBuildCommand:
    """Test platform-specific argument vectors."""

    def test_posix_shape(self, tmp_path: Path, config: HarnessConfig):
        cmd = build_command("python", "dev_appserver.py", tmp_path, config, platform="linux")

        assert cmd[:2] == ["python", "dev_appserver.py"]
        assert "--clear_datastore=true" in cmd
        assert "--datastore_consistency_policy=consistent" in cmd
        assert "--skip_sdk_update_check=true" in cmd
        assert f"--storage_path={tmp_path / 'data.datastore'}" in cmd
        assert "--log_level=info" in cmd
        assert "--dev_appserver_log_level=debug" in cmd
        for flag in ("--port=0", "--api_port=0", "--admin_port=0"):
            assert flag in cmd

    def test_manifests_follow_flags_in_order(self, tmp_path: Path, config: HarnessConfig):
        cmd = build_command("python", "dev_appserver.py", tmp_path, config, platform="darwin")

        assert cmd[-3:] == [
            str(tmp_path),
            str(config.components[0].manifest),
            str(config.components[1].manifest),
        ]

    def test_windows_shape(self, tmp_path: Path, config: HarnessConfig):
        cmd = build_command("python.exe", "dev_appserver.py", tmp_path, config, platform="win32")

        assert cmd[:4] == ["cmd", "/C", "python.exe", "dev_appserver.py"]

    def test_unsupported_platform(self, tmp_path: Path, config: HarnessConfig):
        with pytest.raises(UnsupportedPlatformError, match="plan9"):
            build_command("python", "dev_appserver.py", tmp_path, config, platform="plan9")

    def test_child_threshold_runs_child_at_debug(self, tmp_path: Path):
        config = HarnessConfig(log_level=LogLevel.CHILD)

        cmd = build_command("python", "dev_appserver.py", tmp_path, config, platform="linux")

        assert "--log_level=debug" in cmd


class TestSupervisorCleanup:
    """Test teardown and failure paths that never start a child."""

    def test_teardown_without_child_is_noop(self):
        supervisor = ProcessSupervisor(HarnessConfig(), LogRouter(LogLevel.ERROR))

        assert supervisor.teardown() is None
        assert supervisor.teardown() is None
        assert not supervisor.running

    def test_discovery_failure_creates_no_workspace(self, monkeypatch):
        def missing() -> str:
            raise DependencyNotFoundError("no python")

        monkeypatch.setattr(supervisor_module, "find_interpreter", missing)
        supervisor = ProcessSupervisor(HarnessConfig(), LogRouter(LogLevel.ERROR))

        with pytest.raises(DependencyNotFoundError):
            supervisor.spawn()
        assert supervisor.workspace is None

    def test_failure_after_workspace_removes_it(self, tmp_path: Path, monkeypatch):
        workspace = tmp_path / "ws"
        monkeypatch.setattr(supervisor_module, "find_interpreter", lambda: "python")
        monkeypatch.setattr(supervisor_module, "find_server", lambda: "dev_appserver.py")

        def fake_mkdtemp(prefix: str) -> str:
            workspace.mkdir()
            return str(workspace)

        def unsupported(*args, **kwargs) -> list[str]:
            raise UnsupportedPlatformError("plan9")

        monkeypatch.setattr(supervisor_module.tempfile, "mkdtemp", fake_mkdtemp)
        monkeypatch.setattr(supervisor_module, "build_command", unsupported)
        supervisor = ProcessSupervisor(HarnessConfig(), LogRouter(LogLevel.ERROR))

        with pytest.raises(UnsupportedPlatformError):
            supervisor.spawn()
        assert not workspace.exists()
        assert supervisor.workspace is None
        assert supervisor.process is None
