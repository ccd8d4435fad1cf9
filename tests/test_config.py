"""Tests for configuration system."""


class TestHarnessSettings:
    """Test configuration loading and defaults."""

    def test_default_startup_timeout(self):
        """Startup deadline should default to fifteen seconds."""
        from appharness.config import HarnessSettings

        assert HarnessSettings().startup_timeout == 15.0

    def test_default_timeouts_are_positive(self):
        """Timeouts should be positive."""
        from appharness.config import HarnessSettings

        harness_settings = HarnessSettings()
        assert harness_settings.rpc_timeout > 0
        assert harness_settings.teardown_timeout > 0

    def test_default_interpreter_candidates_in_order(self):
        """Interpreter candidates should be tried in a fixed order."""
        from appharness.config import HarnessSettings

        assert HarnessSettings().interpreter_candidates == ["python2.7", "python"]

    def test_settings_singleton_exports(self):
        """Settings singleton should be importable."""
        from appharness.config import settings

        assert settings.server_filename == "dev_appserver.py"
        assert settings.storage_dir
        assert settings.datastore_file


class TestEnvironmentOverrides:
    """Test environment variable overrides."""

    def test_env_override_startup_timeout(self, monkeypatch):
        """Environment variable should override the startup timeout."""
        monkeypatch.setenv("APPHARNESS_STARTUP_TIMEOUT", "30")

        from appharness.config import HarnessSettings

        assert HarnessSettings().startup_timeout == 30.0

    def test_env_override_interpreter_candidates(self, monkeypatch):
        """List settings should parse from JSON."""
        monkeypatch.setenv("APPHARNESS_INTERPRETER_CANDIDATES", '["python3"]')

        from appharness.config import HarnessSettings

        assert HarnessSettings().interpreter_candidates == ["python3"]
