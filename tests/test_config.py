"""Tests for settings loading and log redaction."""

import sys

import yaml

from autopilot.config import Settings, load_settings
from autopilot.utils.logging import _filter_sensitive


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.workflow.max_iterations == 50
        assert settings.correction.max_retries == 3
        assert settings.correction.fail_open is True
        assert settings.continuation.cooldown_seconds == 2.0
        assert settings.executor is None
        assert settings.get_checkpoint_db() is None

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({
            "planner": {"provider": "local", "model": "llama3"},
            "executor": {"model": "claude-haiku"},
            "workflow": {"max_iterations": 20, "checkpoint_db": str(tmp_path / "cp.db")},
        }))
        settings = load_settings(path)
        assert settings.planner.provider == "local"
        assert settings.executor.model == "claude-haiku"
        assert settings.workflow.max_iterations == 20
        assert settings.workflow.max_step_retries == 3
        assert settings.get_checkpoint_db() == tmp_path / "cp.db"

    def test_overrides_merge(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"correction": {"max_retries": 5, "fail_open": False}}))
        settings = load_settings(path, overrides={"correction": {"max_retries": 1}})
        assert settings.correction.max_retries == 1
        assert settings.correction.fail_open is False

    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("AUTOPILOT_WORKFLOW__MAX_ITERATIONS", "7")
        monkeypatch.setenv("AUTOPILOT_CONFIG_DIR", str(tmp_path))
        monkeypatch.delenv("AUTOPILOT_CONFIG", raising=False)
        settings = load_settings()
        assert settings.workflow.max_iterations == 7

    def test_relative_checkpoint_db_under_data_dir(self, tmp_path):
        settings = Settings(data_dir=str(tmp_path), workflow={"checkpoint_db": "checkpoints.db"})
        assert settings.get_checkpoint_db() == tmp_path / "checkpoints.db"

    def test_data_dir_env_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("AUTOPILOT_DATA_DIR", str(tmp_path))
        settings = Settings(workflow={"checkpoint_db": "cp.db"})
        assert settings.get_data_dir() == tmp_path
        assert settings.get_checkpoint_db() == tmp_path / "cp.db"

    def test_xdg_data_dir(self, monkeypatch, tmp_path):
        monkeypatch.delenv("AUTOPILOT_DATA_DIR", raising=False)
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
        assert Settings().get_data_dir() == tmp_path / "autopilot"

    def test_missing_file_uses_defaults(self, tmp_path):
        settings = load_settings(tmp_path / "nope.yaml")
        assert settings.react.history_window == 3


class TestRedaction:
    def test_secrets_redacted(self):
        event = _filter_sensitive(None, "info", {"event": "x", "detail": "api_key=sk-ant-123"})
        assert "sk-ant-123" not in event["detail"]
        assert "REDACTED" in event["detail"]

    def test_non_strings_untouched(self):
        event = _filter_sensitive(None, "info", {"event": "x", "count": 3})
        assert event["count"] == 3
