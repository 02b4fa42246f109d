"""Configuration management with Pydantic Settings + optional YAML."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_NAME = "autopilot"

# kind -> (env var, fallback relative to home)
_WINDOWS_DIRS = {
    "config": ("APPDATA", Path("AppData", "Roaming")),
    "data": ("LOCALAPPDATA", Path("AppData", "Local")),
}
_XDG_DIRS = {
    "config": ("XDG_CONFIG_HOME", Path(".config")),
    "data": ("XDG_DATA_HOME", Path(".local", "share")),
}


def _user_dir(kind: str) -> Path:
    """Per-user directory for ``kind`` ("config" or "data").

    ``AUTOPILOT_CONFIG_DIR`` / ``AUTOPILOT_DATA_DIR`` win over platform defaults.
    """
    override = os.environ.get(f"AUTOPILOT_{kind.upper()}_DIR")
    if override:
        return Path(override)

    home = Path.home()
    if sys.platform == "darwin":
        return home / "Library" / "Application Support" / APP_NAME
    if sys.platform == "win32":
        var, fallback = _WINDOWS_DIRS[kind]
    else:
        var, fallback = _XDG_DIRS[kind]
    return Path(os.environ.get(var, home / fallback)) / APP_NAME


class LLMConfig(BaseModel):
    provider: str = "anthropic"
    model: str = "claude-sonnet-4-20250514"
    api_key: str = ""
    endpoint: str = "http://localhost:11434/v1"  # local provider only
    max_tokens: int = 2048
    temperature: float = 0.7
    timeout: float = 120.0


class WorkflowConfig(BaseModel):
    max_iterations: int = 50
    max_step_retries: int = 3
    max_checkpoints: int = 20
    checkpoint_db: str = ""


class CorrectionConfig(BaseModel):
    enabled: bool = True
    max_retries: int = 3
    # Results with neither a success nor a failure marker count as success
    fail_open: bool = True


class ReActConfig(BaseModel):
    max_steps: int = 0  # 0 = derive from task complexity
    history_window: int = 3
    thought_temperature: float = 0.3
    thought_max_tokens: int = 500
    correction_retries: int = 2


class ContinuationConfig(BaseModel):
    cooldown_seconds: float = 2.0


class StreamConfig(BaseModel):
    update_interval: float = 0.05
    chars_per_update: int = 50
    max_buffer_size: int = 100
    tool_detection: bool = True


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="AUTOPILOT_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    planner: LLMConfig = Field(default_factory=LLMConfig)
    executor: LLMConfig | None = None
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig)
    correction: CorrectionConfig = Field(default_factory=CorrectionConfig)
    react: ReActConfig = Field(default_factory=ReActConfig)
    continuation: ContinuationConfig = Field(default_factory=ContinuationConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    data_dir: str = ""
    log_level: str = "INFO"
    log_json: bool = False

    def get_data_dir(self) -> Path:
        if self.data_dir:
            return Path(self.data_dir)
        return _user_dir("data")

    def get_checkpoint_db(self) -> Path | None:
        if not self.workflow.checkpoint_db:
            return None
        path = Path(self.workflow.checkpoint_db).expanduser()
        # Relative paths live under the data directory
        return path if path.is_absolute() else self.get_data_dir() / path


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from env vars, optionally overlaying a YAML config."""
    yaml_data: dict[str, Any] = {}

    # Determine config file path
    if config_path is None:
        config_path = os.environ.get("AUTOPILOT_CONFIG")
    if config_path is None:
        default = _user_dir("config") / "config.yaml"
        if default.exists():
            config_path = default

    # Load YAML if found
    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                yaml_data = yaml.safe_load(f) or {}

    if overrides:
        yaml_data = _deep_merge(yaml_data, overrides)

    # Build settings: YAML values as defaults, env vars override
    return Settings(**yaml_data)
