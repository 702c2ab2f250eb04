"""Configuration schema for the automaton sandbox tooling.

Configuration is loaded from a YAML or JSON file (JSON is valid YAML, so the
automaton's own `automaton.json` can be read directly).
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .conway.client import DEFAULT_API_URL
from .conway.paths import SANDBOX_AUTOMATON_DIR, resolve_sandbox_path

DEFAULT_CONFIG_PATH = "~/.automaton/automaton.yml"


class ConwayApiConfig(BaseModel):
    """Conway control-plane connection settings."""

    api_url: str = DEFAULT_API_URL
    api_key: str = ""
    timeout_seconds: int = 30

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid api_url: {v}. Must start with http:// or https://")
        return v


class StateConfig(BaseModel):
    """Where state lives locally and inside the sandbox."""

    local_dir: str = "~/.automaton"
    sandbox_dir: str = SANDBOX_AUTOMATON_DIR

    @field_validator("sandbox_dir")
    @classmethod
    def validate_sandbox_dir(cls, v: str) -> str:
        return resolve_sandbox_path(v)


class GitConfig(BaseModel):
    """Identity and defaults for state commits."""

    author_name: str = "Automaton"
    author_email: str = "automaton@conway.tech"
    history_limit: int = 20

    @field_validator("history_limit")
    @classmethod
    def validate_history_limit(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("history_limit must be positive")
        return v


class TelemetryConfig(BaseModel):
    """Telemetry and logging configuration."""

    enabled: bool = True
    log_path: str = "~/.automaton/logs/telemetry.jsonl"


class AutomatonConfig(BaseModel):
    """Complete configuration."""

    name: str = "automaton"
    sandbox_id: str = ""
    log_level: str = "info"
    conway: ConwayApiConfig = Field(default_factory=ConwayApiConfig)
    state: StateConfig = Field(default_factory=StateConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.strip().lower()
        valid_levels = {"debug", "info", "warn", "warning", "error"}
        if v not in valid_levels:
            raise ValueError(f"Invalid log_level: {v}. Must be one of {valid_levels}")
        return "warning" if v == "warn" else v

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_keys(cls, data: Any) -> Any:
        """Map flat camelCase keys from automaton.json onto the nested schema."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        conway = dict(data.get("conway") or {})
        if "conwayApiUrl" in data:
            conway.setdefault("api_url", data.pop("conwayApiUrl"))
        if "conwayApiKey" in data:
            conway.setdefault("api_key", data.pop("conwayApiKey"))
        if conway:
            data["conway"] = conway
        if "sandboxId" in data:
            data.setdefault("sandbox_id", data.pop("sandboxId"))
        if "logLevel" in data:
            data.setdefault("log_level", data.pop("logLevel"))
        return data

    @classmethod
    def load_from_file(cls, config_path: Path | str) -> AutomatonConfig:
        """Load configuration from a YAML (or JSON) file."""
        config_path = Path(config_path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {config_path}")
        return cls(**data)

    def apply_env_overrides(self) -> None:
        """Apply environment variable overrides to configuration."""
        if url := os.getenv("CONWAY_API_URL"):
            self.conway = ConwayApiConfig(**{**self.conway.model_dump(), "api_url": url})
        if key := os.getenv("CONWAY_API_KEY"):
            self.conway.api_key = key

        if name := os.getenv("AUTOMATON_NAME"):
            self.name = name
        if sandbox_id := os.getenv("AUTOMATON_SANDBOX_ID"):
            self.sandbox_id = sandbox_id
        if local_dir := os.getenv("AUTOMATON_LOCAL_DIR"):
            self.state.local_dir = local_dir

        if log_path := os.getenv("AUTOMATON_TELEMETRY_PATH"):
            self.telemetry.log_path = log_path
        if os.getenv("AUTOMATON_TELEMETRY") == "0":
            self.telemetry.enabled = False

    def resolved_local_dir(self) -> Path:
        return Path(self.state.local_dir).expanduser()

    def resolved_telemetry_path(self) -> Path:
        return Path(self.telemetry.log_path).expanduser()


def load_config(config_path: Path | str | None = None) -> AutomatonConfig:
    """
    Load configuration, falling back to defaults when no file exists.

    Args:
        config_path: Path to the config file (default: ~/.automaton/automaton.yml)

    Returns:
        Loaded and validated configuration with env overrides applied
    """
    path = Path(config_path or DEFAULT_CONFIG_PATH).expanduser()
    if path.exists():
        config = AutomatonConfig.load_from_file(path)
    else:
        config = AutomatonConfig()
    config.apply_env_overrides()
    return config
