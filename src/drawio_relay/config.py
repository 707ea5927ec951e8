"""
Configuration for the relay.

Settings can be built programmatically, loaded from YAML, and overridden
from ``DRAWIO_RELAY_*`` environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from drawio_relay.models import ConfigError

DEFAULT_HTTP_PORT = 3000
DEFAULT_HOST = "0.0.0.0"
# Batch-capable agents; the earlier single-op agents answered within 10s.
DEFAULT_COMMAND_TIMEOUT = 30.0
LEGACY_COMMAND_TIMEOUT = 10.0

ENV_PREFIX = "DRAWIO_RELAY_"


def config_search_paths() -> list[Path]:
    """Config file locations, highest priority first."""
    return [
        Path.cwd() / "drawio-relay.yaml",
        Path.home() / ".config" / "drawio-relay" / "config.yaml",
    ]


def _as_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}")


def _as_float(name: str, value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}")
    if number <= 0:
        raise ConfigError(f"{name} must be positive, got {value!r}")
    return number


@dataclass
class RelayConfig:
    """
    Relay settings.

    Example YAML:
        host: 0.0.0.0
        port: 3000
        command_timeout: 30
        cors_origins:
          - "*"
        log_level: INFO
    """

    host: str = DEFAULT_HOST  # Bind address
    port: int = DEFAULT_HTTP_PORT  # 0 picks a free port
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT  # Seconds per command
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    log_file: str | None = None
    server_name: str = "drawio-relay"  # Name announced to MCP clients

    def __post_init__(self) -> None:
        self.port = _as_int("port", self.port)
        if not 0 <= self.port <= 65535:
            raise ConfigError(f"port out of range: {self.port}")
        self.command_timeout = _as_float("command_timeout", self.command_timeout)
        if self.cors_origins is None:
            self.cors_origins = ["*"]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RelayConfig:
        """Create config from a dictionary; unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_yaml(cls, path: Path) -> RelayConfig:
        """Load config from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_yaml_string(cls, content: str) -> RelayConfig:
        """Load config from a YAML string."""
        data = yaml.safe_load(content)
        return cls.from_dict(data or {})

    def to_dict(self) -> dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "command_timeout": self.command_timeout,
            "cors_origins": list(self.cors_origins),
            "log_level": self.log_level,
            "log_file": self.log_file,
            "server_name": self.server_name,
        }

    def apply_env(self, environ: dict[str, str] | None = None) -> RelayConfig:
        """Override fields from ``DRAWIO_RELAY_*`` variables, in place."""
        env = os.environ if environ is None else environ

        if env.get(f"{ENV_PREFIX}HOST"):
            self.host = env[f"{ENV_PREFIX}HOST"]
        if env.get(f"{ENV_PREFIX}PORT"):
            self.port = _as_int(f"{ENV_PREFIX}PORT", env[f"{ENV_PREFIX}PORT"])
        if env.get(f"{ENV_PREFIX}TIMEOUT"):
            self.command_timeout = _as_float(f"{ENV_PREFIX}TIMEOUT", env[f"{ENV_PREFIX}TIMEOUT"])
        if env.get(f"{ENV_PREFIX}LOG_LEVEL"):
            self.log_level = env[f"{ENV_PREFIX}LOG_LEVEL"].upper()
        return self


def find_config_file() -> Path | None:
    """Return the first existing file among the search paths."""
    for path in config_search_paths():
        if path.exists():
            return path
    return None


def load_config(path: Path | None = None, environ: dict[str, str] | None = None) -> RelayConfig:
    """Load config from ``path`` (or the search paths), then apply the environment."""
    path = path or find_config_file()
    config = RelayConfig.from_yaml(path) if path else RelayConfig()
    return config.apply_env(environ)
