"""Configuration loading for coursegate.

Settings come from an optional YAML file and are then overridden by
environment variables:

    database:
      path: coursegate.db
      busy_timeout_ms: 30000
    admission:
      default_max_credits: 18
      lock_timeout: 10
    logging:
      dir: logs
      level: INFO
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_FILE = "coursegate.yaml"

ENV_CONFIG_FILE = "COURSEGATE_CONFIG"
ENV_DB_PATH = "COURSEGATE_DB_PATH"
ENV_DEFAULT_MAX_CREDITS = "COURSEGATE_DEFAULT_MAX_CREDITS"
ENV_LOCK_TIMEOUT = "COURSEGATE_LOCK_TIMEOUT"
ENV_LOG_DIR = "COURSEGATE_LOG_DIR"
ENV_LOG_LEVEL = "COURSEGATE_LOG_LEVEL"


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""


@dataclass
class DatabaseConfig:
    """Registrar database settings."""

    path: str = "coursegate.db"
    busy_timeout_ms: int = 30_000


@dataclass
class AdmissionConfig:
    """Admission engine settings."""

    default_max_credits: int = 18
    lock_timeout: float = 10.0


@dataclass
class LoggingConfig:
    """Log output settings."""

    dir: str = "logs"
    level: str = "INFO"


@dataclass
class EngineConfig:
    """Top-level coursegate configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    admission: AdmissionConfig = field(default_factory=AdmissionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineConfig:
        """Create config from a dictionary.

        Args:
            data: Configuration dictionary, usually parsed from YAML.

        Returns:
            Parsed configuration object.

        Raises:
            ConfigError: If a section is not a mapping or a value is invalid.
        """
        sections = {}
        for name in ("database", "admission", "logging"):
            section = data.get(name) or {}
            if not isinstance(section, dict):
                raise ConfigError(f"Section '{name}' must be a mapping")
            sections[name] = section

        database = sections["database"]
        admission = sections["admission"]
        logging_section = sections["logging"]

        config = cls(
            database=DatabaseConfig(
                path=str(database.get("path", "coursegate.db")),
                busy_timeout_ms=_as_int(
                    database.get("busy_timeout_ms", 30_000), "busy_timeout_ms"
                ),
            ),
            admission=AdmissionConfig(
                default_max_credits=_as_int(
                    admission.get("default_max_credits", 18), "default_max_credits"
                ),
                lock_timeout=_as_float(admission.get("lock_timeout", 10.0), "lock_timeout"),
            ),
            logging=LoggingConfig(
                dir=str(logging_section.get("dir", "logs")),
                level=str(logging_section.get("level", "INFO")).upper(),
            ),
        )
        config.validate()
        return config

    def apply_env(self, environ: Mapping[str, str] | None = None) -> EngineConfig:
        """Override settings from environment variables.

        Args:
            environ: Environment mapping. Defaults to os.environ.

        Returns:
            self, for chaining.
        """
        env = os.environ if environ is None else environ
        if ENV_DB_PATH in env:
            self.database.path = env[ENV_DB_PATH]
        if ENV_DEFAULT_MAX_CREDITS in env:
            self.admission.default_max_credits = _as_int(
                env[ENV_DEFAULT_MAX_CREDITS], ENV_DEFAULT_MAX_CREDITS
            )
        if ENV_LOCK_TIMEOUT in env:
            self.admission.lock_timeout = _as_float(env[ENV_LOCK_TIMEOUT], ENV_LOCK_TIMEOUT)
        if ENV_LOG_DIR in env:
            self.logging.dir = env[ENV_LOG_DIR]
        if ENV_LOG_LEVEL in env:
            self.logging.level = env[ENV_LOG_LEVEL].upper()
        self.validate()
        return self

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            ConfigError: If a value is out of range.
        """
        if self.admission.default_max_credits <= 0:
            raise ConfigError("default_max_credits must be positive")
        if self.admission.lock_timeout <= 0:
            raise ConfigError("lock_timeout must be positive")
        if self.database.busy_timeout_ms < 0:
            raise ConfigError("busy_timeout_ms must not be negative")


def _as_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from e


def _as_float(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number, got {value!r}") from e


def load_config(config_path: Path | str | None = None) -> EngineConfig:
    """Load configuration from YAML (if present) and the environment.

    Args:
        config_path: Path to a YAML file. Defaults to $COURSEGATE_CONFIG, then
            ./coursegate.yaml. A missing default file is not an error.

    Returns:
        Parsed configuration object.

    Raises:
        ConfigError: If an explicitly named file doesn't exist or is invalid.
    """
    explicit = config_path is not None or ENV_CONFIG_FILE in os.environ
    path = Path(config_path or os.environ.get(ENV_CONFIG_FILE, DEFAULT_CONFIG_FILE))

    if not path.exists():
        if explicit:
            raise ConfigError(f"Configuration file not found: {path}")
        return EngineConfig().apply_env()

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration must be a YAML mapping, got {type(data).__name__}")

    return EngineConfig.from_dict(data).apply_env()
