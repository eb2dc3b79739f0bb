"""Centralized configuration management for daybook.

Supports:
- Built-in defaults
- User overrides from daybook.yaml
- Environment variable overrides (DAYBOOK_*)
- Nested key access with dot notation
- Typed, validated :class:`Settings`
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .time import resolve_timezone

__all__ = [
    "Config",
    "ConfigError",
    "DEFAULTS",
    "Settings",
    "load_settings",
]

DEFAULTS: dict[str, Any] = {
    "storage": {
        "path": "data",
        "enable_file_locks": True,
        "lock_timeout": 10.0,
        "write_retries": 3,
        "fsync": True,
    },
    "core": {
        "timezone": "local",
    },
    "rollover": {
        "archive_empty_days": False,
        "check_interval_seconds": 3600,
    },
    "retention": {
        "max_age_days": 30,
        "sweep_interval_seconds": 604800,
    },
    "logging": {
        "level": "INFO",
        "path": None,
    },
}

# Env var -> (config key, type)
ENV_MAPPINGS: dict[str, tuple[str, type]] = {
    "DAYBOOK_STORAGE_PATH": ("storage.path", str),
    "DAYBOOK_ENABLE_FILE_LOCKS": ("storage.enable_file_locks", bool),
    "DAYBOOK_LOCK_TIMEOUT": ("storage.lock_timeout", float),
    "DAYBOOK_WRITE_RETRIES": ("storage.write_retries", int),
    "DAYBOOK_TIMEZONE": ("core.timezone", str),
    "DAYBOOK_ARCHIVE_EMPTY_DAYS": ("rollover.archive_empty_days", bool),
    "DAYBOOK_ROLLOVER_INTERVAL": ("rollover.check_interval_seconds", float),
    "DAYBOOK_RETENTION_DAYS": ("retention.max_age_days", int),
    "DAYBOOK_SWEEP_INTERVAL": ("retention.sweep_interval_seconds", float),
    "DAYBOOK_LOG_LEVEL": ("logging.level", str),
    "DAYBOOK_LOG_PATH": ("logging.path", str),
}


class ConfigError(Exception):
    """Raised when configuration is missing or invalid."""

    pass


class Config:
    """Configuration with defaults, file overrides, and env vars.

    Configuration priority (highest to lowest):
    1. Environment variables (DAYBOOK_*)
    2. User config (daybook.yaml)
    3. Built-in defaults

    Example:
        >>> config = Config.load()
        >>> config.get("retention.max_age_days", 30)
        30
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data = data or {}

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> Config:
        """Load configuration from defaults, file and environment.

        Parameters
        ----------
        config_path
            Path to user config file (default: daybook.yaml, or $DAYBOOK_CONFIG)

        Raises
        ------
        ConfigError
            If an explicitly given config file is missing or unreadable
        """
        explicit = config_path is not None or "DAYBOOK_CONFIG" in os.environ
        if config_path is None:
            config_path = os.environ.get("DAYBOOK_CONFIG", "daybook.yaml")
        path = Path(config_path)

        user_config: dict[str, Any] = {}
        if path.exists():
            user_config = cls._load_yaml_file(path)
        elif explicit:
            raise ConfigError(f"Config file not found: {path}")

        merged = cls._deep_merge(copy.deepcopy(DEFAULTS), user_config)
        return cls(cls._apply_env_overrides(merged))

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot-notation key."""
        value: Any = self._data

        for part in key.split("."):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value by dot-notation key."""
        parts = key.split(".")
        data = self._data

        for part in parts[:-1]:
            data = data.setdefault(part, {})

        data[parts[-1]] = value

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)

    @staticmethod
    def _load_yaml_file(path: Path) -> dict[str, Any]:
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Failed to load config from {path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")

        return data

    @staticmethod
    def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = Config._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    @staticmethod
    def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
        result = Config(config)

        for env_var, (config_key, value_type) in ENV_MAPPINGS.items():
            raw = os.environ.get(env_var)
            if raw is None:
                continue

            try:
                value = _coerce(raw, value_type)
            except ValueError as exc:
                raise ConfigError(f"Invalid value for {env_var}: {raw!r}") from exc

            result.set(config_key, value)

        return result._data


def _coerce(raw: str, value_type: type) -> Any:
    if value_type is bool:
        lowered = raw.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ValueError(raw)
    return value_type(raw)


@dataclass
class Settings:
    """Typed settings for one daybook deployment.

    Attributes
    ----------
    storage_path : Path
        Root directory for the current bucket, marker and archives
    enable_file_locks : bool
        Take an fcntl lock around the bucket in addition to the thread lock
    lock_timeout : float
        Bucket lock acquisition timeout in seconds
    write_retries : int
        Retries for transient storage I/O errors
    fsync : bool
        Flush writes to disk
    timezone : str
        IANA timezone defining the calendar day ("local" for the server zone)
    archive_empty_days : bool
        Archive days that ended with no entries
    rollover_interval : float
        Seconds between scheduled rollover checks
    max_age_days : int
        Retention window for archives
    sweep_interval : float
        Seconds between scheduled retention sweeps
    log_level : str
        Logging level
    log_dir : Path | None
        Directory for JSONL logs (console only when unset)
    """

    storage_path: Path
    enable_file_locks: bool = True
    lock_timeout: float = 10.0
    write_retries: int = 3
    fsync: bool = True
    timezone: str = "local"
    archive_empty_days: bool = False
    rollover_interval: float = 3600
    max_age_days: int = 30
    sweep_interval: float = 604800
    log_level: str = "INFO"
    log_dir: Path | None = None

    def __post_init__(self) -> None:
        if isinstance(self.storage_path, str):
            self.storage_path = Path(self.storage_path)
        if isinstance(self.log_dir, str):
            self.log_dir = Path(self.log_dir)

        if not str(self.storage_path):
            raise ConfigError("storage.path is required (e.g., DAYBOOK_STORAGE_PATH=data)")
        if self.lock_timeout <= 0:
            raise ConfigError(f"storage.lock_timeout must be positive, got: {self.lock_timeout}")
        if self.write_retries < 0:
            raise ConfigError(f"storage.write_retries must be non-negative, got: {self.write_retries}")
        if self.max_age_days < 0:
            raise ConfigError(f"retention.max_age_days must be non-negative, got: {self.max_age_days}")
        if self.rollover_interval <= 0 or self.sweep_interval <= 0:
            raise ConfigError("Scheduler intervals must be positive")
        if self.log_level.upper() not in ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigError(f"Invalid logging.level: {self.log_level}")

        try:
            resolve_timezone(self.timezone)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc

    @classmethod
    def from_config(cls, config: Config) -> Settings:
        """Build typed settings from a loaded :class:`Config`.

        Raises
        ------
        ConfigError
            If values are missing or have the wrong type
        """
        try:
            log_path = config.get("logging.path")
            return cls(
                storage_path=Path(config.get("storage.path", "data")),
                enable_file_locks=bool(config.get("storage.enable_file_locks", True)),
                lock_timeout=float(config.get("storage.lock_timeout", 10.0)),
                write_retries=int(config.get("storage.write_retries", 3)),
                fsync=bool(config.get("storage.fsync", True)),
                timezone=str(config.get("core.timezone", "local")),
                archive_empty_days=bool(config.get("rollover.archive_empty_days", False)),
                rollover_interval=float(config.get("rollover.check_interval_seconds", 3600)),
                max_age_days=int(config.get("retention.max_age_days", 30)),
                sweep_interval=float(config.get("retention.sweep_interval_seconds", 604800)),
                log_level=str(config.get("logging.level", "INFO")).upper(),
                log_dir=Path(log_path) if log_path else None,
            )
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load configuration and return typed settings.

    Raises
    ------
    ConfigError
        If required settings are missing or invalid
    """
    return Settings.from_config(Config.load(config_path))
