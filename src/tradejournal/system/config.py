"""
System configuration for tradejournal.

One configuration for the whole application, loaded from YAML and merged
over built-in defaults.

Sections:
    - journal: Which lot ledger backend to use and where it lives
    - prices: Price gateway caching and optional static quotes file
    - logging: Logging configuration (converted to log_system.LoggingConfig)

Lookup order for the configuration file:
    1. Explicit path passed to SystemConfig.load()
    2. $TRADEJOURNAL_CONFIG
    3. config/tradejournal.yaml (relative to the working directory)
    4. Built-in defaults
"""

import os
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Literal

import yaml

from tradejournal.system.log_system import LoggingConfig as LoggerConfig

CONFIG_ENV_VAR = "TRADEJOURNAL_CONFIG"
DEFAULT_CONFIG_PATH = Path("config/tradejournal.yaml")

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


@dataclass
class JournalConfig:
    """Lot ledger configuration."""

    ledger_backend: Literal["sqlite", "memory"] = "sqlite"
    database_path: str = "tradejournal.db"


@dataclass
class PriceConfig:
    """Price gateway configuration."""

    cache_expiry_minutes: int = 5
    quotes_file: str | None = None


@dataclass
class LoggingConfig:
    """Logging section of the system configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json"] = "console"
    timestamp_format: Literal["iso", "compact", "time", "short"] = "compact"
    enable_file: bool = True
    file_path: str = "logs/tradejournal.log"
    file_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    file_rotation: bool = True
    max_file_size_mb: int = 10
    backup_count: int = 3

    def to_logger_config(self) -> LoggerConfig:
        """Convert to the pydantic LoggingConfig used by LoggerFactory."""
        return LoggerConfig(
            level=self.level,
            format=self.format,
            timestamp_format=self.timestamp_format,
            enable_file=self.enable_file,
            file_path=Path(self.file_path),
            file_level=self.file_level,
            file_rotation=self.file_rotation,
            max_file_size_mb=self.max_file_size_mb,
            backup_count=self.backup_count,
        )


@dataclass
class SystemConfig:
    """Complete application configuration."""

    journal: JournalConfig = field(default_factory=JournalConfig)
    prices: PriceConfig = field(default_factory=PriceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, path: Path | str | None = None) -> "SystemConfig":
        """
        Load configuration from YAML, falling back to defaults.

        Args:
            path: Explicit config file. If None, $TRADEJOURNAL_CONFIG and then
                config/tradejournal.yaml are tried.

        Returns:
            SystemConfig with file values merged over defaults
        """
        config_path = _resolve_config_path(path)

        if config_path is None or not config_path.exists():
            return cls()

        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

        merged = _deep_merge(asdict(cls()), _substitute_env_vars(raw))
        return cls._from_dict(merged)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "SystemConfig":
        """Build config from a (possibly partial) dictionary."""
        return cls(
            journal=JournalConfig(**data.get("journal", {})),
            prices=PriceConfig(**data.get("prices", {})),
            logging=LoggingConfig(**data.get("logging", {})),
        )


def _resolve_config_path(path: Path | str | None) -> Path | None:
    if path is not None:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    if DEFAULT_CONFIG_PATH.exists():
        return DEFAULT_CONFIG_PATH
    return None


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into a copy of base (override wins)."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _substitute_env_vars(value: Any) -> Any:
    """Replace ${VAR} placeholders in strings; undefined variables are left as-is."""
    if isinstance(value, dict):
        return {key: _substitute_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    if isinstance(value, str):
        return _ENV_VAR_PATTERN.sub(lambda m: os.environ.get(m.group(1), m.group(0)), value)
    return value


_system_config: SystemConfig | None = None


def get_system_config(path: Path | str | None = None) -> SystemConfig:
    """
    Get the system config singleton.

    Args:
        path: Optional explicit config file; when given, the file is loaded
            and replaces the cached instance.
    """
    global _system_config
    if path is not None or _system_config is None:
        _system_config = SystemConfig.load(path)
    return _system_config


def reload_system_config(path: Path | str | None = None) -> SystemConfig:
    """Force a reload of the system config singleton."""
    global _system_config
    _system_config = SystemConfig.load(path)
    return _system_config
