"""Centralized configuration for the test-case registry.

Configuration is loaded from ``registry.yaml`` in the config directory and
validated at startup. Every value has a documented default, so a missing
file simply yields the defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from tcregistry.utils.result import ConfigError, Err, Ok, Result

CONFIG_FILENAME = "registry.yaml"
STORE_ENV_VAR = "TCREGISTRY_STORE"


@dataclass
class StorageConfig:
    """Where and how the store file is written."""

    path: Path = Path("tcregistry.json")
    autosave: bool = True
    indent: int = 2


@dataclass
class ExecutionConfig:
    """Rules applied when recording executions."""

    # Cases without steps cannot be executed
    require_steps: bool = True


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str = "info"
    format: str = "json"


@dataclass
class RegistryConfig:
    """
    Complete registry configuration.

    This is the single source of truth for all configuration values.
    """

    storage: StorageConfig = field(default_factory=StorageConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    config_dir: Optional[Path] = None

    @classmethod
    def from_yaml(cls, path: Path) -> Result["RegistryConfig", ConfigError]:
        """
        Load configuration from a YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Result with loaded config or error
        """
        path = Path(path)

        if not path.exists():
            return Err(ConfigError(
                field="path",
                message=f"Configuration file not found: {path}",
            ))

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            return Err(ConfigError(
                field="yaml",
                message=f"Failed to parse YAML: {e}",
            ))
        except OSError as e:
            return Err(ConfigError(
                field="file",
                message=f"Failed to read config file: {e}",
            ))

        if not isinstance(data, dict):
            return Err(ConfigError(
                field="yaml",
                message="Top level of the configuration must be a mapping",
            ))

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Result["RegistryConfig", ConfigError]:
        """
        Create configuration from a dictionary.

        Args:
            data: Configuration dictionary

        Returns:
            Result with loaded config or error
        """
        try:
            storage_data = data.get("storage") or {}
            storage = StorageConfig(
                path=Path(storage_data.get("path", "tcregistry.json")),
                autosave=storage_data.get("autosave", True),
                indent=int(storage_data.get("indent", 2)),
            )

            execution_data = data.get("execution") or {}
            execution = ExecutionConfig(
                require_steps=execution_data.get("require_steps", True),
            )

            logging_data = data.get("logging") or {}
            logging_config = LoggingConfig(
                level=str(logging_data.get("level", "info")),
                format=str(logging_data.get("format", "json")),
            )
        except (AttributeError, TypeError, ValueError) as e:
            return Err(ConfigError(
                field="unknown",
                message=f"Failed to parse configuration: {e}",
            ))

        return Ok(cls(storage=storage, execution=execution, logging=logging_config))

    def validate(self) -> Result[None, ConfigError]:
        """
        Validate configuration values.

        Returns:
            Result indicating success or validation error
        """
        flags = (
            ("storage.autosave", self.storage.autosave),
            ("execution.require_steps", self.execution.require_steps),
        )
        for name, value in flags:
            # YAML booleans only
            if not isinstance(value, bool):
                return Err(ConfigError(
                    field=name,
                    message=f"Must be true or false, got {value!r}",
                ))

        if self.storage.indent < 0:
            return Err(ConfigError(
                field="storage.indent",
                message=f"Must be at least 0, got {self.storage.indent}",
            ))

        if self.logging.level.lower() not in ("debug", "info", "warn", "warning", "error"):
            return Err(ConfigError(
                field="logging.level",
                message=f"Unknown level {self.logging.level!r}",
            ))
        if self.logging.format not in ("json", "text"):
            return Err(ConfigError(
                field="logging.format",
                message=f"Must be 'json' or 'text', got {self.logging.format!r}",
            ))

        return Ok(None)

    def with_store_path(self, path: Optional[Path]) -> "RegistryConfig":
        """Return a new config using ``path`` as the store file, if given."""
        if path is None:
            return self
        return replace(self, storage=replace(self.storage, path=Path(path)))


def load_config(config_dir: Path = None) -> Result[RegistryConfig, ConfigError]:
    """
    Load configuration from the standard location.

    Loads ``<config_dir>/registry.yaml`` when present, then applies the
    TCREGISTRY_STORE environment override for the store path.

    Args:
        config_dir: Configuration directory (defaults to ./config)

    Returns:
        Result with loaded config or error
    """
    if config_dir is None:
        config_dir = Path("./config")

    config_dir = Path(config_dir)

    config_path = config_dir / CONFIG_FILENAME
    if config_path.exists():
        result = RegistryConfig.from_yaml(config_path)
        if result.is_err():
            return result
        config = result.unwrap()
    else:
        config = RegistryConfig()

    config.config_dir = config_dir
    config = config.with_store_path(get_env_store_path())

    validation_result = config.validate()
    if validation_result.is_err():
        return Err(validation_result.unwrap_err())

    return Ok(config)


def get_env_store_path() -> Optional[Path]:
    """Get the store path override from the environment."""
    value = os.environ.get(STORE_ENV_VAR)
    return Path(value) if value else None
