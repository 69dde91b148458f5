"""Settings loader and singleton manager.

This module handles:
- Environment variable loading from .env files
- Configuration file loading from TOML
- Thread-safe singleton access to the Settings instance
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

import toml
from dotenv import load_dotenv
from pydantic import ValidationError

from catalogvault.config.models.settings import Settings
from catalogvault.shared.errors import (
    ConfigurationError,
    ErrorCode,
    ErrorContext,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATHS = (
    Path("config/config.toml"),
    Path("config.toml"),
    Path.home() / ".catalogvault" / "config.toml",
)


class SettingsLoader:
    """Thread-safe singleton manager for Settings.

    Uses double-checked locking so the common read path takes no lock.
    """

    _instance: Settings | None = None
    _lock: threading.RLock = threading.RLock()

    def get_config(self) -> Settings:
        """Get the global settings instance, loading it on first use."""
        if self._instance is None:
            with self._lock:
                if self._instance is None:
                    self._instance = load_settings()

        return self._instance

    def reload_config(self, config_path: str | Path | None = None) -> Settings:
        """Reload the global settings instance from configuration files."""
        with self._lock:
            self._instance = load_settings(config_path)

        return self._instance

    def reset(self) -> None:
        """Forget the cached instance (used by tests)."""
        with self._lock:
            self._instance = None


def _load_env_file(env_file: Path = Path(".env")) -> None:
    """Load environment variables from a .env file when one exists.

    Values already present in the process environment win.
    """
    if not env_file.exists():
        return

    try:
        load_dotenv(env_file, override=False)
    except OSError as e:
        raise ConfigurationError(
            code=ErrorCode.INVALID_CONFIG,
            message=f"Failed to read .env file: {e}",
            context=ErrorContext(
                operation="load_env",
                additional_data={"file_name": env_file.name},
            ),
            original_error=e,
        ) from e


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from TOML configuration file or environment.

    Args:
        config_path: Optional path to a TOML file. When None, the default
            locations are tried before falling back to environment only.

    Raises:
        ConfigurationError: If the file is missing or fails validation.
    """
    _load_env_file()

    candidates = [Path(config_path)] if config_path else list(DEFAULT_CONFIG_PATHS)

    try:
        for candidate in candidates:
            if candidate.exists() or config_path:
                logger.debug("Loading configuration from %s", candidate)
                return Settings.from_toml_file(candidate)
        return Settings()
    except FileNotFoundError as e:
        raise ConfigurationError(
            code=ErrorCode.CONFIGURATION_ERROR,
            message=str(e),
            context=ErrorContext(
                operation="load_settings",
                additional_data={"config_path": str(config_path)},
            ),
            original_error=e,
        ) from e
    except toml.TomlDecodeError as e:
        raise ConfigurationError(
            code=ErrorCode.INVALID_CONFIG,
            message=f"Malformed TOML configuration: {e!s}",
            context=ErrorContext(
                operation="load_settings",
                additional_data={"config_path": str(config_path or "")},
            ),
            original_error=e,
        ) from e
    except ValidationError as e:
        raise ConfigurationError(
            code=ErrorCode.INVALID_CONFIG,
            message=f"Invalid configuration: {e.error_count()} validation error(s)",
            context=ErrorContext(
                operation="load_settings",
                additional_data={"config_path": str(config_path or "")},
            ),
            original_error=e,
        ) from e


_settings_loader = SettingsLoader()


def get_config() -> Settings:
    """Get the global settings instance."""
    return _settings_loader.get_config()


def reload_config(config_path: str | Path | None = None) -> Settings:
    """Reload the global settings instance."""
    return _settings_loader.reload_config(config_path)


def reset_config() -> None:
    """Drop the global settings instance."""
    _settings_loader.reset()


__all__ = [
    "SettingsLoader",
    "get_config",
    "load_settings",
    "reload_config",
    "reset_config",
]
