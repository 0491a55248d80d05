"""
Configuration module for the realm server.

Usage:
    from realm.config import get_config

    config = get_config()
    logger.info("Database configuration", url=config.database.url)
"""

import sys
import threading
from functools import lru_cache
from os import getenv

from pydantic import ValidationError

from ..exceptions import ConfigurationError
from .models import AppConfig

__all__ = ["get_config", "reset_config", "AppConfig"]

_config_instance: AppConfig | None = None
_config_lock = threading.Lock()


def _is_test_mode() -> bool:
    """Detect pytest so every test sees the environment it set up."""
    if "pytest" in sys.modules:
        return True
    return bool(getenv("PYTEST_CURRENT_TEST"))


def _load() -> AppConfig:
    try:
        return AppConfig()
    except ValidationError as exc:
        first = exc.errors()[0]
        key = ".".join(str(part) for part in first["loc"]) or None
        raise ConfigurationError(f"Invalid configuration: {first['msg']}", config_key=key) from exc


@lru_cache(maxsize=1)
def _get_config_cached() -> AppConfig:
    """Production config loader with caching."""
    global _config_instance  # pylint: disable=global-statement
    with _config_lock:
        if _config_instance is None:
            _config_instance = _load()
    return _config_instance


def get_config() -> AppConfig:
    """
    Get application configuration (singleton in production, fresh in tests).

    Configuration is loaded from environment variables and the .env file.

    Raises:
        ConfigurationError: If configuration values are invalid
    """
    if _is_test_mode():
        return _load()
    return _get_config_cached()


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() reloads it."""
    global _config_instance  # pylint: disable=global-statement
    with _config_lock:
        _get_config_cached.cache_clear()
        _config_instance = None
