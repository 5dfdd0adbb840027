"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the process.

Usage:
    from transporter_service.core.settings.loader import get_transporter_settings

    settings = get_transporter_settings()  # First call: loads and validates
    settings = get_transporter_settings()  # Subsequent calls: cached instance

Testing:
    In tests, clear the cache to force reload:
    get_transporter_settings.cache_clear()
"""

from __future__ import annotations

from functools import lru_cache

from .app import AppSettings
from .database import DatabaseSettings
from .logs import LoggingSettings
from .tasks import TaskSettings
from .transporter import TransporterSettings
from .worker import WorkerSettings


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """Get cached application settings.

    Returns:
        Validated and frozen AppSettings instance.
    """
    return AppSettings()


@lru_cache(maxsize=1)
def get_db_settings() -> DatabaseSettings:
    """Get cached database settings.

    Returns:
        Validated and frozen DatabaseSettings instance.
    """
    return DatabaseSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings.

    Returns:
        Validated and frozen LoggingSettings instance.
    """
    return LoggingSettings()


@lru_cache(maxsize=1)
def get_task_settings() -> TaskSettings:
    """Get cached taskiq settings.

    Returns:
        Validated and frozen TaskSettings instance.
    """
    return TaskSettings()


@lru_cache(maxsize=1)
def get_transporter_settings() -> TransporterSettings:
    """Get cached transporter settings.

    Returns:
        Validated and frozen TransporterSettings instance.
    """
    return TransporterSettings()


@lru_cache(maxsize=1)
def get_worker_settings() -> WorkerSettings:
    """Get cached worker settings.

    Returns:
        Validated and frozen WorkerSettings instance.
    """
    return WorkerSettings()


def clear_settings_cache() -> None:
    """Drop every cached settings instance (tests, config reloads)."""
    get_app_settings.cache_clear()
    get_db_settings.cache_clear()
    get_logging_settings.cache_clear()
    get_task_settings.cache_clear()
    get_transporter_settings.cache_clear()
    get_worker_settings.cache_clear()
