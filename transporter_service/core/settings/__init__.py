"""Modular Pydantic Settings v2 configuration.

One settings model per domain, each read from environment variables with its
own prefix (APP_, DB_, LOG_, TASK_, TRANSPORTER_, WORKER_) and an optional .env file.

Import settings via the cached loaders:
    from transporter_service.core.settings import get_transporter_settings
"""

from __future__ import annotations

from .app import AppSettings
from .database import DatabaseSettings
from .loader import (
    clear_settings_cache,
    get_app_settings,
    get_db_settings,
    get_logging_settings,
    get_task_settings,
    get_transporter_settings,
    get_worker_settings,
)
from .logs import LoggingSettings
from .tasks import TaskSettings
from .transporter import TransporterSettings
from .worker import WorkerSettings

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "TaskSettings",
    "TransporterSettings",
    "WorkerSettings",
    "clear_settings_cache",
    "get_app_settings",
    "get_db_settings",
    "get_logging_settings",
    "get_task_settings",
    "get_transporter_settings",
    "get_worker_settings",
]
