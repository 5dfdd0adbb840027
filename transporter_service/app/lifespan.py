"""Application lifespan management.

Startup: logging, database, taskiq broker (when configured).
Shutdown: reverse order.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import TYPE_CHECKING

from transporter_service.core.settings import get_app_settings, get_logging_settings
from transporter_service.infra.database import close_database, init_database
from transporter_service.infra.logging import setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

logger = logging.getLogger(__name__)


async def _startup_tasks() -> None:
    # Importing registers the scheduled work-off task with the broker
    from transporter_service.tasks import transporter  # noqa: F401
    from transporter_service.tasks.broker import broker

    if broker is not None and not broker.is_worker_process:
        await broker.startup()
        logger.info("Taskiq broker started")


async def _shutdown_tasks() -> None:
    from transporter_service.tasks.broker import broker

    if broker is not None and not broker.is_worker_process:
        await broker.shutdown()
        logger.info("Taskiq broker closed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    Args:
        app: FastAPI application instance.

    Yields:
        None during application runtime.
    """
    _ = app
    setup_logging(get_logging_settings())
    app_settings = get_app_settings()

    if app_settings.create_tables_on_startup:
        await init_database()
    await _startup_tasks()

    logger.info("Application started", extra={"version": app_settings.version})
    try:
        yield
    finally:
        await _shutdown_tasks()
        await close_database()
        logger.info("Application stopped")
