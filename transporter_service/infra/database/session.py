"""Database session management for the async SQLAlchemy engine."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from transporter_service.core.database import Base
from transporter_service.core.settings import get_db_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from transporter_service.core.settings import DatabaseSettings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None


def create_engine_from_settings(db_settings: DatabaseSettings) -> AsyncEngine:
    """Build an async engine for the configured URL.

    SQLite connections get foreign keys switched on so that job rows cannot
    reference a missing account.
    """
    engine = create_async_engine(
        db_settings.url,
        echo=db_settings.echo,
        pool_pre_ping=db_settings.pool_pre_ping,
    )

    if db_settings.is_sqlite:

        @event.listens_for(engine.sync_engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_conn, connection_record) -> None:
            _ = connection_record
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = create_engine_from_settings(get_db_settings())
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    global _sessionmaker
    if _sessionmaker is None:
        _sessionmaker = create_sessionmaker(get_engine())
    return _sessionmaker


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Get async database session.

    Yields:
        Database session that is automatically closed.

    Example:
        async with get_async_session() as session:
            jobs = await JobStore().completed(session)
    """
    async with get_sessionmaker()() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_database(engine: AsyncEngine | None = None) -> None:
    """Check connectivity and create any missing tables.

    Raises:
        sqlalchemy.exc.SQLAlchemyError: If the database is unreachable.
    """
    # Registers the job tables on Base.metadata
    from transporter_service.infra.tasks.jobs import models  # noqa: F401

    engine = engine or get_engine()
    logger.info("Initializing database", extra={"url": engine.url.render_as_string()})

    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            await conn.run_sync(Base.metadata.create_all)
    except Exception as e:
        logger.error("Failed to initialize database", extra={"error": str(e)})
        raise

    logger.info("Database initialized", extra={"tables": sorted(Base.metadata.tables)})


async def close_database() -> None:
    """Dispose of the engine; called during application shutdown."""
    global _engine, _sessionmaker

    if _engine is None:
        return

    logger.info("Closing database connection")
    await _engine.dispose()
    _engine = None
    _sessionmaker = None
