"""Database dependencies for FastAPI route handlers.

Route handlers take a session with ``Depends(get_db_session)``; CLI
commands and background tasks use ``infra.database.get_async_session``
directly. Both come from the same session factory.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from transporter_service.infra.database import get_async_session


async def get_db_session() -> AsyncGenerator[AsyncSession]:
    """FastAPI dependency for database session.

    Yields:
        Database session that is automatically closed after request.
    """
    async with get_async_session() as session:
        yield session
