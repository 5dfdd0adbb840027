"""Run async command bodies against the configured database."""

import asyncio
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar

T = TypeVar("T")


def coro(f: Callable[..., Awaitable[T]]) -> Callable[..., T]:
    """Run an async Click command to completion, then dispose the engine.

    The engine is created lazily by the first session, so commands that
    never touch the database pay nothing for the cleanup.
    """

    @wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> T:
        async def main() -> T:
            from transporter_service.infra.database import close_database

            try:
                return await f(*args, **kwargs)
            finally:
                await close_database()

        return asyncio.run(main())

    return wrapper
