"""Generic read/create helpers shared by the job and account stores.

The session is always passed in; a store never opens, commits or rolls
back one, so a caller can combine several store calls with a lifecycle
change in a single transaction.

Example:
    class AccountStore(BaseRepository[Account]):
        async def find_by_username(self, session, username):
            return await self.get_by(session, Account.username, username)
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy import Select, func, select

from transporter_service.core.database.exceptions import NotFoundError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import InstrumentedAttribute

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class SearchResult(Generic[T]):
    """One page of rows plus the unpaginated row count."""

    items: Sequence[T]
    total: int
    limit: int
    offset: int

    @property
    def has_next(self) -> bool:
        return self.offset + len(self.items) < self.total


class BaseRepository(Generic[T]):
    """Primary-key lookup, attribute lookup, listing, paginated search, create."""

    __slots__ = ("_logger", "model")

    def __init__(self, model: type[T]) -> None:
        self.model = model
        self._logger = logging.getLogger(f"repository.{model.__name__}")

    async def get(self, session: AsyncSession, id: Any) -> T | None:  # noqa: A002
        instance = await session.get(self.model, id)
        self._logger.debug(
            "db.get: %s(%s) -> %s",
            self.model.__name__,
            id,
            "found" if instance is not None else "missing",
        )
        return instance

    async def get_or_raise(self, session: AsyncSession, id: Any) -> T:  # noqa: A002
        """Like ``get`` but raise ``NotFoundError`` for a missing row."""
        instance = await self.get(session, id)
        if instance is None:
            self._logger.info(
                "Entity not found",
                extra={"entity": self.model.__name__, "id": str(id)},
            )
            raise NotFoundError(self.model.__name__, id)
        return instance

    async def get_by(
        self,
        session: AsyncSession,
        attr: InstrumentedAttribute[Any],
        value: Any,
    ) -> T | None:
        result = await session.execute(select(self.model).where(attr == value))
        return result.scalars().first()

    async def list(
        self,
        session: AsyncSession,
        *,
        limit: int = 100,
        offset: int = 0,
    ) -> Sequence[T]:
        """Rows in primary-key order."""
        stmt = (
            select(self.model)
            .order_by(self.model.id)  # type: ignore[attr-defined]
            .limit(limit)
            .offset(offset)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def search(
        self,
        session: AsyncSession,
        statement: Select[Any],
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> SearchResult[T]:
        """Paginate an already filtered and ordered statement.

        The total is counted over the same statement with its ordering
        stripped, so joins added for sorting do not change it.
        """
        count_stmt = select(func.count()).select_from(statement.order_by(None).subquery())
        total = (await session.execute(count_stmt)).scalar_one()

        result = await session.execute(statement.limit(limit).offset(offset))
        items = result.scalars().all()

        self._logger.debug(
            "db.search: %s(limit=%s, offset=%s) -> %s/%s",
            self.model.__name__,
            limit,
            offset,
            len(items),
            total,
        )
        return SearchResult(items=items, total=total, limit=limit, offset=offset)

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Add and flush so generated columns (``id``, timestamps) are populated."""
        session.add(instance)
        await session.flush()
        self._logger.debug("db.create: %s(id=%s)", self.model.__name__, getattr(instance, "id", None))
        return instance
