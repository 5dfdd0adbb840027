"""Read access to transporter jobs, accounts and audit history."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from transporter_service.core.database import BaseRepository, CollectionFilter, SearchResult
from transporter_service.infra.tasks.jobs.enums import JobState
from transporter_service.infra.tasks.jobs.models import (
    Account,
    TransporterJob,
    TransporterJobAuditLog,
)
from transporter_service.infra.tasks.jobs.search import SearchQueryBuilder

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class JobStore(BaseRepository[TransporterJob]):
    """Repository for transporter jobs.

    Example:
        store = JobStore()
        page = await store.search_jobs(session, {"state": "failure"}, limit=20)
    """

    def __init__(self, builder: SearchQueryBuilder | None = None) -> None:
        super().__init__(TransporterJob)
        self._builder = builder or SearchQueryBuilder()

    async def completed(
        self,
        session: AsyncSession,
        *,
        limit: int = 100,
        offset: int = 0,
    ) -> Sequence[TransporterJob]:
        """Jobs that finished, successfully or not, newest first."""
        stmt = select(TransporterJob)
        stmt = CollectionFilter(
            TransporterJob.state, [state.value for state in JobState.terminal_states()]
        ).apply(stmt)
        stmt = stmt.order_by(TransporterJob.created_at.desc()).limit(limit).offset(offset)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def search_jobs(
        self,
        session: AsyncSession,
        params: Mapping[str, Any],
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> SearchResult[TransporterJob]:
        """Search jobs with request-style parameters (see ``SearchQueryBuilder``)."""
        query = self._builder.build(params)
        return await self.search(
            session, query.apply(select(TransporterJob)), limit=limit, offset=offset
        )

    async def history(
        self,
        session: AsyncSession,
        job_id: int,
    ) -> Sequence[TransporterJobAuditLog]:
        """Audit trail of a job, oldest first."""
        result = await session.execute(
            select(TransporterJobAuditLog)
            .where(TransporterJobAuditLog.job_id == job_id)
            .order_by(TransporterJobAuditLog.created_at, TransporterJobAuditLog.id)
        )
        return result.scalars().all()


class AccountStore(BaseRepository[Account]):
    def __init__(self) -> None:
        super().__init__(Account)

    async def find_by_username(self, session: AsyncSession, username: str) -> Account | None:
        return await self.get_by(session, Account.username, username)


__all__ = ["AccountStore", "JobStore"]
