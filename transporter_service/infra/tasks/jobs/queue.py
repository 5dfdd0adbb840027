"""Work queue contract and its database-backed implementation.

The lifecycle only needs three operations from a queue: add a task at a
rank, delete a task, and report the lowest rank currently waiting. The
worker additionally claims and releases tasks.

``DatabaseWorkQueue`` stores tasks in ``queued_tasks`` through the caller's
session, so adding a job and its task commit or roll back together.
"""

from __future__ import annotations

from datetime import timedelta
import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from sqlalchemy import delete, func, or_, select, update

from transporter_service.core.database import utcnow
from transporter_service.infra.tasks.jobs.models import QueuedTask

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

EMPTY_QUEUE_RANK = 0
CLAIM_ATTEMPTS = 3


@runtime_checkable
class WorkQueue(Protocol):
    """Operations the job lifecycle depends on."""

    async def enqueue(self, payload: dict[str, Any], priority: int) -> int:
        """Add a task and return its id."""
        ...

    async def delete(self, task_id: int) -> None:
        """Remove a task; unknown ids are ignored."""
        ...

    async def minimum_priority(self) -> int:
        """Lowest rank among waiting tasks (0 when the queue is empty)."""
        ...


class DatabaseWorkQueue:
    """Priority-ordered queue stored in the ``queued_tasks`` table.

    Usage:
        queue = DatabaseWorkQueue(session)
        task_id = await queue.enqueue({"job_id": 42}, priority=-1)

        task = await queue.claim("worker-1", max_run_time=timedelta(hours=4))
        ...
        await queue.delete(task.id)
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def enqueue(self, payload: dict[str, Any], priority: int) -> int:
        task = QueuedTask(payload=dict(payload), priority=priority, run_at=utcnow())
        self._session.add(task)
        await self._session.flush()

        logger.debug(
            "Task enqueued",
            extra={"task_id": task.id, "priority": priority},
        )
        return task.id

    async def delete(self, task_id: int) -> None:
        await self._session.execute(delete(QueuedTask).where(QueuedTask.id == task_id))
        logger.debug("Task deleted", extra={"task_id": task_id})

    async def minimum_priority(self) -> int:
        result = await self._session.execute(
            select(func.min(QueuedTask.priority)).where(QueuedTask.failed_at.is_(None))
        )
        minimum = result.scalar_one_or_none()
        return EMPTY_QUEUE_RANK if minimum is None else int(minimum)

    async def get(self, task_id: int) -> QueuedTask | None:
        return await self._session.get(QueuedTask, task_id)

    async def claim(self, worker_name: str, *, max_run_time: timedelta) -> QueuedTask | None:
        """Lock the next runnable task for ``worker_name``.

        Tasks locked longer than ``max_run_time`` belong to a worker that
        died mid-run and are handed out again. The lock is taken with a
        conditional UPDATE on the lock value that was read, so two workers
        racing for one row (SQLite ignores ``SKIP LOCKED``) cannot both win;
        the loser moves on to the next candidate. The caller commits the claim.
        """
        for _ in range(CLAIM_ATTEMPTS):
            now = utcnow()
            stmt = (
                select(QueuedTask)
                .where(
                    QueuedTask.failed_at.is_(None),
                    QueuedTask.run_at <= now,
                    or_(
                        QueuedTask.locked_at.is_(None),
                        QueuedTask.locked_at < now - max_run_time,
                    ),
                )
                .order_by(QueuedTask.priority, QueuedTask.run_at, QueuedTask.id)
                .limit(1)
                .with_for_update(skip_locked=True)
                .execution_options(populate_existing=True)
            )
            task = (await self._session.execute(stmt)).scalars().first()
            if task is None:
                return None

            previous_lock = task.locked_at
            seen = (
                QueuedTask.locked_at.is_(None)
                if previous_lock is None
                else QueuedTask.locked_at == previous_lock
            )
            claimed = await self._session.execute(
                update(QueuedTask)
                .where(QueuedTask.id == task.id, seen)
                .values(
                    locked_at=now,
                    locked_by=worker_name,
                    attempts=QueuedTask.attempts + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if claimed.rowcount != 1:
                logger.debug("Lost claim race", extra={"task_id": task.id, "worker": worker_name})
                continue

            if previous_lock is not None:
                logger.warning(
                    "Reclaiming task from expired lock",
                    extra={"task_id": task.id, "locked_by": task.locked_by},
                )
            await self._session.refresh(task)
            return task

        return None

    async def mark_failed(self, task: QueuedTask, error: str) -> None:
        """Park a task that could not be processed; it is not claimed again."""
        task.failed_at = utcnow()
        task.last_error = error
        task.locked_at = None
        task.locked_by = None
        await self._session.flush()

        logger.error(
            "Task parked as failed",
            extra={"task_id": task.id, "error": error},
        )

    async def count(self) -> int:
        result = await self._session.execute(
            select(func.count()).select_from(QueuedTask).where(QueuedTask.failed_at.is_(None))
        )
        return result.scalar_one()


__all__ = ["EMPTY_QUEUE_RANK", "DatabaseWorkQueue", "WorkQueue"]
