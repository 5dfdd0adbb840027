"""Worker that drains the database work queue.

Each task is claimed, run and finished in its own session. A task whose
processing blows up outside the job itself (database errors, a vanished
job) is parked with ``failed_at`` set so it is not picked up again. A job
destroyed while its tool was running has its task and log discarded.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import select, update

from transporter_service.core.settings import get_worker_settings
from transporter_service.infra.logging import log_context
from transporter_service.infra.tasks.jobs.exceptions import InvalidTransitionError
from transporter_service.infra.tasks.jobs.executor import JobExecutor
from transporter_service.infra.tasks.jobs.lifecycle import JobLifecycle
from transporter_service.infra.tasks.jobs.models import TransporterJob
from transporter_service.infra.tasks.jobs.queue import DatabaseWorkQueue

if TYPE_CHECKING:
    from collections.abc import Awaitable
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from transporter_service.core.settings import WorkerSettings
    from transporter_service.infra.external.transporter import TransporterRunner

logger = logging.getLogger(__name__)


class TransporterWorker:
    """Claims queued tasks and performs their jobs.

    Usage:
        worker = TransporterWorker(get_sessionmaker(), ITMSTransporter())
        succeeded, failed = await worker.work_off(limit=10)

        # or, until stop() is called
        await worker.run()
    """

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        runner: TransporterRunner,
        *,
        settings: WorkerSettings | None = None,
        log_directory: Path | str | None = None,
    ) -> None:
        self._sessionmaker = sessionmaker
        self._runner = runner
        self._settings = settings or get_worker_settings()
        self._log_directory = log_directory
        self._stop_event = asyncio.Event()

    @property
    def name(self) -> str:
        return self._settings.name

    def stop(self) -> None:
        self._stop_event.set()

    async def run(self) -> None:
        """Work off tasks until ``stop()``, sleeping while the queue is empty."""
        self._stop_event.clear()
        logger.info("Worker started", extra={"worker": self.name})

        while not self._stop_event.is_set():
            succeeded, failed = await self.work_off()
            if succeeded or failed:
                logger.info(
                    "Worked off tasks",
                    extra={"worker": self.name, "succeeded": succeeded, "failed": failed},
                )
                continue
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self._settings.sleep_delay_seconds
                )
            except TimeoutError:
                pass

        logger.info("Worker stopped", extra={"worker": self.name})

    async def work_off(self, limit: int | None = None) -> tuple[int, int]:
        """Run up to ``limit`` tasks.

        Returns:
            (succeeded, failed) counts.
        """
        limit = limit or self._settings.batch_size
        succeeded = failed = 0

        for _ in range(limit):
            if self._stop_event.is_set():
                break
            outcome = await self.run_one()
            if outcome is None:
                break
            if outcome:
                succeeded += 1
            else:
                failed += 1

        return succeeded, failed

    async def run_one(self) -> bool | None:
        """Claim and run the next task.

        Returns:
            True on success, False on failure, None if nothing was runnable.
        """
        async with self._sessionmaker() as session:
            queue = DatabaseWorkQueue(session)
            task = await queue.claim(
                self.name,
                max_run_time=timedelta(seconds=self._settings.max_run_time_seconds),
            )
            if task is None:
                await session.rollback()
                return None
            task_id, payload = task.id, dict(task.payload)
            await session.commit()

            try:
                with log_context(task_id=task_id, worker=self.name):
                    return await self._process(session, queue, task_id, payload)
            except Exception as e:
                logger.exception("Task processing failed", extra={"task_id": task_id})
                error = f"{type(e).__name__}: {e}"
                await session.rollback()

        await self._park(task_id, error)
        return False

    async def _process(
        self,
        session: AsyncSession,
        queue: DatabaseWorkQueue,
        task_id: int,
        payload: dict[str, Any],
    ) -> bool:
        job_id = payload.get("job_id")
        job = await session.get(TransporterJob, job_id) if job_id is not None else None
        if job is None:
            logger.warning("Task references a missing job", extra={"job_id": job_id})
            await queue.delete(task_id)
            await session.commit()
            return False

        lifecycle = JobLifecycle(session, queue, log_directory=self._log_directory)
        executor = JobExecutor(lifecycle, self._runner)

        try:
            await executor.perform(job)
        except Exception as e:
            await session.rollback()
            if not await self._job_exists(session, job_id):
                await lifecycle.discard_orphaned_task(job_id, task_id)
                return False
            await session.refresh(job)
            await self._guarded(lifecycle.on_error(job, e), job)
            succeeded = False
        else:
            await self._guarded(lifecycle.on_success(job), job)
            succeeded = True

        await queue.delete(task_id)
        # Matches no row if the job was destroyed after its hook committed
        await session.execute(
            update(TransporterJob).where(TransporterJob.id == job_id).values(job_id=None)
        )
        await session.commit()
        return succeeded

    @staticmethod
    async def _job_exists(session: AsyncSession, job_id: int) -> bool:
        found = await session.scalar(select(TransporterJob.id).where(TransporterJob.id == job_id))
        return found is not None

    async def _guarded(self, hook: Awaitable[None], job: TransporterJob) -> None:
        try:
            await hook
        except InvalidTransitionError as e:
            logger.warning(
                "Ignoring queue hook for job in unexpected state",
                extra={"job_id": job.id, "state": job.state, "error": str(e)},
            )

    async def _park(self, task_id: int, error: str) -> None:
        async with self._sessionmaker() as session:
            queue = DatabaseWorkQueue(session)
            task = await queue.get(task_id)
            if task is not None:
                await queue.mark_failed(task, error)
                await session.commit()


__all__ = ["TransporterWorker"]
