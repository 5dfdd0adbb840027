"""Transporter job lifecycle: creation, state transitions, destruction.

Every transition goes through the table in ``enums.TRANSITIONS``. Applied
transitions are written to ``transporter_job_audit_logs``; self-loops
(e.g. a second ``on_success``) are no-ops; anything else raises
``InvalidTransitionError``.
"""

from __future__ import annotations

import logging
from pathlib import Path
import traceback
from typing import TYPE_CHECKING, Any

from transporter_service.core.settings import get_transporter_settings
from transporter_service.infra.tasks.jobs.enums import JobEvent, JobState, next_state
from transporter_service.infra.tasks.jobs.exceptions import (
    EnqueueError,
    InvalidTransitionError,
)
from transporter_service.infra.tasks.jobs.log_sink import LogSink
from transporter_service.infra.tasks.jobs.models import TransporterJob, TransporterJobAuditLog
from transporter_service.infra.tasks.jobs.priority import rank

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from transporter_service.infra.tasks.jobs.queue import WorkQueue

logger = logging.getLogger(__name__)


def exception_payload(exc: BaseException) -> dict[str, Any]:
    """Serialize an exception for the job's ``exceptions`` column."""
    return {
        "type": type(exc).__name__,
        "message": str(exc),
        "traceback": traceback.format_exception(exc),
    }


class JobLifecycle:
    """Drives transporter jobs through queued → running → success | failure.

    Usage:
        lifecycle = JobLifecycle(session, DatabaseWorkQueue(session))

        job = await lifecycle.create(
            UploadJob(account_id=7, priority="low", options={"package_id": "abc"})
        )
        await lifecycle.fail(job, reason="Aborted by user")
        await lifecycle.destroy(job)

    Every public method commits the session.
    """

    def __init__(
        self,
        session: AsyncSession,
        queue: WorkQueue,
        *,
        log_directory: Path | str | None = None,
    ) -> None:
        self._session = session
        self._queue = queue
        if log_directory is None:
            log_directory = get_transporter_settings().output_log_directory
        self._log_directory = Path(log_directory)

    @property
    def session(self) -> AsyncSession:
        return self._session

    @property
    def queue(self) -> WorkQueue:
        return self._queue

    def log_sink(self, job: TransporterJob) -> LogSink:
        return LogSink(self._log_directory, job.id)

    # =========================================================================
    # Creation and destruction
    # =========================================================================

    async def create(self, job: TransporterJob, *, triggered_by: str = "api") -> TransporterJob:
        """Persist ``job`` and enqueue its work queue task as one unit.

        Raises:
            EnqueueError: The work queue failed; nothing was persisted.
        """
        task_id: int | None = None
        try:
            self._session.add(job)
            await self._session.flush()
            task_id = await self._enqueue(job)
            await self._apply(
                job, JobEvent.ENQUEUE, triggered_by=triggered_by, reason="Job created"
            )
            await self._session.commit()
        except Exception as e:
            await self._session.rollback()
            await self._withdraw(task_id)
            logger.error(
                "Job creation rolled back",
                extra={"job_type": job.type, "error": str(e)},
            )
            raise

        logger.info(
            "Job created",
            extra={
                "job_id": job.id,
                "job_type": job.type,
                "target": job.target,
                "priority": job.effective_priority.value,
                "task_id": job.job_id,
            },
        )
        return job

    async def requeue(self, job: TransporterJob, *, triggered_by: str = "api") -> TransporterJob:
        """Run a finished job again with a fresh work queue task."""
        current = job.job_state
        if current is None or not current.is_terminal():
            logger.warning(
                "Rejected requeue of unfinished job",
                extra={"job_id": job.id, "state": job.state},
            )
            raise InvalidTransitionError(current, JobEvent.ENQUEUE, job.id)

        task_id: int | None = None
        try:
            task_id = await self._enqueue(job)
            await self._apply(job, JobEvent.ENQUEUE, triggered_by=triggered_by, reason="Requeued")
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            await self._withdraw(task_id)
            raise

        self._remove_log(self.log_sink(job))
        return job

    async def destroy(self, job: TransporterJob) -> None:
        """Delete ``job``, cancelling its task if it is still queued.

        Failures to remove the log file are logged, not raised.
        """
        job_id = job.id
        sink = self.log_sink(job)

        if job.job_state is JobState.QUEUED and job.job_id is not None:
            await self._queue.delete(job.job_id)
            logger.info("Dequeued job task", extra={"job_id": job_id, "task_id": job.job_id})

        await self._session.delete(job)
        await self._session.commit()

        self._remove_log(sink)
        logger.info("Job destroyed", extra={"job_id": job_id})

    async def discard_orphaned_task(self, job_id: int, task_id: int) -> None:
        """Clean up after a job that was destroyed while its task was running.

        The running tool may have written the log again after ``destroy``
        removed it, so the log is removed a second time along with the task.
        """
        await self._queue.delete(task_id)
        await self._session.commit()
        self._remove_log(LogSink(self._log_directory, job_id))
        logger.warning(
            "Job destroyed while running; discarded its task",
            extra={"job_id": job_id, "task_id": task_id},
        )

    # =========================================================================
    # Work queue hooks
    # =========================================================================

    async def on_enqueue(self, job: TransporterJob) -> None:
        await self._apply(job, JobEvent.ENQUEUE, triggered_by="queue")
        await self._session.commit()

    async def start(self, job: TransporterJob) -> None:
        await self._apply(job, JobEvent.START, triggered_by="worker")
        await self._session.commit()

    async def on_success(self, job: TransporterJob) -> None:
        await self._apply(job, JobEvent.SUCCEED, triggered_by="worker")
        await self._session.commit()

    async def on_error(self, job: TransporterJob, exc: BaseException) -> None:
        """Record ``exc`` on the job and mark it failed."""
        applied = await self._apply(job, JobEvent.FAIL, triggered_by="worker", reason=str(exc))
        if applied:
            job.exceptions = exception_payload(exc)
        await self._session.commit()

    async def fail(
        self,
        job: TransporterJob,
        *,
        reason: str | None = None,
        triggered_by: str = "api",
    ) -> None:
        """Mark ``job`` failed without an exception, e.g. a manual abort.

        A queued job loses its pending task so it never starts.
        """
        was_queued = job.job_state is JobState.QUEUED
        applied = await self._apply(job, JobEvent.FAIL, triggered_by=triggered_by, reason=reason)
        if applied and was_queued and job.job_id is not None:
            await self._queue.delete(job.job_id)
            job.job_id = None
        await self._session.commit()

    # =========================================================================
    # Internals
    # =========================================================================

    async def _enqueue(self, job: TransporterJob) -> int:
        try:
            queue_rank = await rank(job.priority, self._queue.minimum_priority)
            task_id = await self._queue.enqueue({"job_id": job.id}, queue_rank)
        except Exception as e:
            raise EnqueueError(
                f"Work queue rejected {job.type} {job.id}: {e}", job_type=job.type
            ) from e
        job.job_id = task_id
        return task_id

    async def _withdraw(self, task_id: int | None) -> None:
        """Delete a task enqueued by a unit of work that was rolled back.

        Queues sharing the session lose the task with the rollback; any
        other queue still holds it.
        """
        if task_id is None:
            return
        try:
            await self._queue.delete(task_id)
        except Exception as e:
            logger.error(
                "Failed to withdraw task after rollback",
                extra={"task_id": task_id, "error": str(e)},
            )

    async def _apply(
        self,
        job: TransporterJob,
        event: JobEvent,
        *,
        triggered_by: str,
        reason: str | None = None,
    ) -> bool:
        """Apply ``event`` to ``job``.

        Returns:
            True if the state changed, False for an idempotent self-loop.

        Raises:
            InvalidTransitionError: The event is not allowed from the current state.
        """
        current = job.job_state
        new_state = next_state(current, event)

        if new_state is None:
            logger.warning(
                "Rejected job state transition",
                extra={
                    "job_id": job.id,
                    "from_state": current.value if current else None,
                    "event": event.value,
                },
            )
            raise InvalidTransitionError(current, event, job.id)

        if new_state is current:
            logger.debug(
                "Job already in target state",
                extra={"job_id": job.id, "state": current.value, "event": event.value},
            )
            return False

        job.state = new_state.value
        if event is JobEvent.ENQUEUE:
            job.result = None
            job.exceptions = None
        elif event is JobEvent.SUCCEED:
            job.exceptions = None
        elif event is JobEvent.FAIL:
            job.result = None

        self._session.add(
            TransporterJobAuditLog(
                job_id=job.id,
                from_state=current.value if current else None,
                to_state=new_state.value,
                event=event.value,
                triggered_by=triggered_by,
                reason=reason,
            )
        )

        logger.info(
            "Job state changed",
            extra={
                "job_id": job.id,
                "from_state": current.value if current else None,
                "to_state": new_state.value,
                "triggered_by": triggered_by,
            },
        )
        return True

    def _remove_log(self, sink: LogSink) -> None:
        try:
            sink.remove()
        except OSError as e:
            logger.warning(
                "Failed to remove job log",
                extra={"job_id": sink.job_id, "path": str(sink.path), "error": str(e)},
            )


__all__ = ["JobLifecycle", "exception_payload"]
