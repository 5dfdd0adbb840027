"""Runs a single transporter job attempt."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from transporter_service.infra.logging import log_context
from transporter_service.infra.tasks.jobs.models import Account

if TYPE_CHECKING:
    from transporter_service.infra.external.transporter import TransporterRunner
    from transporter_service.infra.tasks.jobs.lifecycle import JobLifecycle
    from transporter_service.infra.tasks.jobs.models import TransporterJob

logger = logging.getLogger(__name__)


class JobExecutor:
    """Executes one attempt of a job with the transporter tool.

    The log path is passed to the tool in a per-call copy of the options,
    so it never ends up in the job's persisted options.

    Usage:
        executor = JobExecutor(lifecycle, ITMSTransporter())
        result = await executor.perform(job)
    """

    def __init__(self, lifecycle: JobLifecycle, runner: TransporterRunner) -> None:
        self._lifecycle = lifecycle
        self._runner = runner

    async def perform(self, job: TransporterJob) -> Any:
        """Run ``job`` once.

        Returns:
            The tool's result, also stored on ``job.result``.

        Raises:
            Exception: Whatever the tool raised, after the job was marked failed.
        """
        session = self._lifecycle.session
        if job.id is None:
            session.add(job)
            await session.flush()

        with log_context(job_id=job.id, job_type=job.type):
            await self._lifecycle.start(job)

            sink = self._lifecycle.log_sink(job)
            sink.directory.mkdir(parents=True, exist_ok=True)
            options = {
                **await self._credentials(job),
                **(job.options or {}),
                "log": str(sink.path),
            }

            try:
                result = await self._runner.run(job.command, options)
            except Exception as e:
                logger.warning(
                    "Job execution failed",
                    extra={"job_id": job.id, "error": str(e)},
                )
                await self._lifecycle.on_error(job, e)
                raise

            # Picks up an abort issued while the tool was running
            await session.refresh(job)
            job.result = result
            await self._lifecycle.on_success(job)
            logger.info("Job execution succeeded", extra={"job_id": job.id})
            return result

    async def _credentials(self, job: TransporterJob) -> dict[str, str]:
        account = await self._lifecycle.session.get(Account, job.account_id)
        if account is None:
            return {}
        return account.credentials()


__all__ = ["JobExecutor"]
