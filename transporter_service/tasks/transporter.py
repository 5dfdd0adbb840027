"""Scheduled draining of the transporter work queue."""

from __future__ import annotations

import logging

from transporter_service.infra.database import get_sessionmaker
from transporter_service.infra.external import ITMSTransporter
from transporter_service.infra.tasks.jobs import TransporterWorker
from transporter_service.tasks.broker import broker, task_settings

logger = logging.getLogger(__name__)


async def work_off(limit: int | None = None) -> dict[str, int]:
    """Run up to ``limit`` queued transporter jobs in this process.

    Returns:
        Counts of succeeded and failed jobs.
    """
    worker = TransporterWorker(get_sessionmaker(), ITMSTransporter())
    succeeded, failed = await worker.work_off(limit)

    logger.info(
        "Transporter work-off finished",
        extra={"succeeded": succeeded, "failed": failed},
    )
    return {"succeeded": succeeded, "failed": failed}


if broker is not None:

    @broker.task(schedule=[{"cron": task_settings.work_off_schedule}])
    async def work_off_transporter_jobs(limit: int | None = None) -> dict[str, int]:
        """Drain the transporter work queue.

        Scheduled: TASK_WORK_OFF_SCHEDULE (every minute by default).

        Example:
            ```python
            task = await work_off_transporter_jobs.kiq(limit=10)
            result = await task.wait_result()
            # {'succeeded': 3, 'failed': 0}
            ```
        """
        return await work_off(limit)
