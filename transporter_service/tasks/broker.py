"""Taskiq broker configuration for background task processing.

The broker (taskiq-aio-pika over RabbitMQ) exists only when TASK_RABBIT_URL
is set; otherwise ``broker`` and ``scheduler`` are None and the work queue
is drained by ``transporter-service worker run`` instead.

Run worker:    taskiq worker transporter_service.tasks.broker:broker transporter_service.tasks.transporter
Run scheduler: taskiq scheduler transporter_service.tasks.broker:scheduler transporter_service.tasks.transporter
"""

from __future__ import annotations

import logging

from taskiq import TaskiqScheduler
from taskiq.schedule_sources import LabelScheduleSource
from taskiq_aio_pika import AioPikaBroker

from transporter_service.core.settings import get_task_settings
from transporter_service.infra.logging import setup_logging

logger = logging.getLogger(__name__)

task_settings = get_task_settings()
setup_logging()

broker: AioPikaBroker | None = None
scheduler: TaskiqScheduler | None = None

if task_settings.is_configured:
    broker = AioPikaBroker(
        url=task_settings.rabbit_url,
        queue_name=task_settings.queue_name,
        declare_exchange=True,
        declare_queues=True,
    )
    scheduler = TaskiqScheduler(broker=broker, sources=[LabelScheduleSource(broker)])

    logger.info(
        "Taskiq background task broker configured",
        extra={"queue": task_settings.queue_name},
    )
else:
    logger.debug("TASK_RABBIT_URL not set - taskiq broker disabled")


__all__ = ["broker", "scheduler", "task_settings"]
