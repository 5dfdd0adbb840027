"""Transporter worker commands."""

from __future__ import annotations

import asyncio
import signal

import click

from transporter_service.cli.utils import coro, info, success, work_summary


@click.group()
def worker() -> None:
    """Run queued transporter jobs."""


@worker.command("run")
@coro
async def run_worker() -> None:
    """Work off the queue until interrupted (Ctrl+C or SIGTERM).

    Example:
        transporter-service worker run
    """
    from transporter_service.infra.database import get_sessionmaker
    from transporter_service.infra.external import ITMSTransporter
    from transporter_service.infra.tasks.jobs import TransporterWorker

    job_worker = TransporterWorker(get_sessionmaker(), ITMSTransporter())

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, job_worker.stop)

    info(f"Worker {job_worker.name} started")
    await job_worker.run()
    success("Worker stopped")


@worker.command("work-off")
@click.option("--limit", "-n", type=int, default=None, help="Maximum jobs to run")
@coro
async def work_off(limit: int | None) -> None:
    """Run queued jobs once, then exit.

    Example:
        transporter-service worker work-off --limit 10
    """
    from transporter_service.tasks.transporter import work_off as run_work_off

    work_summary(await run_work_off(limit))
