"""Tests for the worker draining the database work queue."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from sqlalchemy import select

from transporter_service.core.settings import WorkerSettings
from transporter_service.infra.tasks.jobs import (
    DatabaseWorkQueue,
    JobLifecycle,
    QueuedTask,
    TransporterJob,
    TransporterWorker,
    UploadJob,
)


@pytest.fixture
def db_lifecycle(db_session, log_dir) -> JobLifecycle:
    """Lifecycle that enqueues into the real queued_tasks table."""
    return JobLifecycle(db_session, DatabaseWorkQueue(db_session), log_directory=log_dir)


@pytest.fixture
def worker_settings() -> WorkerSettings:
    return WorkerSettings(name="test-worker", sleep_delay_seconds=0.01)


@pytest.fixture
def make_worker(session_factory, worker_settings, log_dir):
    def _make(runner) -> TransporterWorker:
        return TransporterWorker(
            session_factory, runner, settings=worker_settings, log_directory=log_dir
        )

    return _make


async def _load(session_factory):
    async with session_factory() as session:
        jobs = (await session.execute(select(TransporterJob).order_by(TransporterJob.id))).scalars()
        tasks = (await session.execute(select(QueuedTask))).scalars()
        return list(jobs), list(tasks)


async def test_work_off_runs_queued_jobs(db_lifecycle, make_worker, runner, session_factory, account):
    await db_lifecycle.create(UploadJob(account_id=account.id, options={"package_id": "a"}))
    await db_lifecycle.create(UploadJob(account_id=account.id, options={"package_id": "b"}))

    assert await make_worker(runner).work_off() == (2, 0)

    jobs, tasks = await _load(session_factory)
    assert [job.state for job in jobs] == ["success", "success"]
    assert [job.job_id for job in jobs] == [None, None]
    assert all("log" not in job.options for job in jobs)
    assert tasks == []


async def test_work_off_records_failures(
    db_lifecycle, make_worker, make_runner, session_factory, account
):
    await db_lifecycle.create(UploadJob(account_id=account.id, options={"package_id": "a"}))

    result = await make_worker(make_runner(error=RuntimeError("tool crashed"))).work_off()

    assert result == (0, 1)
    [job], tasks = await _load(session_factory)
    assert job.state == "failure"
    assert job.exceptions["message"] == "tool crashed"
    assert tasks == []


async def test_work_off_respects_priority_and_limit(db_lifecycle, make_worker, runner, account):
    await db_lifecycle.create(UploadJob(account_id=account.id, priority="low", options={"package_id": "low"}))
    await db_lifecycle.create(UploadJob(account_id=account.id, priority="high", options={"package_id": "high"}))
    await db_lifecycle.create(UploadJob(account_id=account.id, priority="next", options={"package_id": "next"}))

    assert await make_worker(runner).work_off(limit=2) == (2, 0)

    assert [options["package_id"] for _, options in runner.calls] == ["next", "high"]


async def test_task_for_missing_job_is_dropped(db_session, make_worker, runner, session_factory):
    await DatabaseWorkQueue(db_session).enqueue({"job_id": 999}, 0)
    await db_session.commit()

    assert await make_worker(runner).work_off() == (0, 1)

    _, tasks = await _load(session_factory)
    assert tasks == []
    assert runner.calls == []


async def test_aborted_job_is_not_run(db_lifecycle, make_worker, runner, account):
    job = await db_lifecycle.create(UploadJob(account_id=account.id))
    await db_lifecycle.fail(job, reason="Aborted")

    assert await make_worker(runner).work_off() == (0, 0)
    assert runner.calls == []


async def test_run_one_on_empty_queue(make_worker, runner):
    assert await make_worker(runner).run_one() is None


async def test_run_stops_when_asked(make_worker, runner):
    worker = make_worker(runner)

    task = asyncio.create_task(worker.run())
    await asyncio.sleep(0.05)
    worker.stop()

    await asyncio.wait_for(task, timeout=2)
    assert worker.name == "test-worker"


class DestroyingRunner:
    """Destroys the job from another session mid-run, then writes more output."""

    def __init__(self, session_factory, log_dir, error: Exception | None = None) -> None:
        self.session_factory = session_factory
        self.log_dir = log_dir
        self.error = error

    async def run(self, command, options):
        log_path = Path(options["log"])
        async with self.session_factory() as session:
            lifecycle = JobLifecycle(
                session, DatabaseWorkQueue(session), log_directory=self.log_dir
            )
            await lifecycle.destroy(await session.get(TransporterJob, int(log_path.stem)))
        with log_path.open("ab") as fh:
            fh.write(b"late output\n")
        if self.error is not None:
            raise self.error
        return {"command": command, "exit_status": 0}


@pytest.mark.parametrize("error", [None, RuntimeError("tool crashed")])
async def test_job_destroyed_while_running_leaves_nothing_behind(
    db_lifecycle, make_worker, session_factory, log_dir, account, error
):
    job = await db_lifecycle.create(UploadJob(account_id=account.id, options={"package_id": "a"}))
    job_id = job.id

    result = await make_worker(DestroyingRunner(session_factory, log_dir, error)).work_off()

    assert result == (0, 1)
    jobs, tasks = await _load(session_factory)
    assert jobs == []
    assert tasks == []
    assert not (log_dir / f"{job_id}.log").exists()
