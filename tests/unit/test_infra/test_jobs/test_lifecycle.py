"""Tests for JobLifecycle: creation, transitions, destruction."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from transporter_service.infra.tasks.jobs import (
    EnqueueError,
    InvalidTransitionError,
    JobStore,
    ProvidersJob,
    TransporterJob,
    TransporterJobAuditLog,
    UploadJob,
)


async def _count(session, model) -> int:
    return (await session.execute(select(func.count()).select_from(model))).scalar_one()


async def _history(session, job):
    return await JobStore().history(session, job.id)


async def test_create_round_trip(lifecycle, fake_queue, session_factory, account):
    job = await lifecycle.create(
        ProvidersJob(account_id=account.id, priority="high", options={"a": 1, "b": 2})
    )

    async with session_factory() as session:
        loaded = await session.get(TransporterJob, job.id)

    assert isinstance(loaded, ProvidersJob)
    assert loaded.state == "queued"
    assert loaded.priority == "high"
    assert loaded.job_id is not None
    assert loaded.options == {"a": 1, "b": 2}
    assert fake_queue.enqueued == [({"job_id": job.id}, -1)]


async def test_create_records_audit_entry(lifecycle, db_session, account):
    job = await lifecycle.create(UploadJob(account_id=account.id, options={"package_id": "abc"}))

    [entry] = await _history(db_session, job)
    assert entry.from_state is None
    assert entry.to_state == "queued"
    assert entry.event == "enqueue"
    assert entry.triggered_by == "api"


async def test_create_next_priority_jumps_queue(lifecycle, fake_queue, account):
    await lifecycle.create(UploadJob(account_id=account.id, priority="high"))
    await lifecycle.create(UploadJob(account_id=account.id, priority="next"))
    await lifecycle.create(UploadJob(account_id=account.id, priority="next"))

    assert [priority for _, priority in fake_queue.enqueued] == [-1, -2, -3]


async def test_create_rolls_back_when_enqueue_fails(lifecycle, fake_queue, session_factory, account):
    fake_queue.fail_with = RuntimeError("queue down")

    with pytest.raises(EnqueueError) as exc_info:
        await lifecycle.create(UploadJob(account_id=account.id, options={"package_id": "abc"}))

    assert exc_info.value.job_type == "UploadJob"
    assert isinstance(exc_info.value.__cause__, RuntimeError)
    async with session_factory() as session:
        assert await _count(session, TransporterJob) == 0
        assert await _count(session, TransporterJobAuditLog) == 0


async def test_destroy_queued_job_dequeues_once_and_removes_log(
    lifecycle, fake_queue, session_factory, log_dir, account
):
    job = await lifecycle.create(UploadJob(account_id=account.id, options={"package_id": "abc"}))
    task_id = job.job_id
    log_file = log_dir / f"{job.id}.log"
    log_file.write_text("output\n")

    await lifecycle.destroy(job)

    assert fake_queue.deleted == [task_id]
    assert not log_file.exists()
    async with session_factory() as session:
        assert await _count(session, TransporterJob) == 0
        assert await _count(session, TransporterJobAuditLog) == 0


@pytest.mark.parametrize("outcome", ["success", "failure"])
async def test_destroy_completed_job_does_not_dequeue(lifecycle, fake_queue, account, outcome):
    job = await lifecycle.create(UploadJob(account_id=account.id, options={"package_id": "abc"}))
    await lifecycle.start(job)
    if outcome == "success":
        await lifecycle.on_success(job)
    else:
        await lifecycle.on_error(job, RuntimeError("boom"))

    await lifecycle.destroy(job)

    assert fake_queue.deleted == []


async def test_destroy_without_log_file(lifecycle, account):
    job = await lifecycle.create(UploadJob(account_id=account.id))

    await lifecycle.destroy(job)


async def test_destroy_survives_log_removal_failure(lifecycle, session_factory, account, monkeypatch):
    from transporter_service.infra.tasks.jobs import LogSink

    def refuse(self):
        raise PermissionError("read-only")

    monkeypatch.setattr(LogSink, "remove", refuse)
    job = await lifecycle.create(UploadJob(account_id=account.id))

    await lifecycle.destroy(job)

    async with session_factory() as session:
        assert await _count(session, TransporterJob) == 0


async def test_success_is_idempotent(lifecycle, fake_queue, db_session, account):
    job = await lifecycle.create(UploadJob(account_id=account.id))
    await lifecycle.start(job)

    await lifecycle.on_success(job)
    await lifecycle.on_success(job)

    assert job.state == "success"
    assert [entry.event for entry in await _history(db_session, job)] == [
        "enqueue",
        "start",
        "succeed",
    ]
    assert fake_queue.deleted == []


async def test_failure_is_idempotent_and_keeps_first_exception(lifecycle, db_session, account):
    job = await lifecycle.create(UploadJob(account_id=account.id))
    await lifecycle.start(job)

    await lifecycle.on_error(job, RuntimeError("first"))
    await lifecycle.on_error(job, ValueError("second"))

    assert job.state == "failure"
    assert job.exceptions["type"] == "RuntimeError"
    assert job.exceptions["message"] == "first"
    assert job.exceptions["traceback"]
    assert len(await _history(db_session, job)) == 3


async def test_illegal_transition_raises_and_keeps_state(lifecycle, account):
    job = await lifecycle.create(UploadJob(account_id=account.id))

    with pytest.raises(InvalidTransitionError) as exc_info:
        await lifecycle.on_success(job)

    assert job.state == "queued"
    assert exc_info.value.job_id == job.id


async def test_success_after_failure_is_rejected(lifecycle, account):
    job = await lifecycle.create(UploadJob(account_id=account.id))
    await lifecycle.start(job)
    await lifecycle.on_error(job, RuntimeError("boom"))

    with pytest.raises(InvalidTransitionError):
        await lifecycle.on_success(job)

    assert job.state == "failure"


async def test_on_enqueue_for_queued_job_is_noop(lifecycle, db_session, account):
    job = await lifecycle.create(UploadJob(account_id=account.id))

    await lifecycle.on_enqueue(job)

    assert job.state == "queued"
    assert len(await _history(db_session, job)) == 1


async def test_success_clears_exceptions_and_failure_clears_result(lifecycle, account):
    job = await lifecycle.create(UploadJob(account_id=account.id))
    await lifecycle.start(job)
    job.exceptions = {"type": "Stale"}
    job.result = {"exit_status": 0}

    await lifecycle.on_success(job)

    assert job.exceptions is None
    assert job.result == {"exit_status": 0}


async def test_fail_queued_job_cancels_its_task(lifecycle, fake_queue, db_session, account):
    job = await lifecycle.create(UploadJob(account_id=account.id))
    task_id = job.job_id

    await lifecycle.fail(job, reason="Aborted by user")

    assert job.state == "failure"
    assert job.job_id is None
    assert fake_queue.deleted == [task_id]
    entry = (await _history(db_session, job))[-1]
    assert entry.reason == "Aborted by user"


async def test_fail_running_job_leaves_queue_alone(lifecycle, fake_queue, account):
    job = await lifecycle.create(UploadJob(account_id=account.id))
    await lifecycle.start(job)

    await lifecycle.fail(job, reason="Aborted")

    assert job.state == "failure"
    assert fake_queue.deleted == []


async def test_requeue_finished_job(lifecycle, fake_queue, log_dir, account):
    job = await lifecycle.create(UploadJob(account_id=account.id, priority="low"))
    await lifecycle.start(job)
    await lifecycle.on_error(job, RuntimeError("boom"))
    (log_dir / f"{job.id}.log").write_text("old output")

    await lifecycle.requeue(job)

    assert job.state == "queued"
    assert job.exceptions is None
    assert job.job_id is not None
    assert len(fake_queue.enqueued) == 2
    assert fake_queue.enqueued[-1][1] == 1
    assert not (log_dir / f"{job.id}.log").exists()


async def test_requeue_unfinished_job_is_rejected(lifecycle, fake_queue, account):
    job = await lifecycle.create(UploadJob(account_id=account.id))

    with pytest.raises(InvalidTransitionError):
        await lifecycle.requeue(job)

    assert len(fake_queue.enqueued) == 1


async def test_create_withdraws_task_when_commit_fails(
    lifecycle, db_session, fake_queue, session_factory, monkeypatch, account
):
    monkeypatch.setattr(db_session, "commit", AsyncMock(side_effect=RuntimeError("disk full")))

    with pytest.raises(RuntimeError, match="disk full"):
        await lifecycle.create(UploadJob(account_id=account.id, options={"package_id": "abc"}))

    assert fake_queue.deleted == [101]
    assert fake_queue.tasks == {}
    async with session_factory() as session:
        assert await _count(session, TransporterJob) == 0


async def test_requeue_withdraws_task_when_commit_fails(
    lifecycle, db_session, fake_queue, monkeypatch, account
):
    job = await lifecycle.create(UploadJob(account_id=account.id))
    await lifecycle.fail(job, reason="Aborted")
    assert fake_queue.deleted == [101]

    monkeypatch.setattr(db_session, "commit", AsyncMock(side_effect=RuntimeError("disk full")))
    with pytest.raises(RuntimeError, match="disk full"):
        await lifecycle.requeue(job)

    assert fake_queue.deleted == [101, 102]
    assert fake_queue.tasks == {}
