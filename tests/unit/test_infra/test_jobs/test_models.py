"""Tests for job models: single-table variants and save-time hooks."""

from __future__ import annotations

from sqlalchemy import select

from transporter_service.infra.tasks.jobs import (
    Account,
    ProvidersJob,
    SchemaJob,
    TransporterJob,
    UploadJob,
    job_class_for,
)


async def test_insert_typecasts_options_and_sets_target(db_session, account):
    job = UploadJob(account_id=account.id, options={"package": "/x/abc.itmsp", "delete": "true"})
    db_session.add(job)
    await db_session.flush()

    assert job.type == "UploadJob"
    assert job.target == "abc"
    assert job.options == {"package": "/x/abc.itmsp", "delete": True}


async def test_target_is_not_recomputed_on_update(db_session, account):
    job = UploadJob(account_id=account.id, options={"package_id": "first"})
    db_session.add(job)
    await db_session.commit()

    job.options = {"package_id": "second", "delete": "0"}
    await db_session.commit()

    assert job.target == "first"
    assert job.options == {"package_id": "second", "delete": False}


async def test_explicit_target_is_kept(db_session, account):
    job = UploadJob(account_id=account.id, target="manual", options={"package_id": "abc"})
    db_session.add(job)
    await db_session.flush()

    assert job.target == "manual"


async def test_variants_load_polymorphically(db_session, account):
    db_session.add_all(
        [
            UploadJob(account_id=account.id, options={"package_id": "abc"}),
            SchemaJob(account_id=account.id, options={"type": "strict", "version": "tv5.1"}),
        ]
    )
    await db_session.commit()
    db_session.expunge_all()

    jobs = (await db_session.execute(select(TransporterJob).order_by(TransporterJob.id))).scalars()

    assert [type(job) for job in jobs] == [UploadJob, SchemaJob]


async def test_labels(db_session, account):
    upload = UploadJob(account_id=account.id, options={"package_id": "abc"})
    providers = ProvidersJob(account_id=account.id)
    db_session.add_all([upload, providers])
    await db_session.flush()

    assert upload.command == "Upload"
    assert upload.display_type == "Upload"
    assert str(upload) == "Upload Job: abc"
    assert str(providers) == "Providers Job"
    assert providers.options == {}


async def test_priority_and_state_helpers(db_session, account):
    job = UploadJob(account_id=account.id, priority="bogus", state="failure")
    db_session.add(job)
    await db_session.flush()

    assert job.effective_priority.value == "normal"
    assert job.is_completed
    assert not UploadJob(account_id=account.id).is_completed


def test_job_class_for():
    assert job_class_for("upload") is UploadJob
    assert job_class_for("Upload") is UploadJob
    assert job_class_for("UploadJob") is UploadJob
    assert job_class_for("schema") is SchemaJob
    assert job_class_for("bogus") is None
    assert job_class_for("") is None


def test_account_credentials_skip_unset_values():
    account = Account(username="user", password="pw", shortname=None, itc_provider="")

    assert account.credentials() == {"username": "user", "password": "pw"}
