"""API router for transporter jobs."""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, Query, status
from pydantic import ValidationError as PydanticValidationError

from transporter_service.core.database import NotFoundError
from transporter_service.core.dependencies import (
    JobLifecycleDep,
    JobStoreDep,
    LogDirectoryDep,
    SessionDep,
)
from transporter_service.core.exceptions import (
    ConflictException,
    NotFoundException,
    ServiceUnavailableException,
    ValidationException,
)
from transporter_service.features.jobs.schemas import (
    FORMS,
    AbortRequest,
    AuditEntryResponse,
    JobLogChunk,
    JobResponse,
    JobSearchResponse,
)
from transporter_service.infra.tasks.jobs import (
    AccountStore,
    EnqueueError,
    InvalidTransitionError,
    LogSink,
    TransporterJob,
    job_class_for,
)

router = APIRouter(prefix="/jobs", tags=["jobs"])

logger = logging.getLogger(__name__)

accounts = AccountStore()


async def _get_job(session: SessionDep, store: JobStoreDep, job_id: int) -> TransporterJob:
    try:
        return await store.get_or_raise(session, job_id)
    except NotFoundError as e:
        raise NotFoundException(
            detail=f"Job {job_id} not found",
            type="job-not-found",
            extra={"job_id": job_id},
        ) from e


def _conflict(e: InvalidTransitionError) -> ConflictException:
    return ConflictException(
        detail=str(e),
        type="invalid-transition",
        extra={
            "job_id": e.job_id,
            "state": e.from_state.value if e.from_state else None,
            "event": e.event.value,
        },
    )


@router.post(
    "/{kind}",
    response_model=JobResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a job",
    description="Validate the form for `kind` (upload, verify, schema, lookup, status, providers), "
    "persist the job and queue it.",
)
async def create_job(
    kind: str,
    payload: Annotated[dict[str, Any], Body()],
    session: SessionDep,
    lifecycle: JobLifecycleDep,
) -> JobResponse:
    form_cls = FORMS.get(kind.lower())
    job_cls = job_class_for(kind.lower())
    if form_cls is None or job_cls is None:
        raise NotFoundException(
            detail=f"Unknown job kind '{kind}'",
            type="unknown-job-kind",
            extra={"kind": kind},
        )

    try:
        form = form_cls.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationException(
            detail=f"Invalid {kind} job",
            extra={"errors": e.errors(include_url=False, include_context=False)},
        ) from e

    if await accounts.get(session, form.account_id) is None:
        raise ValidationException(
            detail=f"Account {form.account_id} does not exist",
            extra={"field": "account_id", "value": form.account_id},
        )

    options, priority = form.to_payload()
    job = job_cls(
        account_id=form.account_id,
        priority=priority.value if priority else None,
        options=options,
    )

    try:
        job = await lifecycle.create(job)
    except EnqueueError as e:
        raise ServiceUnavailableException(
            detail="Work queue unavailable, job not created",
            type="enqueue-failed",
        ) from e

    return JobResponse.from_job(job)


@router.get(
    "",
    response_model=JobSearchResponse,
    summary="Search jobs",
    description="Filter by priority, target, type, state, account and update date. "
    "`order` is `column` or `column:asc`; `account` sorts by account username.",
)
async def search_jobs(
    session: SessionDep,
    store: JobStoreDep,
    priority: str | None = None,
    target: str | None = None,
    job_type: Annotated[str | None, Query(alias="type")] = None,
    state: str | None = None,
    account_id: str | None = None,
    updated_at_from: str | None = None,
    updated_at_to: str | None = None,
    order: str | None = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> JobSearchResponse:
    params = {
        "priority": priority,
        "target": target,
        "type": job_type,
        "state": state,
        "account_id": account_id,
        "updated_at_from": updated_at_from,
        "updated_at_to": updated_at_to,
        "order": order,
    }
    result = await store.search_jobs(session, params, limit=limit, offset=offset)
    return JobSearchResponse.from_result(result)


@router.get(
    "/completed",
    response_model=list[JobResponse],
    summary="List finished jobs",
)
async def list_completed_jobs(
    session: SessionDep,
    store: JobStoreDep,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[JobResponse]:
    jobs = await store.completed(session, limit=limit, offset=offset)
    return [JobResponse.from_job(job) for job in jobs]


@router.get("/{job_id}", response_model=JobResponse, summary="Get a job")
async def get_job(job_id: int, session: SessionDep, store: JobStoreDep) -> JobResponse:
    job = await _get_job(session, store, job_id)
    return JobResponse.from_job(job)


@router.get(
    "/{job_id}/log",
    response_model=JobLogChunk,
    summary="Tail a job's log",
    description="Return log output from `offset` to the end of the file. "
    "Pass `next_offset` back to read only new output.",
)
async def read_job_log(
    job_id: int,
    session: SessionDep,
    store: JobStoreDep,
    log_directory: LogDirectoryDep,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> JobLogChunk:
    job = await _get_job(session, store, job_id)
    sink = LogSink(log_directory, job.id)
    data = sink.read(offset)
    return JobLogChunk(
        job_id=job.id,
        offset=offset,
        next_offset=offset + len(data),
        data=data.decode("utf-8", errors="replace"),
        has_output=sink.has_output(),
    )


@router.get(
    "/{job_id}/history",
    response_model=list[AuditEntryResponse],
    summary="State transition history",
)
async def get_job_history(
    job_id: int, session: SessionDep, store: JobStoreDep
) -> list[AuditEntryResponse]:
    job = await _get_job(session, store, job_id)
    entries = await store.history(session, job.id)
    return [AuditEntryResponse.from_entry(entry) for entry in entries]


@router.post(
    "/{job_id}/abort",
    response_model=JobResponse,
    summary="Mark a job failed",
    description="A queued job is removed from the work queue and will not run.",
)
async def abort_job(
    job_id: int,
    session: SessionDep,
    store: JobStoreDep,
    lifecycle: JobLifecycleDep,
    body: Annotated[AbortRequest | None, Body()] = None,
) -> JobResponse:
    job = await _get_job(session, store, job_id)
    reason = body.reason if body and body.reason else "Aborted"
    try:
        await lifecycle.fail(job, reason=reason)
    except InvalidTransitionError as e:
        raise _conflict(e) from e

    logger.info("Job aborted", extra={"job_id": job.id, "reason": reason})
    return JobResponse.from_job(job)


@router.post(
    "/{job_id}/requeue",
    response_model=JobResponse,
    summary="Run a finished job again",
)
async def requeue_job(
    job_id: int,
    session: SessionDep,
    store: JobStoreDep,
    lifecycle: JobLifecycleDep,
) -> JobResponse:
    job = await _get_job(session, store, job_id)
    try:
        await lifecycle.requeue(job)
    except InvalidTransitionError as e:
        raise _conflict(e) from e
    except EnqueueError as e:
        raise ServiceUnavailableException(
            detail="Work queue unavailable, job not requeued",
            type="enqueue-failed",
        ) from e
    return JobResponse.from_job(job)


@router.delete(
    "/{job_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a job",
    description="Cancels the queued task, if any, and removes the job's log.",
)
async def delete_job(
    job_id: int,
    session: SessionDep,
    store: JobStoreDep,
    lifecycle: JobLifecycleDep,
) -> None:
    job = await _get_job(session, store, job_id)
    await lifecycle.destroy(job)
