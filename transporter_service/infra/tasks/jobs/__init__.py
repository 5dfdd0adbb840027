"""Transporter job system.

Provides:
- Job lifecycle state machine with audit trail
- Priority ranks for the work queue, including "next"
- Database-backed work queue and polling worker
- Per-job log files with offset tailing
- Search filters over job records

Usage:
    from transporter_service.infra.tasks.jobs import (
        DatabaseWorkQueue,
        JobLifecycle,
        UploadJob,
    )

    lifecycle = JobLifecycle(session, DatabaseWorkQueue(session))
    job = await lifecycle.create(
        UploadJob(account_id=7, priority="low", options={"package_id": "abc"})
    )
"""

from transporter_service.infra.tasks.jobs.enums import (
    TRANSITIONS,
    JobEvent,
    JobPriority,
    JobState,
    is_valid_transition,
    next_state,
)
from transporter_service.infra.tasks.jobs.exceptions import (
    EnqueueError,
    InvalidTransitionError,
    JobError,
)
from transporter_service.infra.tasks.jobs.executor import JobExecutor
from transporter_service.infra.tasks.jobs.lifecycle import JobLifecycle, exception_payload
from transporter_service.infra.tasks.jobs.log_sink import LogSink
from transporter_service.infra.tasks.jobs.models import (
    JOB_CLASSES,
    Account,
    LookupJob,
    ProvidersJob,
    QueuedTask,
    SchemaJob,
    StatusJob,
    TransporterJob,
    TransporterJobAuditLog,
    UploadJob,
    VerifyJob,
    job_class_for,
)
from transporter_service.infra.tasks.jobs.priority import PRIORITY_RANKS, rank
from transporter_service.infra.tasks.jobs.queue import DatabaseWorkQueue, WorkQueue
from transporter_service.infra.tasks.jobs.search import JobSearchQuery, SearchQueryBuilder
from transporter_service.infra.tasks.jobs.store import AccountStore, JobStore
from transporter_service.infra.tasks.jobs.worker import TransporterWorker

__all__ = [
    "JOB_CLASSES",
    "PRIORITY_RANKS",
    "TRANSITIONS",
    "Account",
    "AccountStore",
    "DatabaseWorkQueue",
    "EnqueueError",
    "InvalidTransitionError",
    "JobError",
    "JobEvent",
    "JobExecutor",
    "JobLifecycle",
    "JobPriority",
    "JobSearchQuery",
    "JobState",
    "JobStore",
    "LogSink",
    "LookupJob",
    "ProvidersJob",
    "QueuedTask",
    "SchemaJob",
    "SearchQueryBuilder",
    "StatusJob",
    "TransporterJob",
    "TransporterJobAuditLog",
    "TransporterWorker",
    "UploadJob",
    "VerifyJob",
    "WorkQueue",
    "exception_payload",
    "is_valid_transition",
    "job_class_for",
    "next_state",
    "rank",
]
