"""SQLAlchemy models for transporter jobs.

Models:
    Account: iTunes Connect credentials a job runs under
    TransporterJob: Job record, one subclass per variant (single table)
    TransporterJobAuditLog: Records every applied state transition
    QueuedTask: Entry in the database-backed work queue
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    event,
    inspect,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from transporter_service.core.database import (
    Base,
    IntegerPKMixin,
    JSONType,
    TimestampMixin,
    utcnow,
)
from transporter_service.infra.tasks.jobs.enums import JobPriority, JobState
from transporter_service.infra.tasks.jobs.options import (
    JobOptions,
    LookupOptions,
    ProvidersOptions,
    SchemaOptions,
    StatusOptions,
    UploadOptions,
    VerifyOptions,
)

logger = logging.getLogger(__name__)

TYPE_SUFFIX = "Job"


class Account(Base, IntegerPKMixin, TimestampMixin):
    """iTunes Connect account used to authenticate the transporter tool."""

    __tablename__ = "accounts"

    username: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    shortname: Mapped[str | None] = mapped_column(String(255), nullable=True)
    itc_provider: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def credentials(self) -> dict[str, str]:
        """Options understood by the transporter tool, unset values omitted."""
        values = {
            "username": self.username,
            "password": self.password,
            "shortname": self.shortname,
            "itc_provider": self.itc_provider,
        }
        return {key: value for key, value in values.items() if value}

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, username={self.username!r})>"


class TransporterJob(Base, IntegerPKMixin, TimestampMixin):
    """A unit of work against the package-distribution service.

    The ``type`` column holds the variant's class name (``"UploadJob"``);
    ``display_type`` and ``command`` strip the ``Job`` suffix.

    Example:
        job = UploadJob(
            account_id=7,
            priority="low",
            options={"package_id": "abc"},
        )
    """

    __tablename__ = "transporter_jobs"
    __table_args__ = (
        Index("ix_transporter_jobs_state_updated_at", "state", "updated_at"),
    )

    options_model = JobOptions

    type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    target: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True, comment="Computed once from options"
    )
    state: Mapped[str | None] = mapped_column(
        String(20), nullable=True, index=True, comment="Unset until first transition"
    )
    priority: Mapped[str | None] = mapped_column(String(20), nullable=True)
    options: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    result: Mapped[Any | None] = mapped_column(JSONType, nullable=True)
    exceptions: Mapped[Any | None] = mapped_column(JSONType, nullable=True)
    job_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, comment="Work queue task id while queued"
    )

    account: Mapped[Account] = relationship(lazy="raise")

    __mapper_args__ = {
        "polymorphic_on": "type",
        "polymorphic_identity": "TransporterJob",
    }

    @property
    def display_type(self) -> str | None:
        if not self.type:
            return None
        return self.type.removesuffix(TYPE_SUFFIX)

    @property
    def command(self) -> str:
        """Name of the transporter operation this job runs."""
        return type(self).__name__.removesuffix(TYPE_SUFFIX)

    @property
    def job_state(self) -> JobState | None:
        return JobState(self.state) if self.state else None

    @property
    def effective_priority(self) -> JobPriority:
        return JobPriority.coerce(self.priority)

    @property
    def is_completed(self) -> bool:
        state = self.job_state
        return state is not None and state.is_terminal()

    def typed_options(self) -> JobOptions:
        return self.options_model.model_validate(self.options or {})

    def compute_target(self) -> str | None:
        return self.typed_options().target()

    def __str__(self) -> str:
        if not self.display_type:
            return ""
        label = f"{self.display_type} Job"
        if self.target:
            label += f": {self.target}"
        return label

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(id={self.id}, state={self.state!r}, target={self.target!r})>"


class UploadJob(TransporterJob):
    options_model = UploadOptions
    __mapper_args__ = {"polymorphic_identity": "UploadJob"}


class VerifyJob(TransporterJob):
    options_model = VerifyOptions
    __mapper_args__ = {"polymorphic_identity": "VerifyJob"}


class SchemaJob(TransporterJob):
    options_model = SchemaOptions
    __mapper_args__ = {"polymorphic_identity": "SchemaJob"}


class LookupJob(TransporterJob):
    options_model = LookupOptions
    __mapper_args__ = {"polymorphic_identity": "LookupJob"}


class StatusJob(TransporterJob):
    options_model = StatusOptions
    __mapper_args__ = {"polymorphic_identity": "StatusJob"}


class ProvidersJob(TransporterJob):
    options_model = ProvidersOptions
    __mapper_args__ = {"polymorphic_identity": "ProvidersJob"}


JOB_CLASSES: dict[str, type[TransporterJob]] = {
    cls.__name__: cls
    for cls in (UploadJob, VerifyJob, SchemaJob, LookupJob, StatusJob, ProvidersJob)
}


def job_class_for(kind: str) -> type[TransporterJob] | None:
    """Resolve ``"upload"``, ``"Upload"`` or ``"UploadJob"`` to its model class."""
    name = kind.strip()
    if not name:
        return None
    name = name[0].upper() + name[1:]
    if not name.endswith(TYPE_SUFFIX):
        name += TYPE_SUFFIX
    return JOB_CLASSES.get(name)


@event.listens_for(TransporterJob, "before_insert", propagate=True)
def _prepare_new_job(mapper: Any, connection: Any, job: TransporterJob) -> None:
    """Typecast options and set the target exactly once, on first save."""
    _ = mapper, connection
    job.options = job.options_model.typecast(job.options)
    if job.target is None:
        job.target = job.compute_target()


@event.listens_for(TransporterJob, "before_update", propagate=True)
def _typecast_changed_options(mapper: Any, connection: Any, job: TransporterJob) -> None:
    _ = mapper, connection
    if inspect(job).attrs.options.history.has_changes():
        job.options = job.options_model.typecast(job.options)


class TransporterJobAuditLog(Base, IntegerPKMixin):
    """Records every applied state transition of a transporter job.

    Example:
        audit = TransporterJobAuditLog(
            job_id=job.id,
            from_state="running",
            to_state="failure",
            event="fail",
            triggered_by="worker",
        )
    """

    __tablename__ = "transporter_job_audit_logs"

    job_id: Mapped[int] = mapped_column(
        ForeignKey("transporter_jobs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    from_state: Mapped[str | None] = mapped_column(
        String(20), nullable=True, comment="Previous state (None before first transition)"
    )
    to_state: Mapped[str] = mapped_column(String(20), nullable=False)
    event: Mapped[str] = mapped_column(String(20), nullable=False)
    triggered_by: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="What triggered the transition: api, worker, queue, system",
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )

    def __repr__(self) -> str:
        return (
            f"<TransporterJobAuditLog(job_id={self.job_id}, "
            f"{self.from_state} -> {self.to_state})>"
        )


class QueuedTask(Base, IntegerPKMixin, TimestampMixin):
    """Pending unit of work in the database-backed queue.

    Lower ``priority`` runs first; ties go to the earliest ``run_at``.
    A task is locked while a worker runs it and deleted once it finishes.
    """

    __tablename__ = "queued_tasks"
    __table_args__ = (Index("ix_queued_tasks_priority_run_at", "priority", "run_at"),)

    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    payload: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    run_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    locked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    locked_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    failed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<QueuedTask(id={self.id}, priority={self.priority}, locked_by={self.locked_by!r})>"


__all__ = [
    "JOB_CLASSES",
    "Account",
    "LookupJob",
    "ProvidersJob",
    "QueuedTask",
    "SchemaJob",
    "StatusJob",
    "TransporterJob",
    "TransporterJobAuditLog",
    "UploadJob",
    "VerifyJob",
    "job_class_for",
]
