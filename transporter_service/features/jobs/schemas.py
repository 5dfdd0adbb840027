"""Pydantic schemas for the transporter jobs feature.

The ``*Form`` models validate a submission and turn it into the job's
options mapping plus its symbolic priority via ``to_payload()``.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from transporter_service.infra.tasks.jobs import JobPriority
from transporter_service.infra.tasks.jobs.options import PACKAGE_SUFFIX

if TYPE_CHECKING:
    from transporter_service.core.database import SearchResult
    from transporter_service.infra.tasks.jobs import TransporterJob, TransporterJobAuditLog


# =============================================================================
# Forms
# =============================================================================


class JobForm(BaseModel):
    """Fields shared by every job submission.

    Unknown fields are kept and passed through as options. ``username`` and
    ``password`` override the account's stored credentials when given.
    """

    model_config = ConfigDict(extra="allow", str_strip_whitespace=True)

    account_id: int = Field(..., gt=0)
    priority: JobPriority | None = None
    username: str | None = Field(default=None, min_length=1)
    password: str | None = Field(default=None, min_length=1)

    def options(self) -> dict[str, Any]:
        return self.model_dump(
            mode="json",
            exclude={"account_id", "priority"},
            exclude_none=True,
        )

    def to_payload(self) -> tuple[dict[str, Any], JobPriority | None]:
        """Split the form into (options, priority)."""
        return self.options(), self.priority


class PackageForm(JobForm):
    package: str = Field(..., min_length=1, description="Path to the .itmsp package")
    package_id: str | None = None

    @field_validator("package")
    @classmethod
    def validate_package(cls, v: str) -> str:
        if not v.rstrip("/").endswith(PACKAGE_SUFFIX):
            msg = f"Package must be a {PACKAGE_SUFFIX} directory"
            raise ValueError(msg)
        return v


class UploadForm(PackageForm):
    transport: Literal["Aspera", "Signiant", "DAV"] | None = None
    rate: int | None = Field(default=None, gt=0, description="Upload rate in Kbps")
    delete: bool | None = None
    batch: bool | None = None
    log_history: bool | None = None
    success: str | None = Field(default=None, description="Move the package here on success")
    failure: str | None = Field(default=None, description="Move the package here on failure")


class VerifyForm(PackageForm):
    verify_assets: bool | None = None


class SchemaForm(JobForm):
    version_name: Literal["film", "tv"] = Field(..., description="Must be film or tv")
    version_number: str = Field(..., min_length=1)
    type: Literal["transitional", "strict"] = Field(
        ..., description="Must be transitional or strict"
    )

    @field_validator("version_number", mode="before")
    @classmethod
    def validate_version_number(cls, v: Any) -> Any:
        try:
            number = Decimal(str(v))
        except InvalidOperation:
            msg = "Version number must be a number"
            raise ValueError(msg) from None
        if not number.is_finite() or number <= 0:
            msg = "Version number must be greater than 0"
            raise ValueError(msg)
        return str(v)

    def options(self) -> dict[str, Any]:
        options = super().options()
        options.pop("version_name", None)
        options.pop("version_number", None)
        options["version"] = f"{self.version_name}{self.version_number}"
        return options


class LookupForm(JobForm):
    package_id: Literal["vendor_id", "apple_id"] = Field(
        ..., description="Must be vendor_id or apple_id"
    )
    package_id_value: str = Field(
        ..., min_length=1, description="You must provide an Apple ID or Vendor ID"
    )
    destination: str | None = None

    def options(self) -> dict[str, Any]:
        options = super().options()
        options.pop("package_id", None)
        options.pop("package_id_value", None)
        options[self.package_id] = self.package_id_value
        return options


class StatusForm(JobForm):
    vendor_id: str = Field(..., min_length=1)


class ProvidersForm(JobForm):
    pass


FORMS: dict[str, type[JobForm]] = {
    "upload": UploadForm,
    "verify": VerifyForm,
    "schema": SchemaForm,
    "lookup": LookupForm,
    "status": StatusForm,
    "providers": ProvidersForm,
}


# =============================================================================
# Responses
# =============================================================================


class JobResponse(BaseModel):
    """A transporter job as returned by the API."""

    id: int
    type: str | None
    label: str
    account_id: int
    target: str | None
    state: str | None
    priority: JobPriority
    options: dict[str, Any]
    result: Any = None
    exceptions: Any = None
    job_id: int | None = None
    completed: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_job(cls, job: TransporterJob) -> JobResponse:
        return cls(
            id=job.id,
            type=job.display_type,
            label=str(job),
            account_id=job.account_id,
            target=job.target,
            state=job.state,
            priority=job.effective_priority,
            options=job.options or {},
            result=job.result,
            exceptions=job.exceptions,
            job_id=job.job_id,
            completed=job.is_completed,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )


class JobSearchResponse(BaseModel):
    items: list[JobResponse]
    total: int
    limit: int
    offset: int
    has_next: bool

    @classmethod
    def from_result(cls, result: SearchResult[TransporterJob]) -> JobSearchResponse:
        return cls(
            items=[JobResponse.from_job(job) for job in result.items],
            total=result.total,
            limit=result.limit,
            offset=result.offset,
            has_next=result.has_next,
        )


class JobLogChunk(BaseModel):
    """Bytes appended to a job's log since ``offset``.

    Pass ``next_offset`` back as ``offset`` to continue tailing.
    """

    job_id: int
    offset: int
    next_offset: int
    data: str
    has_output: bool


class AuditEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    from_state: str | None
    to_state: str
    event: str
    triggered_by: str
    reason: str | None
    created_at: datetime

    @classmethod
    def from_entry(cls, entry: TransporterJobAuditLog) -> AuditEntryResponse:
        return cls.model_validate(entry)


class AbortRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)
