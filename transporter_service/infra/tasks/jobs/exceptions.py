"""Errors raised by the transporter job subsystem."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from transporter_service.infra.tasks.jobs.enums import JobEvent, JobState


class JobError(Exception):
    """Base class for job subsystem errors."""


class EnqueueError(JobError):
    """Raised when the work queue rejects a task; the job was not created."""

    def __init__(self, message: str, *, job_type: str | None = None) -> None:
        self.job_type = job_type
        super().__init__(message)


class InvalidTransitionError(JobError):
    """Raised when an event is not allowed from the job's current state."""

    def __init__(
        self,
        from_state: JobState | None,
        event: JobEvent,
        job_id: int | None = None,
    ) -> None:
        self.from_state = from_state
        self.event = event
        self.job_id = job_id
        current = from_state.value if from_state is not None else "none"
        super().__init__(
            f"Invalid transition: cannot {event.value} from {current}"
            + (f" for job {job_id}" if job_id is not None else "")
        )


__all__ = [
    "EnqueueError",
    "InvalidTransitionError",
    "JobError",
]
