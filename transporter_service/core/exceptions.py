"""HTTP-facing exceptions rendered as RFC 7807 problem details.

Subclasses fix the status code, title and default problem type; raise
sites supply the detail and, where useful, a more specific type and
structured ``extra`` fields:

    raise ConflictException(
        detail="Job 7 cannot go from success to failure",
        type="invalid-transition",
        extra={"job_id": 7},
    )
"""

from __future__ import annotations

from typing import Any, ClassVar

from transporter_service.core.schemas.error import ProblemDetail


class AppException(Exception):
    """Base for errors the API reports to clients.

    Attributes:
        status_code: HTTP status of the response.
        detail: Message for this occurrence.
        type: Problem type identifier.
        title: Summary of the problem type.
        extra: Additional members merged into the problem document.
    """

    default_status: ClassVar[int] = 500
    default_type: ClassVar[str] = "about:blank"
    default_title: ClassVar[str | None] = None

    def __init__(
        self,
        detail: str,
        *,
        status_code: int | None = None,
        type: str | None = None,  # noqa: A002
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code or self.default_status
        self.detail = detail
        self.type = type or self.default_type
        self.title = self.default_title or ProblemDetail.default_title(self.status_code)
        self.extra = extra or {}
        super().__init__(detail)


class NotFoundException(AppException):
    default_status = 404
    default_type = "not-found"


class ValidationException(AppException):
    """Request is well-formed JSON but names something that cannot be used."""

    default_status = 422
    default_type = "validation-error"
    default_title = "Validation Error"


class ConflictException(AppException):
    """Request conflicts with the job's current state."""

    default_status = 409
    default_type = "conflict"


class ServiceUnavailableException(AppException):
    """The work queue or database could not serve the request."""

    default_status = 503
    default_type = "service-unavailable"
