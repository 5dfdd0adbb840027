"""RFC 7807 problem detail response models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

STATUS_TITLES: dict[int, str] = {
    400: "Bad Request",
    404: "Not Found",
    409: "Conflict",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


class ProblemDetail(BaseModel):
    """Problem details for HTTP APIs (RFC 7807)."""

    type: str = Field(default="about:blank", description="Error type identifier")
    title: str = Field(..., description="Short summary of the problem type")
    status: int = Field(..., description="HTTP status code")
    detail: str | None = Field(default=None, description="Explanation of this occurrence")
    instance: str | None = Field(default=None, description="URI of this occurrence")

    @staticmethod
    def default_title(status_code: int) -> str:
        return STATUS_TITLES.get(status_code, "Error")


class FieldError(BaseModel):
    """One field-level validation failure."""

    field: str
    message: str
    type: str
    value: Any = None


class ValidationProblemDetail(ProblemDetail):
    errors: list[FieldError] = Field(default_factory=list)
