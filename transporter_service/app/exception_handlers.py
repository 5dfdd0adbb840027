"""Exception handlers that render every error as problem details."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from transporter_service.core.database import NotFoundError
from transporter_service.core.exceptions import AppException
from transporter_service.core.schemas import FieldError, ProblemDetail, ValidationProblemDetail
from transporter_service.infra.tasks.jobs import EnqueueError, InvalidTransitionError

logger = logging.getLogger(__name__)


def _problem(
    request: Request,
    status_code: int,
    detail: str,
    type_: str,
    *,
    title: str | None = None,
    extra: dict[str, Any] | None = None,
) -> JSONResponse:
    problem = ProblemDetail(
        type=type_,
        title=title or ProblemDetail.default_title(status_code),
        status=status_code,
        detail=detail,
        instance=str(request.url),
    )
    content = problem.model_dump(exclude_none=True)
    if extra:
        content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def _validation_problem(request: Request, errors: list[Any], what: str) -> JSONResponse:
    field_errors = [
        FieldError(
            field=".".join(str(loc) for loc in error["loc"]),
            message=error["msg"],
            type=error["type"],
            value=error.get("input"),
        )
        for error in errors
    ]
    logger.warning(
        "%s validation failed",
        what,
        extra={"path": request.url.path, "error_count": len(field_errors)},
    )
    problem = ValidationProblemDetail(
        type="validation-error",
        title="Validation Error",
        status=422,
        detail=f"{what} validation failed for {len(field_errors)} field(s)",
        instance=str(request.url),
        errors=field_errors,
    )
    return JSONResponse(status_code=422, content=problem.model_dump(mode="json", exclude_none=True))


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    logger.warning(
        "Request rejected",
        extra={
            "path": request.url.path,
            "method": request.method,
            "problem_type": exc.type,
            "status_code": exc.status_code,
            "detail": exc.detail,
        },
    )
    return _problem(request, exc.status_code, exc.detail, exc.type, title=exc.title, extra=exc.extra)


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return _problem(request, 404, str(exc), "not-found")


async def invalid_transition_handler(request: Request, exc: InvalidTransitionError) -> JSONResponse:
    logger.warning(
        "Invalid job transition requested",
        extra={"path": request.url.path, "job_id": exc.job_id, "event": exc.event.value},
    )
    return _problem(request, 409, str(exc), "invalid-transition")


async def enqueue_error_handler(request: Request, exc: EnqueueError) -> JSONResponse:
    logger.error(
        "Work queue rejected job",
        extra={"path": request.url.path, "job_type": exc.job_type, "error": str(exc)},
    )
    return _problem(request, 503, "Work queue unavailable", "enqueue-failed")


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return _validation_problem(request, list(exc.errors()), "Request")


async def pydantic_validation_exception_handler(
    request: Request, exc: PydanticValidationError
) -> JSONResponse:
    """Models validated inside a handler, outside FastAPI's request parsing."""
    return _validation_problem(request, exc.errors(include_url=False), "Data")


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the traceback; the client only learns that something failed."""
    logger.error(
        "Unexpected exception occurred",
        extra={
            "path": request.url.path,
            "method": request.method,
            "exception_type": type(exc).__name__,
        },
        exc_info=exc,
    )
    return _problem(
        request,
        500,
        "An unexpected error occurred while processing your request",
        "internal-error",
    )


def configure_exception_handlers(app: FastAPI) -> None:
    """Register the problem-detail handlers on ``app``."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(InvalidTransitionError, invalid_transition_handler)
    app.add_exception_handler(EnqueueError, enqueue_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PydanticValidationError, pydantic_validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
