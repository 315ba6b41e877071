"""
Custom exception hierarchy for the habit rollup service.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.

Arithmetic edge cases (zero targets, empty days, no habits) are never
errors; they resolve to 0 inside the services.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class HabitRollupException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidRequestError(HabitRollupException):
    """Missing or malformed identity fields. Raised before any write."""
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            message=message,
            details={"field": field} if field else {},
        )


class InvalidDateRangeError(InvalidRequestError):
    code = "INVALID_DATE_RANGE"

    def __init__(self, start: date, end: date):
        HabitRollupException.__init__(
            self,
            message=f"Range start {start} is after range end {end}.",
            details={"start": str(start), "end": str(end)},
        )


class HabitNotFoundError(HabitRollupException):
    """The habit does not exist or belongs to another user."""
    http_status = status.HTTP_404_NOT_FOUND
    code = "HABIT_NOT_FOUND"

    def __init__(self, habit_id: int):
        super().__init__(
            message=f"Habit {habit_id} not found.",
            details={"habit_id": habit_id},
        )


class SubTaskNotFoundError(HabitRollupException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "SUBTASK_NOT_FOUND"

    def __init__(self, sub_task_id: int, habit_id: int):
        super().__init__(
            message=f"Sub-task {sub_task_id} not found on habit {habit_id}.",
            details={"sub_task_id": sub_task_id, "habit_id": habit_id},
        )


class SubTasksNotEnabledError(HabitRollupException):
    http_status = status.HTTP_409_CONFLICT
    code = "SUBTASKS_NOT_ENABLED"

    def __init__(self, habit_id: int):
        super().__init__(
            message=f"Habit {habit_id} does not track sub-tasks.",
            details={"habit_id": habit_id},
        )


class StoreUnavailableError(HabitRollupException):
    """Backing store unreachable. Transient; retries belong to the caller."""
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "STORE_UNAVAILABLE"

    def __init__(self, message: str = "The backing store is unavailable."):
        super().__init__(message=message)


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def habit_rollup_exception_handler(
    request: Request, exc: HabitRollupException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def store_unavailable_handler(
    request: Request, exc: OperationalError
) -> JSONResponse:
    logger.warning("Store operation failed on %s: %s", request.url.path, exc.orig)
    err = StoreUnavailableError()
    return JSONResponse(status_code=err.http_status, content=err.to_dict())


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
