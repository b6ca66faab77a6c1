"""
Custom exception hierarchy for the habit scheduling engine.

Rule: every error has a machine-readable `code` string so the presentation
layer can branch on it without parsing English messages.

Storage and validation errors propagate to the caller and are rendered as
a `{code, message, details}` envelope. Reminder adapter errors are logged
and swallowed by the engine; they never roll back habit state.
"""
from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class HabitualException(Exception):
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


class HabitValidationError(HabitualException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            message=message,
            details={"field": field} if field else {},
        )


class UnknownFrequencyError(HabitValidationError):
    code = "UNKNOWN_FREQUENCY"

    def __init__(self, value: Any):
        HabitualException.__init__(
            self,
            message=f"Unknown frequency {value!r}. Expected Daily, Weekly or Monthly.",
            details={"field": "frequency", "value": str(value)},
        )


class HabitNotFoundError(HabitualException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "HABIT_NOT_FOUND"

    def __init__(self, habit_id: int):
        super().__init__(
            message=f"Habit {habit_id} does not exist.",
            details={"habit_id": habit_id},
        )


class StorageError(HabitualException):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "STORAGE_ERROR"

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(
            message=message,
            details={"operation": operation} if operation else {},
        )


class AdapterError(HabitualException):
    http_status = status.HTTP_502_BAD_GATEWAY
    code = "REMINDER_ADAPTER_ERROR"

    def __init__(self, message: str, habit_id: int | None = None):
        super().__init__(
            message=message,
            details={"habit_id": habit_id} if habit_id is not None else {},
        )


class NothingToConfirmError(HabitualException):
    http_status = status.HTTP_409_CONFLICT
    code = "NOTHING_TO_CONFIRM"

    def __init__(self):
        super().__init__(message="No habit is currently awaiting confirmation.")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def habitual_exception_handler(request: Request, exc: HabitualException) -> JSONResponse:
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


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
