"""
Custom exception hierarchy for the accountability ledger.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.

Invariant violations (negative credits, overlapping periods) are never
raised: the reset scheduler and penalty code clamp them away.
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

class LedgerError(Exception):
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


class GoalNotFoundError(LedgerError):
    """Unknown app identifier. Clients treat this as "no limit configured"."""
    http_status = status.HTTP_404_NOT_FOUND
    code = "GOAL_NOT_FOUND"

    def __init__(self, app_identifier: str):
        super().__init__(
            message=f"No active goal for app '{app_identifier}'.",
            details={"app_identifier": app_identifier},
        )


class GoalAlreadyExistsError(LedgerError):
    http_status = status.HTTP_409_CONFLICT
    code = "GOAL_ALREADY_EXISTS"

    def __init__(self, app_identifier: str):
        super().__init__(
            message=f"App '{app_identifier}' already has an active goal.",
            details={"app_identifier": app_identifier},
        )


class ExtensionLimitReachedError(LedgerError):
    http_status = status.HTTP_409_CONFLICT
    code = "EXTENSION_LIMIT_REACHED"

    def __init__(self, app_identifier: str, max_per_day: int):
        super().__init__(
            message=(
                f"App '{app_identifier}' already has {max_per_day} extensions today."
            ),
            details={"app_identifier": app_identifier, "max_per_day": max_per_day},
        )


class PetNotFoundError(LedgerError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "PET_NOT_FOUND"

    def __init__(self):
        super().__init__(message="No pet has been chosen yet.")


class StaleStateError(LedgerError):
    """
    A durability write failed after retries. When ``queued`` the change is
    held in memory and retried with the next command.
    """
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "STALE_STATE"

    def __init__(self, operation: str, attempts: int, queued: bool = False):
        details = {"operation": operation, "attempts": attempts}
        message = f"Could not persist '{operation}' after {attempts} attempt(s)."
        if queued:
            details["queued"] = True
            message += " The change is queued and will be retried."
        super().__init__(message=message, details=details)
        self.queued = queued


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def ledger_exception_handler(request: Request, exc: LedgerError) -> JSONResponse:
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
