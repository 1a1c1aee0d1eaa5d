"""Application exceptions and their FastAPI handlers.

Every exception raised to the HTTP layer is rendered as an RFC 7807 problem
document (see ``problem_details``). Row-level upload failures are NOT
exceptions: they are collected and logged by the upload pipeline, and only
a rejection of the upload as a whole surfaces here.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from app.core.logging import get_logger
from app.core.problem_details import (
    ERROR_TYPES,
    ProblemDetailResponse,
    problem_response,
)

logger = get_logger(__name__)


class SheetLedgerError(Exception):
    """Base exception for SheetLedger application errors.

    Subclasses pick an RFC 7807 type URI, a machine-readable code and an
    HTTP status; ``details`` become extension members of the problem.
    """

    error_type_uri: str = ERROR_TYPES["INTERNAL_ERROR"]

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    @property
    def title(self) -> str:
        """RFC 7807 title - short summary of problem type."""
        return self.code.replace("_", " ").title()


class NotFoundError(SheetLedgerError):
    """A lookup (for example error records for a file and table) matched nothing."""

    error_type_uri: str = ERROR_TYPES["NOT_FOUND"]

    def __init__(
        self,
        message: str = "Resource not found",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code="NOT_FOUND", status_code=404, details=details)


class RejectionReason(str, Enum):
    """Why an upload was refused before any row was read."""

    MISSING_FILE = "missing_file"
    EMPTY_FILE = "empty_file"
    TOO_LARGE = "too_large"
    UNREADABLE = "unreadable"


class UploadRejectedError(SheetLedgerError):
    """The uploaded file cannot be processed at all.

    Raised for a missing, empty, oversized or unreadable workbook. Nothing
    is written to the store when this is raised.
    """

    error_type_uri: str = ERROR_TYPES["UPLOAD_REJECTED"]

    def __init__(
        self,
        message: str,
        reason: RejectionReason,
        file_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.reason = reason
        super().__init__(
            message=message,
            code="UPLOAD_REJECTED",
            status_code=400,
            details={"reason": reason.value, "file_name": file_name, **(details or {})},
        )


class CleanupFailedError(SheetLedgerError):
    """An on-demand purge of the error log failed.

    The problem document carries the underlying error and the time of the
    failure, mirroring the fields of a successful cleanup response.
    """

    error_type_uri: str = ERROR_TYPES["CLEANUP_FAILED"]

    def __init__(self, message: str = "Cleanup failed.", error: str | None = None) -> None:
        self.failed_at = datetime.now(UTC)
        super().__init__(
            message=message,
            code="CLEANUP_FAILED",
            status_code=500,
            details={"error": error, "timestamp": self.failed_at.isoformat()},
        )


# =============================================================================
# Exception Handlers (RFC 7807)
# =============================================================================


async def sheetledger_exception_handler(
    _request: Request,
    exc: SheetLedgerError,
) -> ProblemDetailResponse:
    """Render a SheetLedgerError as a problem response.

    Client errors are logged as warnings, server errors as errors.
    """
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "app.error_handled",
        error=exc.message,
        error_type=type(exc).__name__,
        error_code=exc.code,
        status_code=exc.status_code,
        details=exc.details,
    )

    return problem_response(
        status=exc.status_code,
        title=exc.title,
        detail=exc.message,
        error_code=exc.code,
        extensions={key: value for key, value in exc.details.items() if value is not None},
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> ProblemDetailResponse:
    """Render request validation errors as a 422 problem with an ``errors`` list.

    Args:
        request: FastAPI request object.
        exc: Pydantic validation error.

    Returns:
        RFC 7807 Problem Detail response with field-level errors.
    """
    field_errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", []) if part != "body"),
            "message": str(error.get("msg", "Validation failed")),
            "type": str(error.get("type", "unknown")),
        }
        for error in exc.errors()
    ]

    logger.warning(
        "app.validation_error",
        error_count=len(field_errors),
        path=str(request.url.path),
        fields=[e["field"] for e in field_errors],
    )

    return problem_response(
        status=422,
        title="Validation Error",
        detail=f"Request validation failed with {len(field_errors)} error(s).",
        error_code="VALIDATION_ERROR",
        errors=field_errors,
    )


def unhandled_exception_response(request_path: str, exc: Exception) -> ProblemDetailResponse:
    """Log an unexpected exception and build the generic 500 problem response.

    The exception text is logged but never sent to the client.

    Args:
        request_path: Path of the request that failed.
        exc: The unexpected exception.

    Returns:
        RFC 7807 Problem Detail response.
    """
    logger.error(
        "app.unhandled_error",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request_path,
        exc_info=exc,
    )

    return problem_response(
        status=500,
        title="Internal Server Error",
        detail="An unexpected error occurred. Contact support with the request_id.",
        error_code="INTERNAL_ERROR",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with FastAPI app.

    Anything else is caught by GlobalExceptionMiddleware.
    """
    app.add_exception_handler(SheetLedgerError, sheetledger_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
