"""RFC 7807 problem documents.

Failed requests are answered with ``application/problem+json``: the error
category as a relative type URI, a human-readable detail, the request id
for correlation and ``success: false`` so clients can branch on the same
flag that upload and cleanup responses carry.

Reference: https://datatracker.ietf.org/doc/html/rfc7807
"""

from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from app.core.logging import request_id_ctx

ERROR_TYPE_BASE = "/errors"

ERROR_TYPES = {
    "NOT_FOUND": f"{ERROR_TYPE_BASE}/not-found",
    "VALIDATION_ERROR": f"{ERROR_TYPE_BASE}/validation",
    "UPLOAD_REJECTED": f"{ERROR_TYPE_BASE}/upload-rejected",
    "CLEANUP_FAILED": f"{ERROR_TYPE_BASE}/cleanup-failed",
    "INTERNAL_ERROR": f"{ERROR_TYPE_BASE}/internal",
}


class ProblemDetail(BaseModel):
    """Problem document body.

    Unknown keyword arguments are kept as RFC 7807 extension members
    (for example ``reason`` and ``file_name`` of a rejected upload).
    """

    model_config = ConfigDict(extra="allow")

    type: str = Field(default="about:blank", description="Problem type URI")
    title: str = Field(..., description="Short summary of the problem type")
    status: int = Field(..., ge=400, le=599, description="HTTP status code")
    detail: str | None = Field(None, description="Explanation of this occurrence")
    instance: str | None = Field(None, description="URI of this occurrence")
    success: bool = Field(False, description="Always false for problem responses")
    errors: list[dict[str, Any]] | None = Field(
        None, description="Field-level validation errors (422 only)"
    )
    code: str | None = Field(None, description="Machine-readable error code")
    request_id: str | None = Field(None, description="Request correlation ID")


class ProblemDetailResponse(JSONResponse):
    """JSON response with RFC 7807 content type."""

    media_type = "application/problem+json"


def problem_response(
    status: int,
    title: str,
    detail: str | None = None,
    error_code: str = "INTERNAL_ERROR",
    errors: list[dict[str, Any]] | None = None,
    extensions: dict[str, Any] | None = None,
) -> ProblemDetailResponse:
    """Build a problem response for the current request.

    Args:
        status: HTTP status code.
        title: Short problem summary.
        detail: Explanation of this occurrence.
        error_code: Key into ERROR_TYPES; unknown codes get a derived URI.
        errors: Field-level validation errors.
        extensions: Extra members added to the document.

    Returns:
        Response with the problem+json content type.
    """
    request_id = request_id_ctx.get()
    problem = ProblemDetail(
        type=ERROR_TYPES.get(error_code, f"{ERROR_TYPE_BASE}/{error_code.lower().replace('_', '-')}"),
        title=title,
        status=status,
        detail=detail,
        instance=f"/requests/{request_id}" if request_id else None,
        errors=errors,
        code=error_code,
        request_id=request_id,
        **(extensions or {}),
    )
    return ProblemDetailResponse(
        status_code=status,
        content=problem.model_dump(mode="json", exclude_none=True),
    )
