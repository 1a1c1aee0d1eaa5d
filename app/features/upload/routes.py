"""Upload API route for workbook ingestion."""

import time

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db
from app.core.exceptions import RejectionReason, UploadRejectedError
from app.core.logging import get_logger
from app.features.upload.schemas import UploadResponse
from app.features.upload.service import (
    EMPTY_UPLOAD_MESSAGE,
    WorkbookIngestService,
    oversized_upload_error,
)

logger = get_logger(__name__)

router = APIRouter(tags=["upload"])


@router.post(
    "/upload-excel",
    response_model=UploadResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload a Customers/Products/Sales workbook",
    description="""
Ingest an .xlsx workbook with up to three sheets: Customers, Products, Sales.

Sheets are matched by name (case-insensitive) and processed in that order,
so Sales can reference Customers and Products from the same upload.

**Idempotency:** Rows whose identifier already exists are skipped, never
updated. Uploading the same workbook twice leaves the tables unchanged.

**Partial Success:** Invalid rows are rejected and logged as one error
record per (file, table); all other rows are persisted. The response lists
every failed row.
""",
)
async def upload_excel(
    file: UploadFile | None = File(None, description="Workbook (.xlsx)"),
    db: AsyncSession = Depends(get_db),
) -> UploadResponse:
    """Ingest an uploaded workbook.

    Args:
        file: Multipart file upload.
        db: Async database session from dependency.

    Returns:
        Upload report.

    Raises:
        UploadRejectedError: If no file was sent, or it is empty, too large or
            unreadable.
    """
    if file is None:
        raise UploadRejectedError(EMPTY_UPLOAD_MESSAGE, RejectionReason.MISSING_FILE)

    settings = get_settings()
    start_time = time.perf_counter()
    file_name = file.filename or "upload.xlsx"
    # The declared size is known once the multipart body is spooled.
    if file.size is not None and file.size > settings.upload_max_bytes:
        raise oversized_upload_error(file_name, file.size, settings.upload_max_bytes)
    content = await file.read()

    logger.info(
        "upload.request_received",
        file_name=file_name,
        size_bytes=len(content),
        content_type=file.content_type,
    )

    result = await WorkbookIngestService(settings).ingest(db, file_name, content)

    logger.info(
        "upload.request_completed",
        file_name=file_name,
        total_errors=result.total_errors,
        duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
    )
    return result
