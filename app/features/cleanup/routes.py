"""Maintenance API routes."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db
from app.core.exceptions import CleanupFailedError
from app.core.logging import get_logger
from app.features.cleanup.schemas import CleanupResponse
from app.features.cleanup.service import CleanupService

logger = get_logger(__name__)

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.post(
    "/cleanup",
    response_model=CleanupResponse,
    status_code=status.HTTP_200_OK,
    summary="Purge aged error records now",
    description="""
Run the error-log retention purge once, outside the regular schedule.

Deletes error records older than `cleanup_retention_days`. Customers,
Products and Sales are never affected.
""",
)
async def trigger_cleanup(
    db: AsyncSession = Depends(get_db),
) -> CleanupResponse:
    """Run the purge once.

    Raises:
        CleanupFailedError: If the purge fails.
    """
    logger.info("cleanup.manual_trigger_received")
    settings = get_settings()

    try:
        result = await CleanupService(settings).purge(db)
    except Exception as e:
        logger.error(
            "cleanup.manual_trigger_failed",
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True,
        )
        raise CleanupFailedError(error=str(e)) from e

    return CleanupResponse(
        success=True,
        message=(
            f"Cleanup completed: {result.deleted_error_records} error record(s) older than "
            f"{settings.cleanup_retention_days} day(s) removed."
        ),
        deleted_error_records=result.deleted_error_records,
        timestamp=result.completed_at,
    )
