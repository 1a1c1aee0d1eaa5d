"""Error record API routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import NotFoundError
from app.core.logging import get_logger
from app.features.error_records.schemas import ErrorRecordResponse
from app.features.error_records.service import ErrorRecordService
from app.shared.schemas import PaginatedResponse, PaginationParams
from app.shared.utils import paginate_response

logger = get_logger(__name__)

router = APIRouter(prefix="/error-records", tags=["error-records"])


@router.get(
    "",
    response_model=PaginatedResponse[ErrorRecordResponse],
    summary="List logged row failures",
    description="""
List aggregated error records, newest first.

**Filters:**
- `file_name`: Exact uploaded file name
- `table_name`: Customers, Products or Sales (case-insensitive)
""",
)
async def list_error_records(
    db: AsyncSession = Depends(get_db),
    file_name: str | None = Query(None, description="Filter by uploaded file name"),
    table_name: str | None = Query(None, description="Filter by table name"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=500, description="Records per page"),
) -> PaginatedResponse[ErrorRecordResponse]:
    pagination = PaginationParams(page=page, page_size=page_size)
    records, total = await ErrorRecordService().list_records(
        db, pagination, file_name=file_name, table_name=table_name
    )
    return paginate_response(records, total, pagination)


@router.get(
    "/{file_name}/{table_name}",
    response_model=PaginatedResponse[ErrorRecordResponse],
    summary="Get logged failures for one file and table",
)
async def get_error_records_for_table(
    file_name: str,
    table_name: str,
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=500, description="Records per page"),
) -> PaginatedResponse[ErrorRecordResponse]:
    """Get error records for one (file, table) pair.

    Raises:
        NotFoundError: If no record matches.
    """
    pagination = PaginationParams(page=page, page_size=page_size)
    records, total = await ErrorRecordService().list_records(
        db, pagination, file_name=file_name, table_name=table_name
    )
    if total == 0:
        logger.info("error_records.not_found", file_name=file_name, table_name=table_name)
        raise NotFoundError(
            message=f"No error records found for file '{file_name}' and table '{table_name}'.",
            details={"file_name": file_name, "table_name": table_name},
        )
    return paginate_response(records, total, pagination)
