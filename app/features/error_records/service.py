"""Error record queries."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.features.error_records.models import ErrorRecord
from app.features.error_records.schemas import ErrorRecordResponse
from app.shared.schemas import PaginationParams

logger = get_logger(__name__)


class ErrorRecordService:
    """Read access to the error log."""

    async def list_records(
        self,
        db: AsyncSession,
        pagination: PaginationParams,
        file_name: str | None = None,
        table_name: str | None = None,
    ) -> tuple[list[ErrorRecordResponse], int]:
        """List error records, newest first.

        Args:
            db: Async database session.
            pagination: Page and page size.
            file_name: Exact file name filter.
            table_name: Table name filter (case-insensitive).

        Returns:
            Tuple of (records on the page, total matching count).
        """
        stmt = select(ErrorRecord)
        if file_name is not None:
            stmt = stmt.where(ErrorRecord.file_name == file_name)
        if table_name is not None:
            stmt = stmt.where(func.lower(ErrorRecord.table_name) == table_name.lower())

        total = await db.scalar(select(func.count()).select_from(stmt.subquery())) or 0

        stmt = (
            stmt.order_by(ErrorRecord.logged_at.desc(), ErrorRecord.id.desc())
            .offset(pagination.offset)
            .limit(pagination.limit)
        )
        result = await db.execute(stmt)
        records = [ErrorRecordResponse.model_validate(row) for row in result.scalars().all()]

        logger.debug(
            "error_records.listed",
            file_name=file_name,
            table_name=table_name,
            total=total,
            returned=len(records),
        )
        return records, total
