"""Deduplicated error log for one upload.

Row failures are collected per table while a sheet is processed and then
written as a single aggregated ErrorRecord keyed by (file name, table name).
The write goes through ``insert_if_absent``, so re-processing the same file
never adds a second record for a sheet: the first batch logged wins.
"""

from __future__ import annotations

import json

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.features.error_records.models import ErrorRecord
from app.features.upload.persistence import insert_if_absent
from app.features.upload.schemas import RowFailure, TableErrorBatch, TableName

logger = get_logger(__name__)

UNKNOWN_IDENTIFIER = "UNKNOWN"


class ErrorSink:
    """Collects row failures for one uploaded file and logs them per table."""

    def __init__(self, file_name: str) -> None:
        self.file_name = file_name
        self._pending: dict[TableName, list[RowFailure]] = {}

    def record(
        self,
        table: TableName,
        *,
        row_number: int,
        record_identifier: str,
        message: str,
        fields: list[str] | None = None,
    ) -> None:
        """Queue one row failure for the given table."""
        self._pending.setdefault(table, []).append(
            RowFailure(
                row_number=row_number,
                record_identifier=record_identifier or UNKNOWN_IDENTIFIER,
                message=message,
                fields=fields or [],
            )
        )

    def failure_count(self, table: TableName) -> int:
        return len(self._pending.get(table, []))

    async def flush_table(self, db: AsyncSession, table: TableName) -> TableErrorBatch | None:
        """Write the queued failures of one table as a single error record.

        A failure to write the record is logged and swallowed so the upload
        can go on; the batch is still returned to the caller.

        Args:
            db: Async database session.
            table: Table whose failures to flush.

        Returns:
            The batch that was flushed, or None if the table had no failures.
        """
        failures = self._pending.pop(table, [])
        if not failures:
            return None

        details = json.dumps([failure.model_dump(mode="json") for failure in failures])
        try:
            newly_logged = await insert_if_absent(
                db,
                ErrorRecord,
                {
                    "file_name": self.file_name,
                    "table_name": table.value,
                    "error_details": details,
                    "error_count": len(failures),
                },
                conflict_columns=("file_name", "table_name"),
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                "upload.error_log_write_failed",
                file_name=self.file_name,
                table_name=table.value,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return TableErrorBatch(table_name=table, errors=failures, newly_logged=False)

        if newly_logged:
            logger.info(
                "upload.error_batch_logged",
                file_name=self.file_name,
                table_name=table.value,
                error_count=len(failures),
            )
        else:
            logger.info(
                "upload.error_batch_already_logged",
                file_name=self.file_name,
                table_name=table.value,
                error_count=len(failures),
            )

        return TableErrorBatch(table_name=table, errors=failures, newly_logged=newly_logged)
