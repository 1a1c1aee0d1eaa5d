"""Workbook ingestion: validate, reconcile and persist Customers, Products, Sales.

Sheets are processed in a fixed order because Sales reference Customers and
Products that must already be committed. Every row is handled on its own:
it is validated, (for Sales) its references are resolved, and it is inserted
with an idempotent conditional insert and committed. Any failure is queued in
the ErrorSink and processing moves on to the next row; each sheet's failures
are then logged as one aggregated error record.

CRITICAL: only a missing, empty or unreadable upload aborts the request.
Nothing that happens to an individual row does.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from openpyxl import Workbook
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.database import Base
from app.core.exceptions import RejectionReason, UploadRejectedError
from app.core.logging import bind_log_context, get_logger
from app.features.catalog.models import Customer, Product, Sale
from app.features.upload.error_sink import ErrorSink
from app.features.upload.persistence import insert_if_absent
from app.features.upload.references import (
    MISSING_REFERENCE_MESSAGE,
    ReferenceChecker,
    ReferenceCheckerProtocol,
)
from app.features.upload.schemas import (
    TableErrorBatch,
    TableName,
    TableSummary,
    UploadResponse,
    UploadStage,
)
from app.features.upload.sheets import (
    SheetRow,
    WorkbookReadError,
    find_sheet,
    iter_data_rows,
    load_workbook_bytes,
)
from app.features.upload.validation import (
    find_missing_fields,
    find_negative_fields,
    find_out_of_range_fields,
    missing_fields_message,
    negative_fields_message,
    out_of_range_fields_message,
)

logger = get_logger(__name__)

EMPTY_UPLOAD_MESSAGE = "Please upload a valid Excel file."


def oversized_upload_error(file_name: str, size_bytes: int, limit: int) -> UploadRejectedError:
    return UploadRejectedError(
        f"Uploaded file exceeds the {limit} byte limit.",
        RejectionReason.TOO_LARGE,
        file_name,
        details={"size_bytes": size_bytes},
    )


class RowOutcome(str, Enum):
    """What happened to a single data row."""

    INSERTED = "inserted"
    SKIPPED_EXISTING = "skipped_existing"
    FAILED = "failed"


@dataclass(frozen=True)
class ParsedRow:
    """A sheet row mapped onto its entity.

    Attributes:
        identifier: The row's own identifier (may be blank).
        fields: Ordered (display name, parsed value) pairs for validation.
        values: Column values for the insert.
    """

    identifier: str
    fields: list[tuple[str, object]]
    values: dict[str, Any]


def parse_customer(row: SheetRow) -> ParsedRow:
    customer_id, name, email, phone = (row.text(i) for i in range(4))
    return ParsedRow(
        identifier=customer_id,
        fields=[("CustomerId", customer_id), ("Name", name), ("Email", email), ("Phone", phone)],
        values={"customer_id": customer_id, "name": name, "email": email, "phone": phone},
    )


def parse_product(row: SheetRow) -> ParsedRow:
    product_id, product_name, category = (row.text(i) for i in range(3))
    price = row.decimal(3)
    return ParsedRow(
        identifier=product_id,
        fields=[
            ("ProductId", product_id),
            ("ProductName", product_name),
            ("Category", category),
            ("Price", price),
        ],
        values={
            "product_id": product_id,
            "product_name": product_name,
            "category": category,
            "price": price,
        },
    )


def parse_sale(row: SheetRow) -> ParsedRow:
    sale_id, customer_id, product_id = (row.text(i) for i in range(3))
    quantity = row.integer(3)
    total = row.decimal(4)
    return ParsedRow(
        identifier=sale_id,
        fields=[
            ("SaleId", sale_id),
            ("CustomerId", customer_id),
            ("ProductId", product_id),
            ("Quantity", quantity),
            ("Total", total),
        ],
        values={
            "sale_id": sale_id,
            "customer_id": customer_id,
            "product_id": product_id,
            "quantity": quantity,
            "total": total,
        },
    )


@dataclass(frozen=True)
class SheetPlan:
    """How one sheet maps onto one table."""

    table: TableName
    stage: UploadStage
    model: type[Base]
    key_column: str
    parse: Callable[[SheetRow], ParsedRow]


# Order is load-bearing: Sales must run after Customers and Products.
SHEET_PLANS: tuple[SheetPlan, ...] = (
    SheetPlan(TableName.CUSTOMERS, UploadStage.PROCESSING_CUSTOMERS, Customer, "customer_id", parse_customer),
    SheetPlan(TableName.PRODUCTS, UploadStage.PROCESSING_PRODUCTS, Product, "product_id", parse_product),
    SheetPlan(TableName.SALES, UploadStage.PROCESSING_SALES, Sale, "sale_id", parse_sale),
)


class WorkbookIngestService:
    """Drives one workbook upload through all sheets and builds the report."""

    def __init__(
        self,
        settings: Settings | None = None,
        reference_checker: ReferenceCheckerProtocol | None = None,
    ) -> None:
        """Initialize the ingest service.

        Args:
            settings: Application settings (defaults to the cached settings).
            reference_checker: Resolver for Sale references.
        """
        self.settings = settings or get_settings()
        self.reference_checker = reference_checker or ReferenceChecker()

    async def ingest(self, db: AsyncSession, file_name: str, content: bytes) -> UploadResponse:
        """Process an uploaded workbook end to end.

        Args:
            db: Async database session scoped to this upload.
            file_name: Name of the uploaded file, used as the error-log key.
            content: Raw bytes of the uploaded file.

        Returns:
            Upload report with per-table summaries and error batches.

        Raises:
            UploadRejectedError: If the upload is empty, too large or not a
                readable workbook. No rows are processed in that case.
        """
        if not content:
            raise UploadRejectedError(EMPTY_UPLOAD_MESSAGE, RejectionReason.EMPTY_FILE, file_name)
        if len(content) > self.settings.upload_max_bytes:
            raise oversized_upload_error(file_name, len(content), self.settings.upload_max_bytes)

        logger.info(
            "upload.stage_entered",
            file_name=file_name,
            stage=UploadStage.PARSING_WORKBOOK.value,
            size_bytes=len(content),
        )
        try:
            workbook = load_workbook_bytes(content)
        except WorkbookReadError as e:
            raise UploadRejectedError(str(e), RejectionReason.UNREADABLE, file_name) from e

        sink = ErrorSink(file_name)
        summaries: list[TableSummary] = []
        batches: list[TableErrorBatch] = []

        try:
            with bind_log_context(file_name=file_name):
                for plan in SHEET_PLANS:
                    with bind_log_context(stage=plan.stage.value):
                        logger.info("upload.stage_entered")
                        try:
                            summaries.append(await self._process_sheet(db, workbook, plan, sink))
                        finally:
                            # Failures queued before an unexpected error are still logged.
                            batch = await sink.flush_table(db, plan.table)
                    if batch is not None:
                        batches.append(batch)
        finally:
            workbook.close()

        total_errors = sum(len(batch.errors) for batch in batches)
        logger.info(
            "upload.completed",
            file_name=file_name,
            stage=UploadStage.COMPLETED.value,
            total_errors=total_errors,
            inserted=sum(summary.inserted for summary in summaries),
        )

        return UploadResponse(
            success=total_errors == 0,
            file_name=file_name,
            stage=UploadStage.COMPLETED,
            total_errors=total_errors,
            error_batches=batches,
            tables=summaries,
        )

    async def _process_sheet(
        self,
        db: AsyncSession,
        workbook: Workbook,
        plan: SheetPlan,
        sink: ErrorSink,
    ) -> TableSummary:
        """Process every data row of one sheet; an absent sheet is skipped."""
        sheet = find_sheet(workbook, plan.table.value)
        if sheet is None:
            logger.info("upload.sheet_absent", table_name=plan.table.value)
            return TableSummary(table_name=plan.table, sheet_found=False)

        outcomes: Counter[RowOutcome] = Counter()
        for row in iter_data_rows(sheet):
            outcomes[await self._process_row(db, plan, row, sink)] += 1

        summary = TableSummary(
            table_name=plan.table,
            sheet_found=True,
            rows_read=sum(outcomes.values()),
            inserted=outcomes[RowOutcome.INSERTED],
            skipped_existing=outcomes[RowOutcome.SKIPPED_EXISTING],
            failed=outcomes[RowOutcome.FAILED],
        )
        logger.info(
            "upload.sheet_completed",
            table_name=plan.table.value,
            rows_read=summary.rows_read,
            inserted=summary.inserted,
            skipped_existing=summary.skipped_existing,
            failed=summary.failed,
        )
        return summary

    async def _process_row(
        self,
        db: AsyncSession,
        plan: SheetPlan,
        row: SheetRow,
        sink: ErrorSink,
    ) -> RowOutcome:
        """Validate, reconcile and persist a single row."""
        parsed = plan.parse(row)

        missing = find_missing_fields(parsed.fields)
        if missing:
            sink.record(
                plan.table,
                row_number=row.row_number,
                record_identifier=parsed.identifier,
                message=missing_fields_message(missing),
                fields=missing,
            )
            return RowOutcome.FAILED

        for find_invalid, describe in (
            (find_negative_fields, negative_fields_message),
            (find_out_of_range_fields, out_of_range_fields_message),
        ):
            invalid = find_invalid(parsed.fields)
            if invalid:
                sink.record(
                    plan.table,
                    row_number=row.row_number,
                    record_identifier=parsed.identifier,
                    message=describe(invalid),
                    fields=invalid,
                )
                return RowOutcome.FAILED

        try:
            if plan.table is TableName.SALES:
                check = await self.reference_checker.check_sale(
                    db, parsed.values["customer_id"], parsed.values["product_id"]
                )
                if not check.resolved:
                    sink.record(
                        plan.table,
                        row_number=row.row_number,
                        record_identifier=parsed.identifier,
                        message=MISSING_REFERENCE_MESSAGE,
                        fields=check.missing,
                    )
                    return RowOutcome.FAILED

            inserted = await insert_if_absent(db, plan.model, parsed.values, (plan.key_column,))
            await db.commit()
        except (SQLAlchemyError, OverflowError, ValueError) as e:
            # Drivers raise plain OverflowError/ValueError for values they cannot bind.
            await db.rollback()
            store_error = getattr(e, "orig", None) or e
            logger.warning(
                "upload.row_persist_failed",
                table_name=plan.table.value,
                row_number=row.row_number,
                error=str(store_error),
                error_type=type(e).__name__,
            )
            sink.record(
                plan.table,
                row_number=row.row_number,
                record_identifier=parsed.identifier,
                message=f"Database error: {store_error}",
            )
            return RowOutcome.FAILED

        return RowOutcome.INSERTED if inserted else RowOutcome.SKIPPED_EXISTING
