"""Tests for the workbook ingest orchestrator."""

from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.core.exceptions import RejectionReason, UploadRejectedError
from app.features.catalog.models import Customer, Product, Sale
from app.features.error_records.models import ErrorRecord
from app.features.upload import service as upload_service
from app.features.upload.references import MISSING_REFERENCE_MESSAGE
from app.features.upload.schemas import TableName, UploadStage
from app.features.upload.service import EMPTY_UPLOAD_MESSAGE, WorkbookIngestService


async def count(db_session, model) -> int:
    return await db_session.scalar(select(func.count()).select_from(model))


def summary_for(result, table: TableName):
    return next(summary for summary in result.tables if summary.table_name == table)


def batch_for(result, table: TableName):
    return next((batch for batch in result.error_batches if batch.table_name == table), None)


@pytest.fixture
def ingest_service(upload_settings) -> WorkbookIngestService:
    return WorkbookIngestService(settings=upload_settings)


class TestInputRejection:
    """Uploads that are rejected before any row is processed."""

    @pytest.mark.asyncio
    async def test_empty_upload_is_rejected(self, db_session, ingest_service):
        with pytest.raises(UploadRejectedError) as exc_info:
            await ingest_service.ingest(db_session, "empty.xlsx", b"")

        assert exc_info.value.message == EMPTY_UPLOAD_MESSAGE
        assert exc_info.value.reason is RejectionReason.EMPTY_FILE
        assert await count(db_session, ErrorRecord) == 0

    @pytest.mark.asyncio
    async def test_unreadable_upload_is_rejected(self, db_session, ingest_service):
        with pytest.raises(UploadRejectedError, match="not a readable Excel workbook"):
            await ingest_service.ingest(db_session, "notes.txt", b"plain text, not xlsx")

    @pytest.mark.asyncio
    async def test_oversized_upload_is_rejected(self, db_session, upload_settings, valid_workbook):
        small = upload_settings.model_copy(update={"upload_max_bytes": 16})

        with pytest.raises(UploadRejectedError, match="byte limit"):
            await WorkbookIngestService(settings=small).ingest(db_session, "big.xlsx", valid_workbook)

        assert await count(db_session, Customer) == 0


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_sales_resolve_against_rows_from_the_same_upload(
        self, db_session, ingest_service, valid_workbook
    ):
        """Customers and products inserted earlier in the upload satisfy sales."""
        result = await ingest_service.ingest(db_session, "book.xlsx", valid_workbook)

        assert result.success is True
        assert result.stage == UploadStage.COMPLETED
        assert result.total_errors == 0
        assert result.error_batches == []
        assert [s.inserted for s in result.tables] == [2, 2, 2]
        assert await count(db_session, Sale) == 2
        assert await count(db_session, ErrorRecord) == 0

    @pytest.mark.asyncio
    async def test_values_are_persisted(self, db_session, ingest_service, valid_workbook):
        await ingest_service.ingest(db_session, "book.xlsx", valid_workbook)

        product = await db_session.get(Product, "P1")
        sale = await db_session.get(Sale, "S1")
        assert product.price == Decimal("9.99")
        assert sale.quantity == 3
        assert sale.total == Decimal("29.97")
        assert sale.customer_id == "C1"

    @pytest.mark.asyncio
    async def test_numeric_identifiers_are_read_as_text(self, db_session, ingest_service, make_workbook):
        content = make_workbook(
            {
                "Customers": [[1001, "Ada", "ada@example.com", 5550100]],
                "Products": [[2001, "Widget", "Hardware", 5]],
                "Sales": [[3001, 1001, 2001, 2, 10]],
            }
        )

        result = await ingest_service.ingest(db_session, "numeric.xlsx", content)

        assert result.total_errors == 0
        customer = await db_session.get(Customer, "1001")
        assert customer.phone == "5550100"
        assert await db_session.get(Sale, "3001") is not None

    @pytest.mark.asyncio
    async def test_absent_sheets_are_skipped(self, db_session, ingest_service, make_workbook):
        content = make_workbook({"products": [["P1", "Widget", "Hardware", 1]]})

        result = await ingest_service.ingest(db_session, "products-only.xlsx", content)

        assert [s.sheet_found for s in result.tables] == [False, True, False]
        assert summary_for(result, TableName.PRODUCTS).inserted == 1
        assert result.success is True


class TestIdempotence:
    @pytest.mark.asyncio
    async def test_second_upload_changes_nothing(self, db_session, ingest_service, make_workbook):
        """Uploading the same workbook twice leaves every table unchanged."""
        content = make_workbook(
            {
                "Customers": [
                    ["C1", "Ada", "ada@example.com", "1"],
                    ["C2", "Alan", "", "2"],
                ],
                "Products": [["P1", "Widget", "Hardware", 2]],
                "Sales": [["S1", "C1", "P1", 1, 2], ["S2", "C404", "P1", 1, 2]],
            }
        )

        await ingest_service.ingest(db_session, "book.xlsx", content)
        snapshot = [await count(db_session, model) for model in (Customer, Product, Sale, ErrorRecord)]

        second = await ingest_service.ingest(db_session, "book.xlsx", content)

        assert [await count(db_session, model) for model in (Customer, Product, Sale, ErrorRecord)] == snapshot
        assert snapshot == [1, 1, 1, 2]
        assert summary_for(second, TableName.CUSTOMERS).skipped_existing == 1
        assert all(batch.newly_logged is False for batch in second.error_batches)

    @pytest.mark.asyncio
    async def test_duplicate_identity_within_sheet_is_silently_skipped(
        self, db_session, ingest_service, make_workbook
    ):
        content = make_workbook(
            {
                "Customers": [
                    ["C1", "Ada", "ada@example.com", "1"],
                    ["C1", "Impostor", "imp@example.com", "2"],
                ]
            }
        )

        result = await ingest_service.ingest(db_session, "dupes.xlsx", content)

        customers = summary_for(result, TableName.CUSTOMERS)
        assert (customers.inserted, customers.skipped_existing, customers.failed) == (1, 1, 0)
        assert result.total_errors == 0
        assert (await db_session.get(Customer, "C1")).name == "Ada"

    @pytest.mark.asyncio
    async def test_identity_already_in_storage_is_not_an_error(
        self, db_session, ingest_service, make_workbook
    ):
        db_session.add(Customer(customer_id="C1", name="Ada", email="ada@example.com", phone="1"))
        await db_session.commit()
        content = make_workbook({"Customers": [["C1", "Changed", "changed@example.com", "9"]]})

        result = await ingest_service.ingest(db_session, "later.xlsx", content)

        assert summary_for(result, TableName.CUSTOMERS).skipped_existing == 1
        assert result.error_batches == []
        assert await count(db_session, ErrorRecord) == 0
        await db_session.refresh(await db_session.get(Customer, "C1"))
        assert (await db_session.get(Customer, "C1")).name == "Ada"


class TestRowFailures:
    @pytest.mark.asyncio
    async def test_missing_email_reports_exactly_email(self, db_session, ingest_service, make_workbook):
        content = make_workbook({"Customers": [["C1", "Ada", "", "555"]]})

        result = await ingest_service.ingest(db_session, "book.xlsx", content)

        batch = batch_for(result, TableName.CUSTOMERS)
        assert result.success is False
        assert len(batch.errors) == 1
        failure = batch.errors[0]
        assert failure.fields == ["Email"]
        assert failure.message == "Missing required field(s): Email"
        assert failure.row_number == 2
        assert failure.record_identifier == "C1"
        assert await count(db_session, Customer) == 0

    @pytest.mark.asyncio
    async def test_missing_identifier_is_logged_as_unknown(self, db_session, ingest_service, make_workbook):
        content = make_workbook({"Products": [[None, "Widget", "Hardware", 3]]})

        result = await ingest_service.ingest(db_session, "book.xlsx", content)

        failure = batch_for(result, TableName.PRODUCTS).errors[0]
        assert failure.record_identifier == "UNKNOWN"
        assert failure.fields == ["ProductId"]

    @pytest.mark.asyncio
    async def test_unparseable_price_counts_as_missing(self, db_session, ingest_service, make_workbook):
        content = make_workbook({"Products": [["P1", "Widget", "Hardware", "cheap"]]})

        result = await ingest_service.ingest(db_session, "book.xlsx", content)

        assert batch_for(result, TableName.PRODUCTS).errors[0].fields == ["Price"]

    @pytest.mark.asyncio
    async def test_negative_quantity_is_rejected(self, db_session, ingest_service, make_workbook, valid_sheets):
        sheets = {**valid_sheets, "Sales": [["S1", "C1", "P1", -2, 10]]}

        result = await ingest_service.ingest(db_session, "book.xlsx", make_workbook(sheets))

        failure = batch_for(result, TableName.SALES).errors[0]
        assert failure.message == "Invalid value(s): Quantity must not be negative"
        assert await count(db_session, Sale) == 0

    @pytest.mark.asyncio
    async def test_unresolved_reference_yields_exactly_one_failure(
        self, db_session, ingest_service, make_workbook, valid_sheets
    ):
        """A sale pointing at a missing product is logged once and not persisted."""
        sheets = {**valid_sheets, "Sales": [["S1", "C1", "P404", 1, 9.99], ["S2", "C1", "P1", 1, 9.99]]}

        result = await ingest_service.ingest(db_session, "book.xlsx", make_workbook(sheets))

        batch = batch_for(result, TableName.SALES)
        assert len(batch.errors) == 1
        assert batch.errors[0].message == MISSING_REFERENCE_MESSAGE
        assert batch.errors[0].fields == ["ProductId"]
        assert batch.errors[0].record_identifier == "S1"
        assert await db_session.get(Sale, "S1") is None
        assert await db_session.get(Sale, "S2") is not None

    @pytest.mark.asyncio
    async def test_failures_do_not_stop_later_rows(self, db_session, ingest_service, make_workbook):
        content = make_workbook(
            {
                "Customers": [
                    ["C1", "", "ada@example.com", "1"],
                    ["C2", "Alan", "alan@example.com", "2"],
                    [None, None, "x@example.com", None],
                    ["C4", "Grace", "grace@example.com", "4"],
                ]
            }
        )

        result = await ingest_service.ingest(db_session, "book.xlsx", content)

        customers = summary_for(result, TableName.CUSTOMERS)
        assert (customers.rows_read, customers.inserted, customers.failed) == (4, 2, 2)
        assert [f.row_number for f in batch_for(result, TableName.CUSTOMERS).errors] == [2, 4]
        assert result.total_errors == 2

    @pytest.mark.asyncio
    async def test_store_error_is_recorded_and_processing_continues(
        self, db_session, ingest_service, make_workbook, monkeypatch
    ):
        real_insert = upload_service.insert_if_absent

        async def flaky_insert(db, model, values, conflict_columns):
            if values.get("customer_id") == "C1" and model is Customer:
                raise OperationalError("INSERT", {}, Exception("database is locked"))
            return await real_insert(db, model, values, conflict_columns)

        monkeypatch.setattr(upload_service, "insert_if_absent", flaky_insert)
        content = make_workbook(
            {
                "Customers": [
                    ["C1", "Ada", "ada@example.com", "1"],
                    ["C2", "Alan", "alan@example.com", "2"],
                ]
            }
        )

        result = await ingest_service.ingest(db_session, "book.xlsx", content)

        failure = batch_for(result, TableName.CUSTOMERS).errors[0]
        assert failure.message == "Database error: database is locked"
        assert failure.record_identifier == "C1"
        assert await db_session.get(Customer, "C2") is not None

    @pytest.mark.asyncio
    async def test_quantity_beyond_integer_column_is_rejected(
        self, db_session, ingest_service, make_workbook
    ):
        content = make_workbook(
            {
                "Customers": [["C2", "Alan", "alan@example.com", "2"]],
                "Products": [["P1", "Widget", "Hardware", 1]],
                "Sales": [
                    ["S1", "C2", "P1", 10**20, 1],
                    ["S2", "C2", "P1", 1, 1],
                ],
            }
        )

        result = await ingest_service.ingest(db_session, "book.xlsx", content)

        failures = batch_for(result, TableName.SALES).errors
        assert [(f.record_identifier, f.fields) for f in failures] == [("S1", ["Quantity"])]
        assert failures[0].message == "Invalid value(s): Quantity out of range"
        assert await db_session.get(Sale, "S2") is not None
        assert await count(db_session, ErrorRecord) == 1

    @pytest.mark.asyncio
    async def test_driver_overflow_is_recorded_and_sheet_batch_kept(
        self, db_session, ingest_service, make_workbook, monkeypatch
    ):
        real_insert = upload_service.insert_if_absent

        async def overflowing_insert(db, model, values, conflict_columns):
            if values.get("sale_id") == "S1":
                raise OverflowError("Python int too large to convert to SQLite INTEGER")
            return await real_insert(db, model, values, conflict_columns)

        monkeypatch.setattr(upload_service, "insert_if_absent", overflowing_insert)
        content = make_workbook(
            {
                "Customers": [["C2", "Alan", "alan@example.com", "2"]],
                "Products": [["P1", "Widget", "Hardware", 1]],
                "Sales": [
                    ["S0", "C9", "P1", 1, 1],
                    ["S1", "C2", "P1", 1, 1],
                    ["S2", "C2", "P1", 1, 1],
                ],
            }
        )

        result = await ingest_service.ingest(db_session, "book.xlsx", content)

        failures = batch_for(result, TableName.SALES).errors
        assert [f.record_identifier for f in failures] == ["S0", "S1"]
        assert failures[1].message == (
            "Database error: Python int too large to convert to SQLite INTEGER"
        )
        assert await db_session.get(Sale, "S2") is not None
        logged = await db_session.scalar(
            select(ErrorRecord).where(ErrorRecord.table_name == "Sales")
        )
        assert logged is not None
        assert logged.error_count == 2

    @pytest.mark.asyncio
    async def test_one_error_record_per_table(self, db_session, ingest_service, make_workbook):
        content = make_workbook(
            {
                "Customers": [["C1", "", "", ""], ["C2", "", "", ""]],
                "Products": [["P1", "", "", ""]],
            }
        )

        await ingest_service.ingest(db_session, "book.xlsx", content)

        records = (await db_session.scalars(select(ErrorRecord).order_by(ErrorRecord.id))).all()
        assert [(r.table_name, r.error_count) for r in records] == [("Customers", 2), ("Products", 1)]


@pytest.mark.asyncio
async def test_injected_reference_checker_is_used(
    db_session, upload_settings, make_workbook, mock_reference_checker
):
    checker = mock_reference_checker
    content = make_workbook({"Sales": [["S1", "C1", "P1", 1, 1]]})

    result = await WorkbookIngestService(upload_settings, reference_checker=checker).ingest(
        db_session, "book.xlsx", content
    )

    assert checker.calls == [("C1", "P1")]
    assert batch_for(result, TableName.SALES).errors[0].fields == ["ProductId"]
