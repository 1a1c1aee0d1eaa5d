"""Pydantic schemas for the workbook upload API."""

from enum import Enum

from pydantic import BaseModel, Field


class TableName(str, Enum):
    """Entity tables fed by the workbook, in processing order."""

    CUSTOMERS = "Customers"
    PRODUCTS = "Products"
    SALES = "Sales"


class UploadStage(str, Enum):
    """Stages of one upload.

    Transitions are strictly sequential and unconditional:
    PARSING_WORKBOOK -> PROCESSING_CUSTOMERS -> PROCESSING_PRODUCTS
    -> PROCESSING_SALES -> COMPLETED
    """

    PARSING_WORKBOOK = "parsing_workbook"
    PROCESSING_CUSTOMERS = "processing_customers"
    PROCESSING_PRODUCTS = "processing_products"
    PROCESSING_SALES = "processing_sales"
    COMPLETED = "completed"


class RowFailure(BaseModel):
    """One failed row inside an error batch."""

    row_number: int = Field(..., ge=2, description="Physical sheet row number (header is row 1)")
    record_identifier: str = Field(..., description="Row's own identifier, or 'UNKNOWN' if blank")
    message: str = Field(..., description="Human-readable failure reason")
    fields: list[str] = Field(
        default_factory=list,
        description="Fields involved (missing, invalid or unresolved references)",
    )


class TableErrorBatch(BaseModel):
    """All row failures of one sheet for one upload."""

    table_name: TableName = Field(..., description="Sheet/table the failures belong to")
    errors: list[RowFailure] = Field(..., description="Failures in sheet order")
    newly_logged: bool = Field(
        ...,
        description="False when an identical file/table batch was already logged",
    )


class TableSummary(BaseModel):
    """Row counts for one sheet."""

    table_name: TableName
    sheet_found: bool = Field(..., description="Whether the workbook contained this sheet")
    rows_read: int = Field(0, ge=0, description="Non-empty data rows read")
    inserted: int = Field(0, ge=0, description="Rows inserted into the table")
    skipped_existing: int = Field(0, ge=0, description="Rows whose identity already existed")
    failed: int = Field(0, ge=0, description="Rows rejected and logged")


class UploadResponse(BaseModel):
    """Response body for POST /upload-excel."""

    success: bool = Field(..., description="True when every row was accepted or already present")
    file_name: str = Field(..., description="Name of the uploaded workbook")
    stage: UploadStage = Field(..., description="Final stage reached (always 'completed')")
    total_errors: int = Field(..., ge=0, description="Total failed rows across all sheets")
    error_batches: list[TableErrorBatch] = Field(
        default_factory=list, description="Per-table failure batches"
    )
    tables: list[TableSummary] = Field(default_factory=list, description="Per-table row counts")
