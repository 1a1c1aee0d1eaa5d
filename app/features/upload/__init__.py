"""Upload feature: workbook ingestion into Customers, Products and Sales."""

from app.features.upload.error_sink import ErrorSink
from app.features.upload.routes import router
from app.features.upload.schemas import (
    RowFailure,
    TableErrorBatch,
    TableName,
    TableSummary,
    UploadResponse,
    UploadStage,
)
from app.features.upload.service import WorkbookIngestService

__all__ = [
    "ErrorSink",
    "RowFailure",
    "TableErrorBatch",
    "TableName",
    "TableSummary",
    "UploadResponse",
    "UploadStage",
    "WorkbookIngestService",
    "router",
]
