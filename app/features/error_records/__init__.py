"""Error records feature: query the log of rejected workbook rows."""

from app.features.error_records.models import ErrorRecord
from app.features.error_records.routes import router
from app.features.error_records.schemas import ErrorRecordResponse
from app.features.error_records.service import ErrorRecordService

__all__ = [
    "ErrorRecord",
    "ErrorRecordResponse",
    "ErrorRecordService",
    "router",
]
