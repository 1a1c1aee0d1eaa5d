"""Core infrastructure shared by all features.

Configuration, async database sessions, structured logging, request
middleware and RFC 7807 error handling.
"""

from app.core.config import Settings, get_settings
from app.core.database import Base, get_db, get_session_maker
from app.core.exceptions import (
    CleanupFailedError,
    NotFoundError,
    RejectionReason,
    SheetLedgerError,
    UploadRejectedError,
)
from app.core.logging import configure_logging, get_logger, request_id_ctx

__all__ = [
    "Base",
    "CleanupFailedError",
    "NotFoundError",
    "RejectionReason",
    "Settings",
    "SheetLedgerError",
    "UploadRejectedError",
    "configure_logging",
    "get_db",
    "get_logger",
    "get_session_maker",
    "get_settings",
    "request_id_ctx",
]
