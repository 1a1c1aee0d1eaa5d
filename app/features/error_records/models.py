"""Error record ORM model: the append-only audit log of failed rows.

One row per (file_name, table_name). ``error_details`` holds the ordered
list of row failures for that sheet as a serialized JSON array, so a
single upload writes at most one record per sheet.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


def utc_now() -> datetime:
    return datetime.now(UTC)


class ErrorRecord(Base):
    """Aggregated validation/persistence failures for one sheet of one file.

    Attributes:
        id: Surrogate primary key.
        file_name: Name of the uploaded workbook.
        table_name: Target table / sheet (Customers, Products, Sales).
        error_details: JSON array of row failures.
        error_count: Number of entries in error_details.
        logged_at: When the record was written.
    """

    __tablename__ = "error_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    file_name: Mapped[str] = mapped_column(String(255))
    table_name: Mapped[str] = mapped_column(String(64))
    error_details: Mapped[str] = mapped_column(Text)
    error_count: Mapped[int] = mapped_column(Integer, default=0)
    logged_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        # DEDUP KEY: one aggregated record per file and table
        UniqueConstraint("file_name", "table_name", name="uq_error_records_file_table"),
        Index("ix_error_records_table_name", "table_name"),
        Index("ix_error_records_logged_at", "logged_at"),
    )
