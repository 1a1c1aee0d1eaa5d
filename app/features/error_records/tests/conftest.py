"""Feature-specific test fixtures for the error records module."""

import json
from datetime import UTC, datetime, timedelta

import pytest

from app.features.error_records.models import ErrorRecord


@pytest.fixture
async def seeded_error_records(db_session) -> list[ErrorRecord]:
    """Three records across two files, oldest first, one with non-JSON details."""
    now = datetime.now(UTC)
    details = json.dumps(
        [{"row_number": 2, "record_identifier": "C1", "message": "Missing required field(s): Email", "fields": ["Email"]}]
    )
    records = [
        ErrorRecord(
            file_name="jan.xlsx",
            table_name="Customers",
            error_details=details,
            error_count=1,
            logged_at=now - timedelta(days=2),
        ),
        ErrorRecord(
            file_name="jan.xlsx",
            table_name="Sales",
            error_details="legacy free-text failure",
            error_count=1,
            logged_at=now - timedelta(days=1),
        ),
        ErrorRecord(
            file_name="feb.xlsx",
            table_name="Customers",
            error_details=details,
            error_count=1,
            logged_at=now,
        ),
    ]
    db_session.add_all(records)
    await db_session.commit()
    return records
