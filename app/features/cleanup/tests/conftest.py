"""Feature-specific test fixtures for the cleanup module."""

from datetime import UTC, datetime, timedelta

import pytest

from app.core.config import Settings
from app.features.catalog.models import Customer
from app.features.error_records.models import ErrorRecord


@pytest.fixture
def cleanup_settings() -> Settings:
    return Settings(_env_file=None, app_env="testing", cleanup_retention_days=30)


@pytest.fixture
async def aged_error_records(db_session) -> None:
    """One record past any retention used here, one inside it, plus a customer."""
    now = datetime.now(UTC)
    db_session.add_all(
        [
            ErrorRecord(
                file_name="old.xlsx",
                table_name="Customers",
                error_details="[]",
                error_count=0,
                logged_at=now - timedelta(days=120),
            ),
            ErrorRecord(
                file_name="recent.xlsx",
                table_name="Customers",
                error_details="[]",
                error_count=0,
                logged_at=now - timedelta(days=3),
            ),
            Customer(customer_id="C1", name="Ada", email="ada@example.com", phone="555"),
        ]
    )
    await db_session.commit()
