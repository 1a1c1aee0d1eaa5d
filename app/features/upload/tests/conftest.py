"""Feature-specific test fixtures for the upload module."""

from typing import Any

import pytest

from app.core.config import Settings
from app.features.upload.references import ReferenceCheck


class MockReferenceChecker:
    """Reference checker backed by fixed id sets instead of the database."""

    def __init__(
        self,
        customer_ids: set[str] | None = None,
        product_ids: set[str] | None = None,
    ) -> None:
        self._customer_ids = customer_ids or set()
        self._product_ids = product_ids or set()
        self.calls: list[tuple[str, str]] = []

    async def check_sale(self, db: Any, customer_id: str, product_id: str) -> ReferenceCheck:
        self.calls.append((customer_id, product_id))
        return ReferenceCheck(
            customer_exists=customer_id in self._customer_ids,
            product_exists=product_id in self._product_ids,
        )


@pytest.fixture
def upload_settings() -> Settings:
    """Settings isolated from the environment."""
    return Settings(_env_file=None, app_env="testing", cleanup_enabled=False)


@pytest.fixture
def valid_sheets() -> dict[str, list[list[Any]]]:
    """One of each entity, with the sale referencing the other two."""
    return {
        "Customers": [
            ["C1", "Ada Lovelace", "ada@example.com", "555-0100"],
            ["C2", "Alan Turing", "alan@example.com", "555-0101"],
        ],
        "Products": [
            ["P1", "Widget", "Hardware", 9.99],
            ["P2", "Gadget", "Hardware", 19.5],
        ],
        "Sales": [
            ["S1", "C1", "P1", 3, 29.97],
            ["S2", "C2", "P2", 1, 19.5],
        ],
    }


@pytest.fixture
def valid_workbook(make_workbook, valid_sheets) -> bytes:
    return make_workbook(valid_sheets)


@pytest.fixture
def mock_reference_checker() -> MockReferenceChecker:
    """Checker that knows customer C1 and no products."""
    return MockReferenceChecker(customer_ids={"C1"}, product_ids=set())
