"""Foreign-key resolution for Sales rows against persisted catalog rows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.catalog.models import Customer, Product

MISSING_REFERENCE_MESSAGE = "The referenced Customer or Product does not exist."


@dataclass(frozen=True)
class ReferenceCheck:
    """Outcome of resolving one Sale's references."""

    customer_exists: bool
    product_exists: bool

    @property
    def resolved(self) -> bool:
        return self.customer_exists and self.product_exists

    @property
    def missing(self) -> list[str]:
        """Names of the unresolved reference fields, in column order."""
        missing: list[str] = []
        if not self.customer_exists:
            missing.append("CustomerId")
        if not self.product_exists:
            missing.append("ProductId")
        return missing


@runtime_checkable
class ReferenceCheckerProtocol(Protocol):
    """Protocol for sale reference checkers."""

    async def check_sale(
        self, db: AsyncSession, customer_id: str, product_id: str
    ) -> ReferenceCheck:
        """Check that a sale's customer and product exist."""
        ...


class ReferenceChecker:
    """Confirms Sale references point at rows already committed to the store.

    Customers and Products are fully processed before Sales, so a reference
    to a row inserted earlier in the same upload resolves here too.
    """

    async def check_sale(
        self, db: AsyncSession, customer_id: str, product_id: str
    ) -> ReferenceCheck:
        """Check that a sale's customer and product exist.

        Args:
            db: Async database session.
            customer_id: Referenced customer identifier.
            product_id: Referenced product identifier.

        Returns:
            ReferenceCheck with one flag per reference.
        """
        customer = await db.scalar(
            select(Customer.customer_id).where(Customer.customer_id == customer_id)
        )
        product = await db.scalar(
            select(Product.product_id).where(Product.product_id == product_id)
        )
        return ReferenceCheck(
            customer_exists=customer is not None,
            product_exists=product is not None,
        )
