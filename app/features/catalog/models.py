"""Catalog ORM models populated from uploaded workbooks.

Three dependent entity tables:
- Customer and Product: independent, keyed by their business identifiers.
- Sale: references one Customer and one Product.

Identifiers come from the spreadsheet as text and are used as primary keys
directly, so the primary key doubles as the conflict target for idempotent
inserts. Rows are insert-only: the ingestion pipeline never updates them.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.shared.models import CreatedAtMixin


class Customer(CreatedAtMixin, Base):
    """Customer master record.

    Attributes:
        customer_id: Business identifier from the Customers sheet.
        name: Display name.
        email: Contact email.
        phone: Contact phone number, kept as text.
    """

    __tablename__ = "customers"

    customer_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    email: Mapped[str] = mapped_column(String(320))
    phone: Mapped[str] = mapped_column(String(50))

    sales: Mapped[list["Sale"]] = relationship(back_populates="customer")


class Product(CreatedAtMixin, Base):
    """Product master record.

    Attributes:
        product_id: Business identifier from the Products sheet.
        product_name: Display name.
        category: Product category.
        price: Unit price, non-negative when present.
    """

    __tablename__ = "products"

    product_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    product_name: Mapped[str] = mapped_column(String(200))
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    sales: Mapped[list["Sale"]] = relationship(back_populates="product")

    __table_args__ = (
        CheckConstraint("price IS NULL OR price >= 0", name="ck_products_price_non_negative"),
    )


class Sale(CreatedAtMixin, Base):
    """Sale transaction.

    CRITICAL: a Sale is only inserted after both references have been
    confirmed to exist; the foreign keys back that up at the store level.

    Attributes:
        sale_id: Business identifier from the Sales sheet.
        customer_id: Purchasing customer (FK to customers).
        product_id: Product sold (FK to products).
        quantity: Units sold.
        total: Total sale amount.
    """

    __tablename__ = "sales"

    sale_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    customer_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("customers.customer_id"), index=True
    )
    product_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("products.product_id"), index=True
    )
    quantity: Mapped[int] = mapped_column(Integer)
    total: Mapped[Decimal] = mapped_column(Numeric(14, 2))

    customer: Mapped["Customer"] = relationship(back_populates="sales")
    product: Mapped["Product"] = relationship(back_populates="sales")

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_sales_quantity_non_negative"),
        CheckConstraint("total >= 0", name="ck_sales_total_non_negative"),
    )
