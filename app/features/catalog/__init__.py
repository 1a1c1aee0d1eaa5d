"""Catalog entities (customers, products, sales) loaded from workbooks."""

from app.features.catalog.models import Customer, Product, Sale

__all__ = ["Customer", "Product", "Sale"]
