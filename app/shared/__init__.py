"""Utilities shared across features."""

from app.shared.models import CreatedAtMixin
from app.shared.schemas import PaginatedResponse, PaginationParams
from app.shared.utils import paginate_response

__all__ = [
    "CreatedAtMixin",
    "PaginatedResponse",
    "PaginationParams",
    "paginate_response",
]
