"""Shared utility functions."""

import json
import math
from typing import Any

from app.shared.schemas import PaginatedResponse, PaginationParams


def paginate_response[T](
    items: list[T],
    total: int,
    pagination: PaginationParams,
) -> PaginatedResponse[T]:
    """Wrap one page of query results with its page metadata.

    Args:
        items: Items on the current page.
        total: Total count of matching items.
        pagination: Pagination parameters used for the query.

    Returns:
        PaginatedResponse with computed page count.
    """
    pages = math.ceil(total / pagination.page_size) if total > 0 else 0
    return PaginatedResponse[T](
        items=items,
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
        pages=pages,
    )


def parse_json_or_raw(raw: str) -> Any:
    """Decode a stored JSON document, falling back to the raw string.

    Args:
        raw: Text read from the store.

    Returns:
        The decoded value, or ``raw`` unchanged when it is not valid JSON.
    """
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return raw
