"""Required-field and range checks for parsed sheet rows."""

from collections.abc import Mapping, Sequence
from decimal import Decimal

FieldValues = Sequence[tuple[str, object]]

# Largest values the catalog columns can hold: Integer is 32-bit, Price is
# Numeric(12, 2) and Total is Numeric(14, 2).
FIELD_UPPER_BOUNDS: Mapping[str, int | Decimal] = {
    "Quantity": 2**31 - 1,
    "Price": Decimal("9999999999.99"),
    "Total": Decimal("999999999999.99"),
}


def is_blank(value: object) -> bool:
    """True for None and for strings that are empty or whitespace-only."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def find_missing_fields(fields: FieldValues) -> list[str]:
    """Return the names of absent or blank fields, in input order.

    Numeric fields are expected to be parsed already; a value that failed
    to parse arrives as None and is reported like an empty cell.

    Args:
        fields: Ordered (field name, value) pairs.

    Returns:
        Field names whose value is missing.
    """
    return [name for name, value in fields if is_blank(value)]


def find_negative_fields(fields: FieldValues) -> list[str]:
    """Return the names of numeric fields holding a value below zero.

    Args:
        fields: Ordered (field name, value) pairs; non-numeric and missing
            values are ignored.

    Returns:
        Field names with negative values, in input order.
    """
    return [
        name
        for name, value in fields
        if isinstance(value, int | Decimal) and not isinstance(value, bool) and value < 0
    ]


def find_out_of_range_fields(
    fields: FieldValues,
    upper_bounds: Mapping[str, int | Decimal] = FIELD_UPPER_BOUNDS,
) -> list[str]:
    """Return the names of numeric fields too large for their column.

    Args:
        fields: Ordered (field name, value) pairs.
        upper_bounds: Largest allowed value per field name; fields without
            a bound are not checked.

    Returns:
        Field names whose value exceeds its bound, in input order.
    """
    return [
        name
        for name, value in fields
        if name in upper_bounds
        and isinstance(value, int | Decimal)
        and not isinstance(value, bool)
        and value > upper_bounds[name]
    ]


def missing_fields_message(missing: Sequence[str]) -> str:
    return f"Missing required field(s): {', '.join(missing)}"


def negative_fields_message(negative: Sequence[str]) -> str:
    return f"Invalid value(s): {', '.join(negative)} must not be negative"


def out_of_range_fields_message(out_of_range: Sequence[str]) -> str:
    return f"Invalid value(s): {', '.join(out_of_range)} out of range"
