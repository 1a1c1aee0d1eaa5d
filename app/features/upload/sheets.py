"""Workbook access: sheet lookup and data-row extraction with openpyxl.

Sheets are matched by name case-insensitively. Data rows skip the header
(row 1) and rows with no values at all. Cell accessors never raise: a
missing or unparseable cell comes back as an empty string or ``None`` and
the validator decides what that means.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from io import BytesIO
from typing import Any
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

HEADER_ROW = 1


class WorkbookReadError(Exception):
    """Raised when uploaded bytes cannot be opened as an .xlsx workbook."""


@dataclass(frozen=True)
class SheetRow:
    """One data row of a worksheet.

    Attributes:
        row_number: Physical row number in the sheet (first data row is 2).
        values: Raw cell values, left to right.
    """

    row_number: int
    values: tuple[Any, ...]

    def _raw(self, index: int) -> Any:
        if index < len(self.values):
            return self.values[index]
        return None

    def text(self, index: int) -> str:
        return cell_text(self._raw(index))

    def integer(self, index: int) -> int | None:
        return cell_int(self._raw(index))

    def decimal(self, index: int) -> Decimal | None:
        return cell_decimal(self._raw(index))


def load_workbook_bytes(content: bytes) -> Workbook:
    """Open an uploaded .xlsx payload in read-only, values-only mode.

    Args:
        content: Raw bytes of the uploaded file.

    Returns:
        Read-only openpyxl workbook. Callers must close it.

    Raises:
        WorkbookReadError: If the bytes are not a readable workbook.
    """
    try:
        return load_workbook(BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, ValueError, OSError) as e:
        raise WorkbookReadError(f"Uploaded file is not a readable Excel workbook: {e}") from e


def find_sheet(workbook: Workbook, name: str) -> Any | None:
    """Find a worksheet by name, ignoring case and surrounding whitespace.

    Args:
        workbook: Open workbook.
        name: Sheet name to look for.

    Returns:
        The matching worksheet, or None when the workbook has no such sheet.
    """
    target = name.strip().lower()
    # Chartsheets carry no rows and are not candidates.
    for sheet in workbook.worksheets:
        if sheet.title.strip().lower() == target:
            return sheet
    return None


def iter_data_rows(sheet: Any) -> Iterator[SheetRow]:
    """Lazily yield the non-empty data rows of a worksheet.

    Args:
        sheet: Worksheet returned by find_sheet.

    Yields:
        SheetRow for every row below the header with at least one value.
    """
    for row_number, values in enumerate(
        sheet.iter_rows(min_row=HEADER_ROW + 1, values_only=True),
        start=HEADER_ROW + 1,
    ):
        if all(cell_text(value) == "" for value in values):
            continue
        yield SheetRow(row_number=row_number, values=tuple(values))


def cell_text(value: Any) -> str:
    """Render a cell value as trimmed text; empty cells become ''."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, float) and value.is_integer():
        # Numeric identifiers typed into Excel come back as floats.
        return str(int(value))
    if isinstance(value, datetime | date):
        return value.isoformat()
    return str(value).replace("\xa0", " ").strip()


def cell_decimal(value: Any) -> Decimal | None:
    """Parse a cell as a finite decimal, or None when it is not one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, int | float):
        parsed = Decimal(str(value))
    else:
        raw = cell_text(value).replace(",", "")
        if not raw:
            return None
        try:
            parsed = Decimal(raw)
        except InvalidOperation:
            return None
    return parsed if parsed.is_finite() else None


def cell_int(value: Any) -> int | None:
    """Parse a cell as a whole number, or None when it is not one."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    parsed = cell_decimal(value)
    if parsed is None or parsed != parsed.to_integral_value():
        return None
    return int(parsed)
