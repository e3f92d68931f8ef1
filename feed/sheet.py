"""Worksheet header validation and name-indexed row extraction."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Iterable, Iterator, Sequence

REQUIRED_COLUMNS = (
    "id",
    "first_name",
    "last_name",
    "email",
    "phone",
    "role",
    "username",
    "grade",
)

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


def normalize_header(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip().casefold()


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def cell_text(value: Any) -> str | None:
    """Render a cell value as trimmed text; blank cells give None."""
    if _is_blank(value):
        return None
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    text = str(value).strip()
    return text or None


def is_valid_employee_sheet(header_cells: Iterable[Any]) -> bool:
    """True when every required column is present; order and case do not matter."""
    headers = {normalize_header(c) for c in header_cells}
    return all(col in headers for col in REQUIRED_COLUMNS)


def header_index(header_cells: Iterable[Any]) -> dict[str, int]:
    """Map normalized header name to its 0-based column position (first occurrence wins)."""
    columns: dict[str, int] = {}
    for position, cell in enumerate(header_cells):
        name = normalize_header(cell)
        if name and name not in columns:
            columns[name] = position
    return columns


def employee_id_as_int(employee_id: str | None) -> int:
    """
    Integer form of the employee identifier.
    Non-numeric or out-of-range identifiers give 0; collisions at 0 are accepted.
    """
    text = (employee_id or "").strip()
    digits = text[1:] if text[:1] in ("+", "-") else text
    if not digits or not (digits.isascii() and digits.isdigit()):
        return 0
    value = int(text)
    if value < INT32_MIN or value > INT32_MAX:
        return 0
    return value


@dataclass(frozen=True)
class EmployeeRecord:
    employee_id: str | None
    first_name: str | None
    last_name: str | None
    email: str | None
    phone: str | None
    role: str | None
    username: str | None

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def employee_id_as_int(self) -> int:
        return employee_id_as_int(self.employee_id)


def extract_record(row: Sequence[Any], columns: dict[str, int]) -> EmployeeRecord:
    """Build a record from one data row, reading every cell by header name."""

    def value(name: str) -> str | None:
        position = columns.get(name)
        if position is None or position >= len(row):
            return None
        return cell_text(row[position])

    return EmployeeRecord(
        employee_id=value("id"),
        first_name=value("first_name"),
        last_name=value("last_name"),
        email=value("email"),
        phone=value("phone"),
        role=value("role"),
        username=value("username"),
    )


def read_header(worksheet: Any) -> list[Any]:
    for row in worksheet.iter_rows(min_row=1, max_row=1, values_only=True):
        return list(row)
    return []


def iter_data_rows(worksheet: Any) -> Iterator[tuple[int, tuple[Any, ...]]]:
    """Yield (row number, values) for every used row after the header."""
    for number, row in enumerate(worksheet.iter_rows(min_row=2, values_only=True), start=2):
        if all(_is_blank(v) for v in row):
            continue
        yield number, row
