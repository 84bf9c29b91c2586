"""
Kitchen Roster Assistant - Raw grid primitives.

A RawGrid is what a spreadsheet looks like before any interpretation:
ordered rows of ordered cells. Every cell is coerced once, here, so the
parser never has to guess what type it is holding.
"""

from __future__ import annotations

import math
import numbers
import re
from datetime import date, datetime
from typing import Any, Iterable, Sequence

Cell = str | int | float | None
RawGrid = Sequence[Sequence[Cell]]

# Sunday-first, matching the way kitchen rosters lay out the week
WEEKDAYS: tuple[str, ...] = (
    "Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday",
)

MONTHS: tuple[str, ...] = (
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
)

_YEAR_RE = re.compile(r"20\d{2}")


def weekday_name(d: date) -> str:
    """Return the English weekday name of a date ("Sunday".."Saturday")."""
    # date.weekday() is Monday=0; WEEKDAYS is Sunday-first
    return WEEKDAYS[(d.weekday() + 1) % 7]


def to_cell(value: Any) -> Cell:
    """Coerce an arbitrary spreadsheet value into a Cell."""
    if value is None:
        return None
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, (int, str)):
        return value
    if isinstance(value, float):
        return None if math.isnan(value) else value
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    # numpy scalars from pandas frames
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, numbers.Real):
        return None if math.isnan(value) else float(value)
    text = str(value)
    # pandas NaT / NA stringify to these
    if text in ("NaT", "<NA>", "nan"):
        return None
    return text


def normalize_grid(rows: Iterable[Iterable[Any]] | None) -> list[list[Cell]]:
    """Coerce every cell of an arbitrary 2-D iterable into a Cell grid."""
    if rows is None:
        return []
    grid: list[list[Cell]] = []
    for row in rows:
        if row is None:
            grid.append([])
            continue
        if isinstance(row, (str, bytes)):
            grid.append([to_cell(row)])
            continue
        grid.append([to_cell(v) for v in row])
    return grid


def cell_text(cell: Any) -> str:
    """Trimmed string form of a cell; empty string for blanks.

    Integral floats lose their ".0" so a day-number header 1.0 reads as "1".
    """
    if cell is None:
        return ""
    if isinstance(cell, float):
        if math.isnan(cell):
            return ""
        if cell.is_integer():
            return str(int(cell))
    return str(cell).strip()


def row_cell(row: Sequence[Cell] | None, index: int | None) -> str:
    """Text of row[index], tolerating short rows and missing indexes."""
    if row is None or index is None or index < 0 or index >= len(row):
        return ""
    return cell_text(row[index])


def is_blank_row(row: Sequence[Cell] | None) -> bool:
    return row is None or all(not cell_text(c) for c in row)


def _month_label(month: str, text: str, default_year: int) -> str:
    year_match = _YEAR_RE.search(text)
    year = year_match.group(0) if year_match else str(default_year)
    return f"{month.capitalize()} {year}"


def mentions(token: str, text: str) -> bool:
    """True when ``token`` appears in ``text`` as a whole word or number.

    Anything of another kind is a separator, so "BOH_December_2025" and
    "december2025" mention "december" but "Mayfair" does not mention "may".
    """
    token = token.lower()
    kind = "0-9" if token.isdigit() else "a-z"
    return re.search(rf"(?<![{kind}]){re.escape(token)}(?![{kind}])", text.lower()) is not None


def detect_month_from_filename(filename: str, today: date | None = None) -> str | None:
    """Detect the roster month from a filename, e.g. "BOH_December_2025.xlsx" -> "December 2025"."""
    lower = filename.lower()
    default_year = (today or date.today()).year
    for month in MONTHS:
        if mentions(month, lower):
            return _month_label(month, lower, default_year)
    return None


def detect_month_from_grid(
    grid: RawGrid,
    today: date | None = None,
    max_rows: int = 10,
    header_index: int | None = None,
) -> str | None:
    """Detect the roster month from a title row like "BOH DUTY ROSTER DECEMBER 2025".

    With ``header_index`` only the title rows above the header are read, so
    names and notes in the table ("April Santos", "staff may swap") never
    count as the month.
    """
    default_year = (today or date.today()).year
    limit = max_rows if header_index is None else min(header_index, max_rows)
    for row in list(grid)[:limit]:
        if not row:
            continue
        text = " ".join(cell_text(c) for c in row).lower()
        for month in MONTHS:
            if re.search(rf"\b{month}\b", text):
                return _month_label(month, text, default_year)
    return None


def parse_month_label(label: str | None) -> tuple[int, int] | None:
    """Turn "December 2025" into (2025, 12); None when it cannot be read."""
    if not label:
        return None
    parts = label.lower().split()
    if not parts or parts[0] not in MONTHS:
        return None
    month = MONTHS.index(parts[0]) + 1
    year_match = _YEAR_RE.search(label)
    if year_match is None:
        return None
    return int(year_match.group(0)), month
