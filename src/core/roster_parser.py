"""
Kitchen Roster Assistant - Tabular Schedule Parser.

Turns an irregularly formatted duty roster grid into normalized
ScheduleRecords and an Employee roster.

Two sheet shapes are auto-detected:
- row-per-employee: one row per person, one column per day (weekday names,
  day-of-month numbers, dates, or a positional Sunday..Saturday block);
- row-per-shift: one row per schedule entry with name/date/shift columns.

The parser is total: malformed input yields ``success=False`` with an
explanation, never an exception.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.core.grid import (
    WEEKDAYS,
    Cell,
    RawGrid,
    cell_text,
    is_blank_row,
    normalize_grid,
    parse_month_label,
    row_cell,
    weekday_name,
)
from src.core.role_categorizer import categorize, department_from_marker, infer_department
from src.data.models import Employee, ScheduleRecord

logger = logging.getLogger(__name__)

FORMAT_ROW_PER_EMPLOYEE = "row-per-employee"
FORMAT_ROW_PER_SHIFT = "row-per-shift"

DAY_SOURCE_WEEKDAYS = "weekday-names"
DAY_SOURCE_NUMBERS = "day-numbers"
DAY_SOURCE_DATES = "dates"
DAY_SOURCE_POSITIONAL = "positional"

# Last-resort layout: Sunday..Saturday starting at this column
POSITIONAL_DAY_OFFSET = 4

HEADER_KEYWORDS: tuple[str, ...] = (
    "NAME", "EMPLOYEE", "STAFF", "POSITION", "SHIFT",
) + tuple(d.upper() for d in WEEKDAYS)

_HEADER_KEYWORD_SET = frozenset(HEADER_KEYWORDS)

_WEEKDAY_ABBREVIATIONS: dict[str, str] = {
    "SUN": "Sunday", "MON": "Monday", "TUE": "Tuesday", "TUES": "Tuesday",
    "WED": "Wednesday", "THU": "Thursday", "THUR": "Thursday", "THURS": "Thursday",
    "FRI": "Friday", "SAT": "Saturday",
}

# Row-per-employee column headers (normalized upper case)
_NAME_EXACT = ("NAME", "STAFF NAME", "EMPLOYEE NAME", "FULL NAME", "EMPLOYEE", "STAFF")
_NAME_PARTIAL = ("NAME", "EMPLOYEE", "STAFF")
_ROLE_EXACT = ("ROLE", "POSITION", "TITLE", "JOB TITLE", "JOB", "DESIGNATION")
_ROLE_PARTIAL = ("ROLE", "POSITION", "DESIGNATION", "TITLE", "JOB")
_ID_EXACT = (
    "ID", "EMP ID", "EMPLOYEE ID", "STAFF ID", "ID NO", "ID NUMBER",
    "ROLL NO", "ROLL NUMBER", "EMP NO", "EMPLOYEE NO",
)

# Row-per-shift column synonyms (lower case, substring match)
_ENTRY_SYNONYMS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("name", ("name", "employee", "staff", "worker", "personnel", "emp", "person")),
    ("date", ("date", "day", "shift_date", "schedule_date", "work_date", "datum")),
    ("shift", ("shift", "time", "hours", "duty", "timing", "period", "turn")),
    ("role", ("role", "position", "job", "title", "designation")),
    ("department", ("department", "dept", "division", "team", "section")),
)

_DAY_NUMBER_RE = re.compile(r"^\d{1,2}$")
_DATE_LIKE_RE = re.compile(r"\d+[-/.]\w+|\d{1,2}[-/]\d{1,2}")

# (format, needs the roster year appended)
_DATE_FORMATS: tuple[tuple[str, bool], ...] = (
    ("%Y-%m-%d", False),
    ("%d-%b-%Y", False),
    ("%d-%B-%Y", False),
    ("%m/%d/%Y", False),
    ("%d/%m/%Y", False),
    ("%d.%m.%Y", False),
    ("%d-%b", True),
    ("%d-%B", True),
    ("%b-%d", True),
    ("%m/%d", True),
    ("%d/%m", True),
)


# ---------------------------------------------------------------------------
# Shared JSON contract - consumed by the upload pipeline and the bot
# ---------------------------------------------------------------------------


class ParseMetadata(BaseModel):
    """Diagnostics describing what the parser auto-detected.

    JSON example (by alias):
    {
        "totalRecords": 14,
        "uniqueStaff": 2,
        "detectedColumns": {"name": 0, "role": 1, "days": {"2": "Sunday"}},
        "sampleRow": ["Ana Ruiz", "Commi 1", "8AM-6PM"],
        "totalRowsInFile": 3,
        "format": "row-per-employee"
    }
    """

    model_config = ConfigDict(populate_by_name=True)

    total_records: int = Field(0, alias="totalRecords")
    unique_staff: int = Field(0, alias="uniqueStaff")
    detected_columns: dict[str, Any] = Field(default_factory=dict, alias="detectedColumns")
    sample_row: list[Cell] | None = Field(None, alias="sampleRow")
    total_rows_in_file: int = Field(0, alias="totalRowsInFile")
    format: str | None = None
    header_row_index: int | None = Field(None, alias="headerRowIndex")
    day_column_source: str | None = Field(None, alias="dayColumnSource")
    skipped_rows: int = Field(0, alias="skippedRows")
    sections: list[str] = Field(default_factory=list)


class ParseResult(BaseModel):
    """Outcome of parsing one roster grid."""

    success: bool
    error: str | None = None
    schedules: list[ScheduleRecord] = Field(default_factory=list)
    staff: list[Employee] = Field(default_factory=list)
    metadata: ParseMetadata = Field(default_factory=ParseMetadata)

    @property
    def employees(self) -> list[Employee]:
        return self.staff

    @property
    def records(self) -> list[ScheduleRecord]:
        return self.schedules

    @classmethod
    def failure(cls, error: str, **metadata: Any) -> ParseResult:
        return cls(success=False, error=error, metadata=ParseMetadata(**metadata))


@dataclass(frozen=True)
class DayColumn:
    """A column holding one roster day's shift codes."""

    index: int
    weekday: str
    day_of_month: int | None = None


# ---------------------------------------------------------------------------
# Header and column discovery
# ---------------------------------------------------------------------------


def _normalize_header(cell: Cell) -> str:
    text = cell_text(cell).upper()
    return " ".join(re.sub(r"[^A-Z0-9#&]+", " ", text).split())


def _header_hits(row: list[Cell]) -> tuple[int, int]:
    """(cells naming a header keyword, non-empty cells) for one row."""
    hits = filled = 0
    for cell in row:
        text = cell_text(cell).upper()
        if not text:
            continue
        filled += 1
        if any(k in text for k in HEADER_KEYWORDS):
            hits += 1
    return hits, filled


def find_header_row(rows: list[list[Cell]], lookahead: int = 10) -> int:
    """Index of the header row within the first ``lookahead`` rows.

    Rows are ranked: two or more keyword cells first, then a keyword cell
    beside other filled cells, then a lone keyword cell (a title such as
    "STAFF DUTY ROSTER"). The first row of the best rank wins; 0 when no
    row has a keyword.
    """
    best: tuple[int, int] | None = None   # (rank, index), lower rank is better
    for i, row in enumerate(rows[:lookahead]):
        hits, filled = _header_hits(row)
        if not hits:
            continue
        rank = 0 if hits >= 2 else 1 if filled >= 2 else 2
        if best is None or rank < best[0]:
            best = (rank, i)
    if best is not None:
        return best[1]
    logger.info("No header row within the first %d rows, using row 0", lookahead)
    return 0


def match_weekday(header: str) -> str | None:
    """Weekday named by a header cell ("MONDAY", "Mon 1", "THU"), else None."""
    upper = header.upper()
    for day in WEEKDAYS:
        if day.upper() in upper:
            return day
    for token in re.findall(r"[A-Z]+", upper):
        if token in _WEEKDAY_ABBREVIATIONS:
            return _WEEKDAY_ABBREVIATIONS[token]
    return None


def parse_date_text(text: str, year: int) -> date | None:
    """Parse a date-like header or cell ("14-DEC", "12/15", "2025-12-14")."""
    text = text.strip()
    if not text:
        return None
    for fmt, needs_year in _DATE_FORMATS:
        try:
            if needs_year:
                return datetime.strptime(f"{text} {year}", f"{fmt} %Y").date()
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _find_exact(headers: list[str], keywords: tuple[str, ...], taken: set[int]) -> int | None:
    for keyword in keywords:
        for i, header in enumerate(headers):
            if i not in taken and header == keyword:
                return i
    return None


def _find_partial(headers: list[str], keywords: tuple[str, ...], taken: set[int]) -> int | None:
    for keyword in keywords:
        for i, header in enumerate(headers):
            if i not in taken and keyword in header:
                return i
    return None


def _weekday_columns(headers: list[str], taken: set[int]) -> list[DayColumn]:
    # Later duplicates of the same weekday overwrite earlier ones
    by_day: dict[str, DayColumn] = {}
    for i, header in enumerate(headers):
        if i in taken or not header:
            continue
        day = match_weekday(header)
        if day is not None:
            by_day[day] = DayColumn(i, day)
    return sorted(by_day.values(), key=lambda c: c.index)


def _calendar_columns(
    header_cells: list[Cell], taken: set[int], year: int, month: int,
) -> tuple[list[DayColumn], str | None]:
    by_day: dict[int, DayColumn] = {}
    numbered = False
    for i, cell in enumerate(header_cells):
        if i in taken:
            continue
        text = cell_text(cell)
        if not text:
            continue
        if _DAY_NUMBER_RE.match(text):
            day_num = int(text)
            if not 1 <= day_num <= 31:
                continue
            try:
                d = date(year, month, day_num)
            except ValueError:
                logger.debug("Day %d does not exist in %d-%02d", day_num, year, month)
                continue
            numbered = True
        elif _DATE_LIKE_RE.search(text):
            d = parse_date_text(text, year)
            if d is None:
                continue
        else:
            continue
        by_day[d.day] = DayColumn(i, weekday_name(d), d.day)

    if not by_day:
        return [], None
    columns = sorted(by_day.values(), key=lambda c: c.index)
    return columns, DAY_SOURCE_NUMBERS if numbered else DAY_SOURCE_DATES


def _positional_columns(width: int, taken: set[int]) -> list[DayColumn]:
    columns = []
    for offset, day in enumerate(WEEKDAYS):
        index = POSITIONAL_DAY_OFFSET + offset
        if index < width and index not in taken:
            columns.append(DayColumn(index, day))
    return columns


def _first_data_row(rows: list[list[Cell]], header_index: int) -> list[Cell] | None:
    for row in rows[header_index + 1:]:
        if not is_blank_row(row) and _section_marker(row) is None:
            return row
    return None


def _positional_name_column(sample: list[Cell] | None) -> int | None:
    if sample is None:
        return None
    if len(sample) > 1 and isinstance(sample[1], str) and len(sample[1].strip()) > 3:
        return 1
    if sample and isinstance(sample[0], str) and sample[0].strip():
        return 0
    return None


# ---------------------------------------------------------------------------
# Row handling shared by both shapes
# ---------------------------------------------------------------------------


def is_valid_name(name: str) -> bool:
    """Row admission: a non-empty name of 2+ chars that is not a header keyword."""
    name = name.strip()
    return len(name) >= 2 and name.upper() not in _HEADER_KEYWORD_SET


def _section_marker(row: list[Cell]) -> str | None:
    cells = [cell_text(c) for c in row if cell_text(c)]
    if not cells or len(cells) > 2:
        return None
    for text in cells:
        department = department_from_marker(text)
        if department is not None:
            return department
    return None


class _RosterBuilder:
    """Accumulates employees and records in first-seen order."""

    def __init__(self) -> None:
        self._employees: dict[str, Employee] = {}
        self._records: dict[tuple[str, str, int | None], ScheduleRecord] = {}

    def employee(self, name: str, role: str, department: str, emp_id: str | None) -> Employee:
        emp = self._employees.get(name)
        if emp is None:
            emp = Employee(
                name=name,
                role=role,
                department=department,
                category=categorize(role).name,
                id=emp_id,
            )
            self._employees[name] = emp
        elif emp.id is None and emp_id:
            emp.id = emp_id
        return emp

    def add_record(self, record: ScheduleRecord) -> None:
        self._records[(record.employee_name, record.weekday, record.day_of_month)] = record

    def build(self) -> tuple[list[Employee], list[ScheduleRecord]]:
        records = list(self._records.values())
        for emp in self._employees.values():
            emp.schedule = [r for r in records if r.employee_name == emp.name]
        return list(self._employees.values()), records


# ---------------------------------------------------------------------------
# Shape: row per employee
# ---------------------------------------------------------------------------


def _parse_row_per_employee(
    rows: list[list[Cell]],
    header_index: int,
    headers: list[str],
    name_col: int | None,
    role_col: int | None,
    id_col: int | None,
    day_columns: list[DayColumn],
    day_source: str,
) -> ParseResult:
    builder = _RosterBuilder()
    section: str | None = None
    sections: list[str] = []
    skipped = 0

    for row_index in range(header_index + 1, len(rows)):
        row = rows[row_index]
        if is_blank_row(row):
            continue

        marker = _section_marker(row)
        if marker is not None:
            section = marker
            sections.append(marker)
            logger.debug("Row %d starts section %s", row_index, marker)
            continue

        name = row_cell(row, name_col)
        if not is_valid_name(name):
            logger.debug("Skipping row %d: invalid name %r", row_index, name)
            skipped += 1
            continue

        role = row_cell(row, role_col) or "Staff"
        department = section or infer_department(role)
        emp = builder.employee(name, role, department, row_cell(row, id_col) or None)

        for column in day_columns:
            shift = row_cell(row, column.index)
            if not shift:
                continue
            builder.add_record(ScheduleRecord.create(
                employee_name=emp.name,
                weekday=column.weekday,
                shift_text=shift,
                role=emp.role,
                department=emp.department,
                day_of_month=column.day_of_month,
            ))

    employees, records = builder.build()
    metadata = dict(
        total_records=len(records),
        unique_staff=len(employees),
        detected_columns={
            "name": name_col,
            "role": role_col,
            "id": id_col,
            "days": {str(c.index): c.weekday for c in day_columns},
        },
        sample_row=_first_data_row(rows, header_index),
        total_rows_in_file=len(rows),
        format=FORMAT_ROW_PER_EMPLOYEE,
        header_row_index=header_index,
        day_column_source=day_source,
        skipped_rows=skipped,
        sections=sections,
    )

    if not employees:
        return ParseResult.failure("No employee rows found under the header row", **metadata)

    logger.info(
        "Parsed %d schedule records for %d employees (%s, days from %s)",
        len(records), len(employees), FORMAT_ROW_PER_EMPLOYEE, day_source,
    )
    return ParseResult(
        success=True,
        schedules=records,
        staff=employees,
        metadata=ParseMetadata(**metadata),
    )


# ---------------------------------------------------------------------------
# Shape: row per shift entry
# ---------------------------------------------------------------------------


def _entry_columns(headers: list[str], id_col: int | None) -> dict[str, int | None]:
    taken: set[int] = {id_col} if id_col is not None else set()
    found: dict[str, int | None] = {}
    for field_name, synonyms in _ENTRY_SYNONYMS:
        index = None
        for i, header in enumerate(headers):
            if i in taken or not header:
                continue
            lower = header.lower().replace(" ", "_")
            if any(s in lower for s in synonyms):
                index = i
                break
        found[field_name] = index
        if index is not None:
            taken.add(index)
    return found


def _normalize_entry_day(text: str, year: int) -> tuple[str, int | None]:
    """Map a shift-entry date cell to (weekday, day_of_month) where possible."""
    if not text:
        return "", None
    day = match_weekday(text)
    if day is not None and not re.search(r"\d", text):
        return day, None
    parsed = parse_date_text(text, year)
    if parsed is not None:
        return weekday_name(parsed), parsed.day
    return day or text, None


def _parse_row_per_shift(
    rows: list[list[Cell]],
    header_index: int,
    headers: list[str],
    columns: dict[str, int | None],
    id_col: int | None,
    year: int,
) -> ParseResult:
    name_col = columns["name"] if columns["name"] is not None else 0
    builder = _RosterBuilder()
    section: str | None = None
    sections: list[str] = []
    skipped = 0

    for row_index in range(header_index + 1, len(rows)):
        row = rows[row_index]
        if is_blank_row(row):
            continue

        marker = _section_marker(row)
        if marker is not None:
            section = marker
            sections.append(marker)
            continue

        name = row_cell(row, name_col)
        if not is_valid_name(name):
            logger.debug("Skipping row %d: invalid name %r", row_index, name)
            skipped += 1
            continue

        role = row_cell(row, columns["role"]) or "Staff"
        department = row_cell(row, columns["department"]) or section or infer_department(role)
        emp = builder.employee(name, role, department, row_cell(row, id_col) or None)

        shift = row_cell(row, columns["shift"])
        if not shift:
            continue
        weekday, day_of_month = _normalize_entry_day(row_cell(row, columns["date"]), year)
        builder.add_record(ScheduleRecord.create(
            employee_name=emp.name,
            weekday=weekday,
            shift_text=shift,
            role=row_cell(row, columns["role"]) or emp.role,
            department=row_cell(row, columns["department"]) or emp.department,
            day_of_month=day_of_month,
        ))

    employees, records = builder.build()
    detected = dict(columns)
    detected["name"] = name_col
    detected["id"] = id_col
    metadata = dict(
        total_records=len(records),
        unique_staff=len(employees),
        detected_columns=detected,
        sample_row=_first_data_row(rows, header_index),
        total_rows_in_file=len(rows),
        format=FORMAT_ROW_PER_SHIFT,
        header_row_index=header_index,
        skipped_rows=skipped,
        sections=sections,
    )

    if not employees:
        return ParseResult.failure(
            "No employee names found. Please ensure the file has a column with employee names.",
            **metadata,
        )

    logger.info(
        "Parsed %d schedule records for %d employees (%s)",
        len(records), len(employees), FORMAT_ROW_PER_SHIFT,
    )
    return ParseResult(
        success=True,
        schedules=records,
        staff=employees,
        metadata=ParseMetadata(**metadata),
    )


# ---------------------------------------------------------------------------
# Parser function
# ---------------------------------------------------------------------------


def _parse(
    grid: RawGrid | None, month: str | None, today: date, header_lookahead: int,
) -> ParseResult:
    rows = normalize_grid(grid)
    usable = [r for r in rows if not is_blank_row(r)]
    if len(usable) < 2:
        return ParseResult.failure(
            "The roster needs a header row and at least one data row",
            total_rows_in_file=len(rows),
        )

    year, month_num = parse_month_label(month) or (today.year, today.month)

    header_index = find_header_row(rows, header_lookahead)
    header_cells = rows[header_index]
    headers = [_normalize_header(c) for c in header_cells]
    logger.debug("Header row %d: %s", header_index, headers)

    id_col = _find_exact(headers, _ID_EXACT, set())
    taken = {id_col} if id_col is not None else set()
    name_col = _find_exact(headers, _NAME_EXACT, taken)
    if name_col is None:
        name_col = _find_partial(headers, _NAME_PARTIAL, taken)
    if name_col is not None:
        taken.add(name_col)
    role_col = _find_exact(headers, _ROLE_EXACT, taken)
    if role_col is None:
        role_col = _find_partial(headers, _ROLE_PARTIAL, taken)
    if role_col is not None:
        taken.add(role_col)

    day_columns = _weekday_columns(headers, taken)
    day_source = DAY_SOURCE_WEEKDAYS
    if not day_columns:
        day_columns, calendar_source = _calendar_columns(header_cells, taken, year, month_num)
        day_source = calendar_source or DAY_SOURCE_POSITIONAL

    if not day_columns:
        entry_columns = _entry_columns(headers, id_col)
        if entry_columns["date"] is not None or entry_columns["shift"] is not None:
            logger.info("Detected %s format", FORMAT_ROW_PER_SHIFT)
            return _parse_row_per_shift(rows, header_index, headers, entry_columns, id_col, year)

    logger.info("Detected %s format", FORMAT_ROW_PER_EMPLOYEE)

    sample = _first_data_row(rows, header_index)
    if name_col is None:
        name_col = _positional_name_column(sample)
        if name_col is not None:
            logger.info("Name column not labelled, assuming column %d", name_col)
            taken.add(name_col)
    if name_col is None:
        return ParseResult.failure(
            "Could not find a column with employee names",
            total_rows_in_file=len(rows),
            header_row_index=header_index,
            format=FORMAT_ROW_PER_EMPLOYEE,
        )

    if not day_columns:
        width = max(len(r) for r in rows)
        day_columns = _positional_columns(width, taken)
        logger.info("No day headers found, assuming %d columns from %d are Sunday..Saturday",
                    len(day_columns), POSITIONAL_DAY_OFFSET)

    if role_col is None:
        day_indexes = {c.index for c in day_columns}
        if 3 not in taken and 3 not in day_indexes and len(headers) > 3:
            role_col = 3

    return _parse_row_per_employee(
        rows, header_index, headers, name_col, role_col, id_col, day_columns, day_source,
    )


def parse(
    grid: RawGrid | None,
    month: str | None = None,
    today: date | None = None,
    header_lookahead: int = 10,
) -> ParseResult:
    """Parse a raw roster grid into employees and schedule records.

    Args:
        grid: Rows of cells as read from the spreadsheet.
        month: Roster month label ("December 2025") used to turn day-of-month
            headers into weekdays. Defaults to the current month.
        today: Reference date for the default month.
        header_lookahead: Rows scanned for the header row.

    Returns:
        ParseResult. Never raises.
    """
    try:
        return _parse(grid, month, today or date.today(), header_lookahead)
    except Exception as exc:
        logger.error("Unexpected error while parsing roster: %s", exc)
        return ParseResult.failure(f"Could not read the roster: {exc}")
