"""Tests for src.core.roster_parser - tabular schedule parsing."""

from datetime import date

import pytest

from src.core.roster_parser import (
    DAY_SOURCE_DATES,
    DAY_SOURCE_NUMBERS,
    DAY_SOURCE_POSITIONAL,
    DAY_SOURCE_WEEKDAYS,
    FORMAT_ROW_PER_EMPLOYEE,
    FORMAT_ROW_PER_SHIFT,
    find_header_row,
    is_valid_name,
    match_weekday,
    parse,
    parse_date_text,
)


def _by_name(result):
    return {e.name: e for e in result.staff}


def _shifts(employee):
    return {r.weekday: r.shift_text for r in employee.schedule}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_find_header_row_skips_title(self):
        rows = [["DUTY ROSTER"], [], ["Name", "Monday"], ["Ana", "OFF"]]
        assert find_header_row(rows) == 2

    def test_find_header_row_skips_keyword_title(self):
        rows = [["STAFF DUTY ROSTER"], ["Name", "Position", "Monday"], ["Ana", "Cook", "OFF"]]
        assert find_header_row(rows) == 1

    def test_find_header_row_prefers_table_over_lone_title(self):
        rows = [["STAFF DUTY ROSTER"], ["Name", 1, 2], ["Ana", "OFF", "8AM"]]
        assert find_header_row(rows) == 1

    def test_find_header_row_lone_keyword_is_last_resort(self):
        rows = [["x", "y"], ["Staff"], ["Ana", "OFF"]]
        assert find_header_row(rows) == 1

    def test_find_header_row_falls_back_to_zero(self):
        rows = [["a", "b"], ["c", "d"]]
        assert find_header_row(rows) == 0

    def test_find_header_row_respects_lookahead(self):
        rows = [["x"]] * 5 + [["Name"]]
        assert find_header_row(rows, lookahead=3) == 0

    @pytest.mark.parametrize(
        "header, expected",
        [
            ("SUNDAY", "Sunday"),
            ("Mon 1", "Monday"),
            ("THU", "Thursday"),
            ("Tues", "Tuesday"),
            ("NAME", None),
            ("MONTH", None),
        ],
    )
    def test_match_weekday(self, header, expected):
        assert match_weekday(header) == expected

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("2025-12-14", date(2025, 12, 14)),
            ("14-Dec", date(2025, 12, 14)),
            ("14-DEC-2025", date(2025, 12, 14)),
            ("12/15", date(2025, 12, 15)),
            ("nonsense", None),
            ("", None),
        ],
    )
    def test_parse_date_text(self, text, expected):
        assert parse_date_text(text, 2025) == expected

    @pytest.mark.parametrize(
        "name, ok",
        [("Ana Ruiz", True), ("Al", True), ("A", False), ("", False), ("  ", False),
         ("NAME", False), ("Monday", False), ("staff", False)],
    )
    def test_is_valid_name(self, name, ok):
        assert is_valid_name(name) is ok


# ---------------------------------------------------------------------------
# Row-per-employee with weekday headers
# ---------------------------------------------------------------------------


class TestWeekdayColumns:
    def test_end_to_end_minimal_roster(self, simple_grid):
        result = parse(simple_grid)

        assert result.success
        assert [e.name for e in result.employees] == ["Ana Ruiz"]
        ana = result.employees[0]
        assert ana.role == "Commi 1"
        assert ana.category == "Commi 1"
        assert ana.department == "Hot Kitchen"
        statuses = {r.weekday: r.derived_status for r in ana.schedule}
        assert statuses == {"Sunday": "scheduled", "Monday": "off"}
        assert len(result.records) == 2

    def test_name_column_and_day_columns_detected(self):
        grid = [
            ["Position", "Staff Name", "Monday", "Tuesday"],
            ["Baker", "Lina Perez", "6AM-3PM", "OFF"],
        ]
        result = parse(grid)
        assert result.metadata.detected_columns["name"] == 1
        assert result.metadata.detected_columns["role"] == 0
        assert result.metadata.detected_columns["days"] == {"2": "Monday", "3": "Tuesday"}
        assert result.metadata.day_column_source == DAY_SOURCE_WEEKDAYS
        assert result.metadata.format == FORMAT_ROW_PER_EMPLOYEE

    def test_metadata_counts(self, weekly_grid):
        result = parse(weekly_grid)
        meta = result.metadata
        assert meta.unique_staff == 4
        assert meta.total_records == 28
        assert meta.total_rows_in_file == len(weekly_grid)
        assert meta.header_row_index == 1
        assert meta.sample_row[1] == "Ana Ruiz"

    def test_metadata_serializes_with_camel_case(self, simple_grid):
        dumped = parse(simple_grid).metadata.model_dump(by_alias=True)
        assert {"totalRecords", "uniqueStaff", "detectedColumns", "sampleRow",
                "totalRowsInFile", "format"} <= set(dumped)

    def test_repeated_header_row_is_skipped(self, weekly_grid):
        result = parse(weekly_grid)
        assert "Name" not in _by_name(result)
        assert result.metadata.skipped_rows == 1

    def test_section_markers_set_department(self, weekly_grid):
        staff = _by_name(parse(weekly_grid))
        assert staff["Ana Ruiz"].department == "Hot Kitchen"
        assert staff["Omar Haddad"].department == "Hot Kitchen"
        assert staff["Lina Perez"].department == "Pastry"
        assert staff["Marco Rossi"].category == "Head Baker"
        assert parse(weekly_grid).metadata.sections == ["Hot Kitchen", "Pastry"]

    def test_id_column_is_not_the_name(self, weekly_grid):
        staff = _by_name(parse(weekly_grid))
        assert staff["Ana Ruiz"].id == "101"
        assert staff["Lina Perez"].id == "201"

    def test_empty_day_cells_emit_no_record(self):
        grid = [
            ["Name", "Role", "Sunday", "Monday", "Tuesday"],
            ["Ana Ruiz", "Cook", "8AM-6PM", "", None],
        ]
        ana = parse(grid).staff[0]
        assert _shifts(ana) == {"Sunday": "8AM-6PM"}

    def test_duplicate_weekday_header_overwrites(self):
        grid = [
            ["Name", "Monday", "Monday"],
            ["Ana Ruiz", "8AM-6PM", "OFF"],
        ]
        result = parse(grid)
        assert _shifts(result.staff[0]) == {"Monday": "OFF"}

    def test_repeated_employee_rows_merge(self):
        grid = [
            ["Name", "Sunday", "Monday"],
            ["Ana Ruiz", "8AM-6PM", ""],
            ["Ana Ruiz", "", "OFF"],
        ]
        result = parse(grid)
        assert len(result.staff) == 1
        assert _shifts(result.staff[0]) == {"Sunday": "8AM-6PM", "Monday": "OFF"}

    def test_numeric_cells_are_coerced(self):
        grid = [
            ["Name", "Role", "Sunday"],
            ["Ana Ruiz", 7, 8.0],
        ]
        ana = parse(grid).staff[0]
        assert ana.role == "7"
        assert _shifts(ana) == {"Sunday": "8"}

    def test_derived_status_matches_off_substring(self, weekly_grid):
        for record in parse(weekly_grid).records:
            expected = "off" if "off" in record.shift_text.lower() else "scheduled"
            assert record.derived_status == expected

    def test_reparse_is_deterministic(self, weekly_grid):
        first = parse(weekly_grid)
        second = parse(weekly_grid)
        assert {e.name for e in first.staff} == {e.name for e in second.staff}
        assert len(first.records) == len(second.records)

    def test_does_not_mutate_input(self, simple_grid):
        snapshot = [list(r) for r in simple_grid]
        parse(simple_grid)
        assert simple_grid == snapshot


# ---------------------------------------------------------------------------
# Row-per-employee with calendar or positional days
# ---------------------------------------------------------------------------


class TestCalendarColumns:
    def test_day_numbers_use_roster_month(self):
        grid = [
            ["Name", "Role", 1, 2, 3],
            ["Ana Ruiz", "Cook", "8AM-6PM", "OFF", "VACATION"],
        ]
        result = parse(grid, month="December 2025")
        ana = result.staff[0]
        # 1 Dec 2025 is a Monday
        assert [(r.weekday, r.day_of_month) for r in ana.schedule] == [
            ("Monday", 1), ("Tuesday", 2), ("Wednesday", 3),
        ]
        assert result.metadata.day_column_source == DAY_SOURCE_NUMBERS

    def test_day_numbers_default_to_current_month(self):
        grid = [["Name", "1"], ["Ana Ruiz", "OFF"]]
        result = parse(grid, today=date(2026, 2, 10))
        # 1 Feb 2026 is a Sunday
        assert result.records[0].weekday == "Sunday"

    def test_days_missing_from_month_are_ignored(self):
        grid = [["Name", "30", "31"], ["Ana Ruiz", "OFF", "OFF"]]
        result = parse(grid, month="February 2026")
        assert result.success
        assert result.records == []

    def test_monthly_roster_keeps_one_record_per_day(self):
        header = ["Name"] + [str(d) for d in range(1, 32)]
        row = ["Ana Ruiz"] + ["8AM-6PM"] * 31
        result = parse([header, row], month="December 2025")
        assert len(result.records) == 31
        mondays = [r.day_of_month for r in result.records if r.weekday == "Monday"]
        assert mondays == [1, 8, 15, 22, 29]

    def test_date_headers(self):
        grid = [["Name", "14-Dec", "15-Dec"], ["Ana Ruiz", "OFF", "8AM-6PM"]]
        result = parse(grid, month="December 2025")
        assert [(r.weekday, r.day_of_month) for r in result.records] == [
            ("Sunday", 14), ("Monday", 15),
        ]
        assert result.metadata.day_column_source == DAY_SOURCE_DATES

    def test_positional_fallback(self):
        grid = [
            ["Emp", "Full Name", "Dept", "Title", "A", "B", "C", "D", "E", "F", "G"],
            ["7", "Ana Ruiz", "K", "Commi 2", "8AM", "OFF", "8AM", "8AM", "8AM", "8AM", "UL"],
        ]
        result = parse(grid)
        assert result.success
        assert result.metadata.day_column_source == DAY_SOURCE_POSITIONAL
        ana = result.staff[0]
        assert _shifts(ana)["Sunday"] == "8AM"
        assert _shifts(ana)["Monday"] == "OFF"
        assert _shifts(ana)["Saturday"] == "UL"

    def test_positional_name_and_role(self):
        grid = [
            ["#", "", "", "", "", "", "", "", "", "", ""],
            ["1", "Ana Ruiz", "x", "Commi 2", "8AM", "OFF", "8AM", "8AM", "8AM", "8AM", "8AM"],
        ]
        result = parse(grid)
        assert result.success
        ana = result.staff[0]
        assert ana.name == "Ana Ruiz"
        assert ana.role == "Commi 2"
        assert ana.category == "Commi 2"


# ---------------------------------------------------------------------------
# Row-per-shift entries
# ---------------------------------------------------------------------------


class TestShiftEntries:
    def test_basic_entries(self):
        grid = [
            ["Employee", "Date", "Shift", "Department"],
            ["Ana Ruiz", "Sunday", "8AM-6PM", "Hot Kitchen"],
            ["Ana Ruiz", "Mon", "OFF", "Hot Kitchen"],
            ["Lina Perez", "2025-12-22", "6AM-3PM", "Pastry"],
        ]
        result = parse(grid)
        assert result.success
        assert result.metadata.format == FORMAT_ROW_PER_SHIFT
        staff = _by_name(result)
        assert _shifts(staff["Ana Ruiz"]) == {"Sunday": "8AM-6PM", "Monday": "OFF"}
        lina = staff["Lina Perez"].schedule[0]
        assert (lina.weekday, lina.day_of_month) == ("Monday", 22)
        assert staff["Lina Perez"].department == "Pastry"

    def test_unparseable_date_is_kept_verbatim(self):
        grid = [["Name", "Day", "Shift"], ["Ana Ruiz", "Week 3", "8AM"]]
        result = parse(grid)
        assert result.records[0].weekday == "Week 3"

    def test_name_falls_back_to_first_column(self):
        grid = [["Who", "Date", "Shift"], ["Ana Ruiz", "Sunday", "8AM"]]
        result = parse(grid)
        assert result.staff[0].name == "Ana Ruiz"

    def test_department_inferred_from_role(self):
        grid = [["Name", "Date", "Shift", "Role"], ["Sam", "Sunday", "8AM", "Steward"]]
        result = parse(grid)
        assert result.staff[0].department == "Stewarding"
        assert result.staff[0].category == "Steward"


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    @pytest.mark.parametrize("grid", [None, [], [["Name", "Monday"]], [[None], ["Name"], []]])
    def test_too_few_rows(self, grid):
        result = parse(grid)
        assert result.success is False
        assert result.error

    def test_no_admitted_rows(self):
        grid = [["Name", "Monday"], ["X", "OFF"], ["Name", "Monday"]]
        result = parse(grid)
        assert result.success is False
        assert result.metadata.skipped_rows == 2

    def test_garbage_never_raises(self):
        grid = [[object(), {"a": 1}], [3.5, float("nan")], ["", None]]
        result = parse(grid)
        assert result.success in (True, False)


def test_keyword_title_does_not_hide_weekday_header():
    grid = [
        ["STAFF DUTY ROSTER"],
        ["Name", "Role", "Sunday", "Monday"],
        ["Ana Ruiz", "Commi 1", "8AM-6PM", "OFF"],
    ]
    result = parse(grid)
    assert result.metadata.header_row_index == 1
    assert [(r.weekday, r.derived_status) for r in result.records] == [
        ("Sunday", "scheduled"), ("Monday", "off"),
    ]
