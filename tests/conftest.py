"""Shared test fixtures and configuration.

Sets up fake environment variables so src.config doesn't sys.exit(),
and provides common fixtures like a temp DB and sample roster grids.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("ALLOWED_USER_IDS", "12345")
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("TIMEZONE", "Asia/Riyadh")

import pytest
from datetime import date, datetime


# 2025-12-21 is a Sunday; 22 Monday ... 27 Saturday
SUNDAY = date(2025, 12, 21)


@pytest.fixture
def today():
    return SUNDAY


@pytest.fixture
def now():
    """A fixed Sunday morning."""
    return datetime(2025, 12, 21, 9, 30)


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_roster.db")


@pytest.fixture
def roster_db(tmp_db_path):
    """Return a RosterDB instance backed by a temp file."""
    from src.data.db import RosterDB
    return RosterDB(db_path=tmp_db_path)


@pytest.fixture
def simple_grid():
    """The smallest useful roster: one employee, two weekday columns."""
    return [
        ["Name", "Role", "Sunday", "Monday"],
        ["Ana Ruiz", "Commi 1", "8AM-6PM", "OFF"],
    ]


@pytest.fixture
def weekly_grid():
    """A week roster with a title row, sections and leave codes."""
    return [
        ["BOH DUTY ROSTER DECEMBER 2025", None, None, None, None, None, None, None, None],
        ["ID", "Name", "Position", "Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"],
        ["HOT KITCHEN SECTION"],
        ["101", "Ana Ruiz", "Commi 1", "8AM-6PM", "OFF", "8AM-6PM", "8AM-6PM", "8AM-6PM", "8AM-6PM", "8AM-6PM"],
        ["102", "Omar Haddad", "Sous Chef", "OFF", "2PM-11PM", "2PM-11PM", "2PM-11PM", "2PM-11PM", "2PM-11PM", "VACATION"],
        ["BAKERY"],
        ["201", "Lina Perez", "Baker", "6AM-3PM", "6AM-3PM", "OFF", "6AM-3PM", "UL", "6AM-3PM", "6AM-3PM"],
        ["202", "Marco Rossi", "Head Baker", "VACATION", "VACATION", "VACATION", "VACATION", "VACATION", "VACATION", "VACATION"],
        [None, None, None, None, None, None, None, None, None, None],
        ["", "Name", "Position", "Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"],
    ]


@pytest.fixture
def weekly_employees(weekly_grid, today):
    from src.core.roster_parser import parse
    result = parse(weekly_grid, month="December 2025", today=today)
    assert result.success
    return result.staff
