"""
Kitchen Roster Assistant - Data Models.

The Memory pillar: a parsed roster snapshot persists in SQLite across bot
restarts. One snapshot always represents exactly one month's roster.
Conversation turns are kept in memory only.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

STATUS_SCHEDULED = "scheduled"
STATUS_OFF = "off"


def derive_status(shift_text: str) -> str:
    """'off' when the shift text mentions OFF anywhere, else 'scheduled'."""
    return STATUS_OFF if "off" in shift_text.lower() else STATUS_SCHEDULED


@dataclass(frozen=True)
class ScheduleRecord:
    """One employee's shift code for one roster day.

    Identity within a snapshot is (employee_name, weekday) for weekday-column
    sheets, and (employee_name, weekday, day_of_month) for calendar sheets.
    """

    employee_name: str
    weekday: str                  # "Sunday".."Saturday", or verbatim date text
    shift_text: str               # e.g. "8AM-6PM", "OFF", "VACATION", "UL"
    derived_status: str           # "scheduled" | "off"
    role: str = "Staff"
    department: str = "General"
    day_of_month: int | None = None

    @classmethod
    def create(
        cls,
        employee_name: str,
        weekday: str,
        shift_text: str,
        role: str = "Staff",
        department: str = "General",
        day_of_month: int | None = None,
    ) -> ScheduleRecord:
        return cls(
            employee_name=employee_name,
            weekday=weekday,
            shift_text=shift_text,
            derived_status=derive_status(shift_text),
            role=role,
            department=department,
            day_of_month=day_of_month,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScheduleRecord:
        return cls(
            employee_name=str(data.get("employee_name", "")),
            weekday=str(data.get("weekday", "")),
            shift_text=str(data.get("shift_text", "")),
            derived_status=str(data.get("derived_status") or derive_status(str(data.get("shift_text", "")))),
            role=str(data.get("role") or "Staff"),
            department=str(data.get("department") or "General"),
            day_of_month=data.get("day_of_month"),
        )


@dataclass
class Employee:
    """A staff member and their schedule for one roster snapshot."""

    name: str
    role: str = "Staff"
    department: str = "General"
    category: str = "Hot Kitchen Staff"   # one of the 21 role categories
    id: str | None = None                  # employee/roll number when the sheet has one
    schedule: list[ScheduleRecord] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Employee:
        return cls(
            name=str(data.get("name", "")),
            role=str(data.get("role") or "Staff"),
            department=str(data.get("department") or "General"),
            category=str(data.get("category") or "Hot Kitchen Staff"),
            id=data.get("id"),
            schedule=[ScheduleRecord.from_dict(r) for r in data.get("schedule", [])],
        )


@dataclass
class RosterSnapshot:
    """The full result of one roster upload, as stored.

    JSON shape: {"schedules": [...], "staff": [...], "rawData": [...], "month": "December 2025"}
    """

    schedules: list[ScheduleRecord] = field(default_factory=list)
    staff: list[Employee] = field(default_factory=list)
    raw_data: list[list[Any]] | None = None
    month: str | None = None
    id: int | None = None          # set once stored
    filename: str = ""
    created_at: str = ""

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "schedules": [asdict(r) for r in self.schedules],
            "staff": [asdict(e) for e in self.staff],
            "month": self.month,
        }
        if self.raw_data is not None:
            payload["rawData"] = self.raw_data
        return payload

    @classmethod
    def from_payload(
        cls,
        payload: dict[str, Any],
        id: int | None = None,
        filename: str = "",
        created_at: str = "",
    ) -> RosterSnapshot:
        return cls(
            schedules=[ScheduleRecord.from_dict(r) for r in payload.get("schedules", [])],
            staff=[Employee.from_dict(e) for e in payload.get("staff", [])],
            raw_data=payload.get("rawData"),
            month=payload.get("month"),
            id=id,
            filename=filename,
            created_at=created_at,
        )


@dataclass(frozen=True)
class Turn:
    """A single message in a chat conversation."""

    role: str          # "user" | "assistant"
    content: str
    timestamp: float
