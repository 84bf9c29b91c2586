"""
Kitchen Roster Assistant - Date resolution.

Works out which calendar day a duty question is about. The default is
today; "tomorrow", "yesterday", "next week" and weekday names move it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, timedelta

from src.core.grid import WEEKDAYS, weekday_name

# Checked in order; the first phrase found in the question wins
RELATIVE_DAYS: tuple[tuple[str, int], ...] = (
    ("tomorrow", 1),
    ("yesterday", -1),
    ("next week", 7),
)

_WEEKDAY_RES = tuple(
    (i, re.compile(rf"\b{name.lower()}\b")) for i, name in enumerate(WEEKDAYS)
)
_LAST_RE = re.compile(r"\blast\b")


@dataclass(frozen=True)
class TargetDate:
    """The day a question refers to."""

    date: date
    label: str     # "today", "tomorrow", "monday", "last monday", ...

    @property
    def weekday_name(self) -> str:
        return weekday_name(self.date)

    @property
    def day_of_month(self) -> int:
        return self.date.day

    @property
    def display(self) -> str:
        """Human form, e.g. "Monday, December 22"."""
        return f"{self.date:%A}, {self.date:%B} {self.date.day}"


def resolve_target_date(query: str, today: date) -> TargetDate:
    """Resolve the target day of a question relative to ``today``.

    A bare weekday means its next occurrence on or after today; with "last"
    it means the most recent occurrence strictly before today.
    """
    q = query.lower()

    for phrase, offset in RELATIVE_DAYS:
        if phrase in q:
            return TargetDate(today + timedelta(days=offset), phrase)

    current = WEEKDAYS.index(weekday_name(today))
    for index, pattern in _WEEKDAY_RES:
        if not pattern.search(q):
            continue
        name = WEEKDAYS[index].lower()
        if _LAST_RE.search(q):
            delta = (current - index) % 7 or 7
            return TargetDate(today - timedelta(days=delta), f"last {name}")
        delta = (index - current) % 7
        return TargetDate(today + timedelta(days=delta), name)

    return TargetDate(today, "today")
