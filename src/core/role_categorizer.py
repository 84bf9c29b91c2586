"""
Kitchen Roster Assistant - Role Categorizer.

Maps a free-text job title to one of the 21 canonical kitchen role
categories, and a job title or section marker to a department.

Both rule tables are ordered: the first matching rule wins, so compound
titles ("Executive Sous Chef", "Head Baker", "Commi 2") must stay above the
generic titles they contain ("Executive Chef", "Baker", "Commi").

No I/O: this module only transforms data.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable

from src.data.models import Employee

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleCategory:
    """A canonical role bucket used for grouping and display."""

    id: int
    name: str
    icon: str
    color: str
    level: str    # display sorting only


ROLE_CATEGORIES: tuple[RoleCategory, ...] = (
    RoleCategory(1, "Executive Chef", "👨‍🍳", "#8B0000", "Executive"),
    RoleCategory(2, "Executive Sous Chef", "👨‍🍳", "#A52A2A", "Executive"),
    RoleCategory(3, "Sous Chef", "👨‍🍳", "#CD5C5C", "Management"),
    RoleCategory(4, "Chef De Partie (CDP)", "👨‍🍳", "#F08080", "Senior"),
    RoleCategory(5, "Demi Chef De Partie", "👨‍🍳", "#FA8072", "Senior"),
    RoleCategory(6, "Commi 1", "🍳", "#4169E1", "Mid"),
    RoleCategory(7, "Commi 2", "🍳", "#6495ED", "Mid"),
    RoleCategory(8, "Commi 3", "🍳", "#87CEEB", "Junior"),
    RoleCategory(9, "Kitchen Coordinator", "📋", "#32CD32", "Support"),
    RoleCategory(10, "Kitchen Helper", "🧹", "#90EE90", "Support"),
    RoleCategory(11, "Steward", "🍽️", "#3CB371", "Support"),
    RoleCategory(12, "Head Steward", "🍽️", "#2E8B57", "Senior"),
    RoleCategory(13, "Senior Steward", "🍽️", "#228B22", "Senior"),
    RoleCategory(14, "Trainee", "📚", "#FFA500", "Entry"),
    RoleCategory(15, "Apprentice", "📚", "#FFB347", "Entry"),
    RoleCategory(16, "Baker", "🥖", "#DEB887", "Mid"),
    RoleCategory(17, "Pastry Chef", "🎂", "#D2691E", "Senior"),
    RoleCategory(18, "Head Baker", "🥖", "#8B4513", "Management"),
    RoleCategory(19, "Butcher", "🥩", "#DC143C", "Mid"),
    RoleCategory(20, "Cold Kitchen Staff", "🥗", "#00CED1", "Mid"),
    RoleCategory(21, "Hot Kitchen Staff", "🔥", "#FF6347", "Mid"),
)

LEVEL_ORDER: tuple[str, ...] = (
    "Executive", "Management", "Senior", "Mid", "Junior", "Entry", "Support",
)

DEFAULT_CATEGORY = "Hot Kitchen Staff"

_BY_NAME: dict[str, RoleCategory] = {c.name: c for c in ROLE_CATEGORIES}

_Predicate = Callable[[str], bool]


def _has(*needles: str) -> _Predicate:
    return lambda t: any(n in t for n in needles)


def _grade(n: int) -> _Predicate:
    # "commi 2", "commi-2", "commis 2", "commis-2", "commi2"
    pattern = re.compile(rf"\bcommis?\s*[-_]?\s*{n}\b")
    return lambda t: bool(pattern.search(t))


# Evaluated top to bottom; the first predicate that holds decides the category.
CATEGORY_RULES: tuple[tuple[_Predicate, str], ...] = (
    # Executive
    (lambda t: "executive sous" in t or ("exec" in t and "sous" in t), "Executive Sous Chef"),
    (lambda t: "executive chef" in t or ("exec" in t and "chef" in t), "Executive Chef"),
    # Management
    (lambda t: "sous chef" in t, "Sous Chef"),
    (_has("head baker"), "Head Baker"),
    # Senior
    (_has("demi chef", "demi-chef", "dcdp"), "Demi Chef De Partie"),
    (_has("cdp", "chef de partie", "de partie"), "Chef De Partie (CDP)"),
    (_has("head steward"), "Head Steward"),
    (_has("senior steward"), "Senior Steward"),
    (_has("pastry"), "Pastry Chef"),
    # Numbered commi grades before the bare title
    (_grade(1), "Commi 1"),
    (_grade(2), "Commi 2"),
    (_grade(3), "Commi 3"),
    (_has("commi"), "Commi 1"),
    # Specialty
    (_has("baker"), "Baker"),
    (_has("butcher"), "Butcher"),
    (_has("cold kitchen", "garde manger", "salad"), "Cold Kitchen Staff"),
    # Support
    (_has("coordinator"), "Kitchen Coordinator"),
    (_has("helper"), "Kitchen Helper"),
    (_has("steward"), "Steward"),
    # Entry
    (_has("trainee"), "Trainee"),
    (_has("apprentice"), "Apprentice"),
)


def get_category(name: str) -> RoleCategory:
    """Look up a category by its canonical name (falls back to the default)."""
    return _BY_NAME.get(name, _BY_NAME[DEFAULT_CATEGORY])


def categorize(title: object) -> RoleCategory:
    """Map a job title to its role category. Never fails.

    Unmatched titles fall back to "Hot Kitchen Staff".
    """
    text = " ".join(str(title or "").lower().split())
    for predicate, category_name in CATEGORY_RULES:
        if predicate(text):
            return _BY_NAME[category_name]
    return _BY_NAME[DEFAULT_CATEGORY]


# ---------------------------------------------------------------------------
# Departments
# ---------------------------------------------------------------------------

DEFAULT_DEPARTMENT = "General"

# Job-title keywords, most specific first
DEPARTMENT_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("hot kitchen", "hot-kitchen"), "Hot Kitchen"),
    (("cold kitchen", "cold-kitchen", "garde manger", "salad"), "Cold Kitchen"),
    (("bakery", "pastry", "baker"), "Pastry"),
    (("butcher",), "Butchery"),
    (("steward",), "Stewarding"),
    (("service", "waiter", "server"), "Service"),
    (("chef", "cook", "commi", "helper"), "Hot Kitchen"),
)

# Section header rows inside a roster ("HOT KITCHEN SECTION", "BAKERY", ...)
SECTION_MARKERS: dict[str, str] = {
    "HOT KITCHEN": "Hot Kitchen",
    "COLD KITCHEN": "Cold Kitchen",
    "GARDE MANGER": "Cold Kitchen",
    "BAKERY": "Pastry",
    "PASTRY": "Pastry",
    "BAKERY & PASTRY": "Pastry",
    "PASTRY & BAKERY": "Pastry",
    "BUTCHERY": "Butchery",
    "BUTCHER": "Butchery",
    "STEWARDING": "Stewarding",
    "STEWARD": "Stewarding",
}

_SECTION_SUFFIX_RE = re.compile(r"\s*\b(SECTION|DEPARTMENT|DEPT)\b\.?\s*$")


def infer_department(role: object) -> str:
    """Infer a department from a job title; "General" when nothing matches."""
    text = str(role or "").lower()
    for keywords, department in DEPARTMENT_RULES:
        if any(k in text for k in keywords):
            return department
    return DEFAULT_DEPARTMENT


def department_from_marker(text: object) -> str | None:
    """Return the department a section-marker cell names, or None."""
    normalized = " ".join(str(text or "").upper().replace("-", " ").split())
    normalized = _SECTION_SUFFIX_RE.sub("", normalized).strip()
    return SECTION_MARKERS.get(normalized)


# ---------------------------------------------------------------------------
# Grouping for display
# ---------------------------------------------------------------------------


def group_by_category(
    employees: Iterable[Employee],
) -> list[tuple[RoleCategory, list[Employee]]]:
    """Group employees by role category, most senior level first.

    Uses each employee's stored category; titles are re-categorized only
    when the stored name is not a known category.
    """
    groups: dict[str, list[Employee]] = {}
    for emp in employees:
        name = emp.category if emp.category in _BY_NAME else categorize(emp.role).name
        groups.setdefault(name, []).append(emp)

    ordered = sorted(
        groups.items(),
        key=lambda item: (LEVEL_ORDER.index(_BY_NAME[item[0]].level), _BY_NAME[item[0]].id),
    )
    return [(_BY_NAME[name], staff) for name, staff in ordered]


def category_summary(employees: Iterable[Employee]) -> list[tuple[str, int, str, str]]:
    """Return (category name, count, icon, color) rows for display."""
    return [
        (category.name, len(staff), category.icon, category.color)
        for category, staff in group_by_category(employees)
    ]
