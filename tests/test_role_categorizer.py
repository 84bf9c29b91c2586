"""Tests for src.core.role_categorizer - ordered role and department rules."""

import pytest

from src.core.role_categorizer import (
    CATEGORY_RULES,
    DEFAULT_CATEGORY,
    LEVEL_ORDER,
    ROLE_CATEGORIES,
    categorize,
    category_summary,
    department_from_marker,
    get_category,
    group_by_category,
    infer_department,
)
from src.data.models import Employee


# ---------------------------------------------------------------------------
# Category table
# ---------------------------------------------------------------------------


def test_twenty_one_categories_with_unique_ids():
    assert len(ROLE_CATEGORIES) == 21
    assert len({c.id for c in ROLE_CATEGORIES}) == 21
    assert len({c.name for c in ROLE_CATEGORIES}) == 21


def test_every_level_is_known():
    assert {c.level for c in ROLE_CATEGORIES} <= set(LEVEL_ORDER)


def test_every_rule_targets_a_known_category():
    names = {c.name for c in ROLE_CATEGORIES}
    assert all(name in names for _, name in CATEGORY_RULES)


def test_get_category_unknown_falls_back():
    assert get_category("Astronaut").name == DEFAULT_CATEGORY


# ---------------------------------------------------------------------------
# Ordering: compound titles must beat the generic titles they contain
# ---------------------------------------------------------------------------


# (title, expected) pairs; each title also contains a less specific rule's keyword
PRIORITY_CASES = [
    ("Executive Sous Chef", "Executive Sous Chef"),     # before Executive Chef / Sous Chef
    ("Exec. Sous Chef", "Executive Sous Chef"),
    ("Executive Chef", "Executive Chef"),               # before generic chef fallbacks
    ("Sous Chef", "Sous Chef"),
    ("Head Baker", "Head Baker"),                       # before Baker
    ("Demi Chef de Partie", "Demi Chef De Partie"),     # before Chef de Partie
    ("DCDP", "Demi Chef De Partie"),
    ("Chef de Partie", "Chef De Partie (CDP)"),
    ("CDP Grill", "Chef De Partie (CDP)"),
    ("Head Steward", "Head Steward"),                   # before Steward
    ("Senior Steward", "Senior Steward"),
    ("Pastry Commi 2", "Pastry Chef"),                  # pastry before commi grades
    ("Commi 3", "Commi 3"),                             # numbered before bare Commi
    ("Commi Baker", "Commi 1"),                         # commi before Baker
    ("Baker", "Baker"),
    ("Butcher", "Butcher"),
    ("Garde Manger", "Cold Kitchen Staff"),
    ("Salad Cook", "Cold Kitchen Staff"),
    ("Kitchen Coordinator", "Kitchen Coordinator"),
    ("Kitchen Helper", "Kitchen Helper"),
    ("Steward", "Steward"),
    ("Trainee", "Trainee"),
    ("Apprentice Cook", "Apprentice"),
]


@pytest.mark.parametrize("title, expected", PRIORITY_CASES)
def test_rule_priority(title, expected):
    assert categorize(title).name == expected


def test_executive_sous_chef_is_never_executive_or_sous():
    assert categorize("Executive Sous Chef").name not in ("Executive Chef", "Sous Chef")


def test_each_rule_is_reachable_and_first_match_wins():
    """Walk the table: every rule's own sample hits it, not an earlier rule."""
    samples = {
        "Executive Sous Chef": "executive sous chef",
        "Executive Chef": "executive chef",
        "Sous Chef": "sous chef",
        "Head Baker": "head baker",
        "Demi Chef De Partie": "demi chef",
        "Chef De Partie (CDP)": "cdp",
        "Head Steward": "head steward",
        "Senior Steward": "senior steward",
        "Pastry Chef": "pastry",
        "Commi 1": "commi 1",
        "Commi 2": "commi 2",
        "Commi 3": "commi 3",
        "Baker": "baker",
        "Butcher": "butcher",
        "Cold Kitchen Staff": "cold kitchen",
        "Kitchen Coordinator": "coordinator",
        "Kitchen Helper": "helper",
        "Steward": "steward",
        "Trainee": "trainee",
        "Apprentice": "apprentice",
    }
    for index, (predicate, name) in enumerate(CATEGORY_RULES):
        sample = samples[name]
        assert predicate(sample), f"rule {index} ({name}) does not match {sample!r}"
        first = next(n for p, n in CATEGORY_RULES if p(sample))
        assert first == name, f"{sample!r} is caught by {first} before {name}"


@pytest.mark.parametrize("title", ["Commi 2", "commi-2", "Commis 2", "COMMIS-2", "commi2", "Commi  2"])
def test_commi_two_variants(title):
    assert categorize(title).name == "Commi 2"


def test_bare_commi_defaults_to_grade_one():
    assert categorize("Commi").name == "Commi 1"
    assert categorize("Commis").name == "Commi 1"


def test_commi_grade_needs_word_boundary():
    # "Commi 12" is not grade 1
    assert categorize("Commi 12").name == "Commi 1"
    assert categorize("Commi 21").name == "Commi 1"


@pytest.mark.parametrize("title", ["", None, "Line Cook", "Chef", 42])
def test_unmatched_titles_fall_back(title):
    assert categorize(title).name == DEFAULT_CATEGORY


# ---------------------------------------------------------------------------
# Departments
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "role, expected",
    [
        ("Baker", "Pastry"),
        ("Pastry Chef", "Pastry"),
        ("Bakery Assistant", "Pastry"),
        ("Butcher", "Butchery"),
        ("Steward", "Stewarding"),
        ("Garde Manger", "Cold Kitchen"),
        ("Hot Kitchen Cook", "Hot Kitchen"),
        ("Sous Chef", "Hot Kitchen"),
        ("Commi 2", "Hot Kitchen"),
        ("Line Cook", "Hot Kitchen"),
        ("Waiter", "Service"),
        ("Cashier", "General"),
        ("", "General"),
    ],
)
def test_infer_department(role, expected):
    assert infer_department(role) == expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("HOT KITCHEN", "Hot Kitchen"),
        ("Hot Kitchen Section", "Hot Kitchen"),
        ("BAKERY", "Pastry"),
        ("Bakery & Pastry", "Pastry"),
        ("GARDE-MANGER", "Cold Kitchen"),
        ("Stewarding Dept.", "Stewarding"),
        ("Ana Ruiz", None),
        ("", None),
    ],
)
def test_department_from_marker(text, expected):
    assert department_from_marker(text) == expected


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------


class TestGrouping:
    def _staff(self):
        return [
            Employee(name="Ana", role="Commi 1", category="Commi 1"),
            Employee(name="Omar", role="Sous Chef", category="Sous Chef"),
            Employee(name="Lina", role="Commi 1", category="Commi 1"),
            Employee(name="Sam", role="Steward", category="Steward"),
            Employee(name="Eve", role="Executive Chef", category="Executive Chef"),
            Employee(name="Zed", role="Trainee", category="not a category"),
        ]

    def test_groups_sorted_by_level(self):
        groups = group_by_category(self._staff())
        names = [category.name for category, _ in groups]
        assert names == ["Executive Chef", "Sous Chef", "Commi 1", "Trainee", "Steward"]

    def test_unknown_stored_category_is_recomputed(self):
        groups = dict((c.name, staff) for c, staff in group_by_category(self._staff()))
        assert [e.name for e in groups["Trainee"]] == ["Zed"]

    def test_summary_counts(self):
        summary = category_summary(self._staff())
        assert ("Commi 1", 2, "🍳", "#4169E1") in summary
        assert sum(count for _, count, _, _ in summary) == 6
