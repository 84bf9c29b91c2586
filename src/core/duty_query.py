"""
Kitchen Roster Assistant - Duty Query Engine.

Answers natural-language questions about the loaded roster entirely
locally: no network calls, no language model. One call:

1. expands a follow-up question using the chat's ConversationSession
2. resolves the target day ("tomorrow", "last monday", ...)
3. sorts every employee into working / off / vacation / leave for that day
4. narrows the buckets to a department when the question names one
5. answers about a specific person when the question names one
6. otherwise dispatches on intent and renders a chatty reply

The engine never raises: every failure ends up as a polite message.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable

from src.core.conversation import ConversationSession
from src.core.date_resolver import TargetDate, resolve_target_date
from src.data.models import Employee, ScheduleRecord

logger = logging.getLogger(__name__)

DEFAULT_DISPLAY_LIMIT = 15
LIST_DISPLAY_LIMIT = 10

STATUS_WORKING = "working"
STATUS_OFF = "off"
STATUS_VACATION = "vacation"
STATUS_LEAVE = "leave"

NO_DATA_MESSAGE = (
    "I don't have any roster data loaded yet. Could you please upload a duty "
    "schedule file so I can help you with staff information?"
)
ERROR_MESSAGE = "I'm having trouble accessing the roster right now. Please try again."

# First keyword found in the question wins
DEPARTMENT_KEYWORDS: tuple[str, ...] = (
    "hot kitchen", "cold kitchen", "bakery", "pastry", "butchery", "stewarding",
)
# Query keyword -> department name used by the parser
DEPARTMENT_ALIASES: dict[str, str] = {"bakery": "pastry"}

# Removed from a question before it is matched against staff names
STOP_WORDS = frozenset({
    "a", "about", "all", "an", "and", "any", "anyone", "are", "at", "can", "day",
    "days", "do", "does", "duty", "else", "everyone", "for", "from", "has", "have",
    "how", "i", "in", "is", "it", "me", "my", "name", "names", "of", "off", "on",
    "please", "roster", "schedule", "scheduled", "shift", "show", "tell", "the",
    "there", "this", "to", "today", "what", "what's", "whats", "when", "where",
    "who", "who's", "whos", "will", "with", "working", "work", "works",
    "hot", "cold", "kitchen", "bakery", "pastry", "butchery", "stewarding",
    "tomorrow", "yesterday", "next", "week", "last",
    "sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday",
    "vacation", "leave", "absent", "staff", "list", "team", "find", "search",
})

_WORD_RE = re.compile(r"[a-z0-9']+")
_OFF_RE = re.compile(r"\boff\b")
_LIST_RE = re.compile(r"\b(staff|names?|list|all|team)\b")
_FIND_RE = re.compile(r"\b(find|search|where)\b")
_FIND_STRIP = frozenset({"find", "search", "where", "is", "the", "off", "on", "duty", "today", "for", "me"})

# Intents in priority order: (name, predicate over the lowercased question)
INTENT_RULES: tuple[tuple[str, Callable[[str], bool]], ...] = (
    ("working", lambda q: "working" in q or "on duty" in q),
    ("off", lambda q: bool(_OFF_RE.search(q)) or "day off" in q),
    ("absent", lambda q: "vacation" in q or "leave" in q or "absent" in q),
    ("roster", lambda q: bool(_LIST_RE.search(q))),
    ("find", lambda q: bool(_FIND_RE.search(q))),
)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def classify_shift(shift_text: str | None) -> str:
    """Sort a shift code into one of the four duty buckets."""
    code = (shift_text or "").strip().upper()
    if code == "OFF":
        return STATUS_OFF
    if "VACATION" in code or code in ("ANNUAL_LEAVE", "AL"):
        return STATUS_VACATION
    if "LEAVE" in code or "UNPAID" in code or code == "UL":
        return STATUS_LEAVE
    return STATUS_WORKING


def _abbreviates(text: str, day: str) -> bool:
    """True when a word of ``text`` is a 3+ letter prefix of ``day`` ("Tue", "THURS 4")."""
    return any(
        len(word) >= 3 and day.startswith(word)
        for word in re.findall(r"[a-z]+", text.lower())
    )


def find_record(employee: Employee, target: TargetDate) -> ScheduleRecord | None:
    """Pick the employee's schedule record for the target day.

    Exact weekday first (the one dated on the target day-of-month if the
    roster has several), then a weekday abbreviation such as "Tue", then the
    target day-of-month appearing as a number in the record's day text.
    """
    day = target.weekday_name.lower()
    dom = target.day_of_month

    exact = [r for r in employee.schedule if r.weekday.strip().lower() == day]
    if exact:
        for record in exact:
            if record.day_of_month == dom:
                return record
        undated = [r for r in exact if r.day_of_month is None]
        return undated[0] if undated else exact[0]

    for record in employee.schedule:
        if _abbreviates(record.weekday, day):
            return record

    dom_re = re.compile(rf"(?<!\d){dom}(?!\d)")
    for record in employee.schedule:
        if record.day_of_month == dom or dom_re.search(record.weekday):
            return record
    return None


@dataclass(frozen=True)
class StaffStatus:
    """One employee's duty for the target day."""

    employee: Employee
    shift: str
    status: str

    @property
    def name(self) -> str:
        return self.employee.name

    @property
    def role(self) -> str:
        return self.employee.role

    @property
    def department(self) -> str:
        return self.employee.department

    @property
    def id(self) -> str:
        return self.employee.id or "N/A"


@dataclass
class DutyBuckets:
    working: list[StaffStatus] = field(default_factory=list)
    off: list[StaffStatus] = field(default_factory=list)
    vacation: list[StaffStatus] = field(default_factory=list)
    leave: list[StaffStatus] = field(default_factory=list)

    def add(self, entry: StaffStatus) -> None:
        getattr(self, entry.status).append(entry)

    @property
    def everyone(self) -> list[StaffStatus]:
        return self.working + self.off + self.vacation + self.leave

    def filter_department(self, keyword: str | None) -> DutyBuckets:
        if not keyword:
            return self
        keep = [e for e in self.everyone if matches_department(e.department, keyword)]
        filtered = DutyBuckets()
        for entry in keep:
            filtered.add(entry)
        return filtered


def classify_roster(employees: Iterable[Employee], target: TargetDate) -> DutyBuckets:
    """Bucket every employee by their duty on the target day.

    Nobody is dropped: an employee with no record for the day counts as working.
    """
    buckets = DutyBuckets()
    for emp in employees:
        record = find_record(emp, target)
        shift = record.shift_text if record and record.shift_text else "Working"
        buckets.add(StaffStatus(employee=emp, shift=shift, status=classify_shift(shift)))
    logger.debug(
        "Duty for %s: working=%d off=%d vacation=%d leave=%d",
        target.display, len(buckets.working), len(buckets.off),
        len(buckets.vacation), len(buckets.leave),
    )
    return buckets


# ---------------------------------------------------------------------------
# Departments and people
# ---------------------------------------------------------------------------


def detect_department(query: str) -> str | None:
    q = query.lower()
    for keyword in DEPARTMENT_KEYWORDS:
        if keyword in q:
            return keyword
    return None


def matches_department(department: str | None, keyword: str) -> bool:
    dept = (department or "").lower()
    canonical = DEPARTMENT_ALIASES.get(keyword, keyword)
    return keyword in dept or canonical in dept


def clean_query(query: str) -> str:
    """The question minus stop words and intent keywords, e.g. "where is maria" -> "maria"."""
    words = [w for w in _WORD_RE.findall(query.lower()) if w not in STOP_WORDS]
    return " ".join(words)


def search_people(cleaned: str, staff: Iterable[StaffStatus]) -> list[StaffStatus]:
    """Staff whose name contains the cleaned text, or whose first name appears in it."""
    if len(cleaned) <= 2:
        return []
    found = []
    for entry in staff:
        name = entry.name.lower()
        first = name.split(" ")[0] if name else ""
        if cleaned in name:
            found.append(entry)
        elif len(first) >= 3 and re.search(rf"\b{re.escape(first)}\b", cleaned):
            found.append(entry)
    return found


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def greeting(hour: int) -> str:
    if hour < 12:
        return "Good morning"
    if hour < 17:
        return "Good afternoon"
    return "Good evening"


def _dept_label(keyword: str | None) -> str:
    return f" in {keyword.title()}" if keyword else ""


def _when(target: TargetDate) -> str:
    return "today" if target.label == "today" else f"on {target.display}"


def _plural(n: int, word: str = "team member") -> str:
    return f"{n} {word}{'' if n == 1 else 's'}"


def _numbered(entries: list[StaffStatus], limit: int | None = None, indent: str = "", shift: bool = False) -> list[str]:
    shown = entries if limit is None else entries[:limit]
    lines = []
    for i, e in enumerate(shown, 1):
        suffix = f" ({e.shift})" if shift else ""
        lines.append(f"{indent}{i}. {e.name} - {e.role}{suffix}")
    if limit is not None and len(entries) > limit:
        lines.append(f"{indent}... and {len(entries) - limit} more")
    return lines


def _status_phrase(entry: StaffStatus, target: TargetDate) -> str:
    when = _when(target)
    if entry.status == STATUS_OFF:
        return f"is enjoying their day off {when} 🏖️"
    if entry.status == STATUS_VACATION:
        return f"is on vacation {when} ✈️"
    if entry.status == STATUS_LEAVE:
        return f"is on leave {when} 📝"
    return f"is working {when} ({entry.shift}) 💪"


def _status_tag(entry: StaffStatus) -> str:
    return {
        STATUS_OFF: "🏖️ Off",
        STATUS_VACATION: "✈️ Vacation",
        STATUS_LEAVE: "📝 Leave",
    }.get(entry.status, f"💪 {entry.shift}")


def _render_person(entry: StaffStatus, target: TargetDate) -> list[str]:
    return [
        f"I found {entry.name} for you!",
        "",
        f"👤 {entry.name} {_status_phrase(entry, target)}",
        f"   📋 Role: {entry.role}",
        f"   🏢 Department: {entry.department}",
        f"   🆔 Employee ID: {entry.id}",
        "",
        "Is there anything else you'd like to know about the team?",
    ]


def _render_people(found: list[StaffStatus]) -> list[str]:
    lines = [f"I found {len(found)} people matching your search:", ""]
    lines += [f"• {e.name} - {e.role} ({_status_tag(e)})" for e in found]
    return lines


def _render_working(b: DutyBuckets, target: TargetDate, dept: str | None, limit: int) -> list[str]:
    label = _dept_label(dept)
    lines = [
        f"Here's who's working{label} {_when(target)}:",
        "",
        f"We have {_plural(len(b.working))} working{label}:",
        "",
    ]
    lines += _numbered(b.working, limit, shift=True)
    lines += [
        "",
        f"📊 Quick Summary: {len(b.working)} working, {len(b.off)} off, "
        f"{len(b.vacation) + len(b.leave)} on leave",
        "",
        "Need details on anyone specific?",
    ]
    return lines


def _render_off(b: DutyBuckets, target: TargetDate, dept: str | None, limit: int) -> list[str]:
    label = _dept_label(dept)
    if not b.off:
        return [f"Everyone{label} is scheduled to work {_when(target)}! No one has a day off on {target.display}. 💪"]
    lines = [f"Here's who has their day off{label} {_when(target)}:", ""]
    lines += _numbered(b.off, limit)
    lines += [
        "",
        f"🏖️ {_plural(len(b.off))} enjoying their rest day!",
        "",
        "Would you like me to show who's working instead?",
    ]
    return lines


def _render_absent(b: DutyBuckets, target: TargetDate, dept: str | None, limit: int) -> list[str]:
    label = _dept_label(dept)
    lines = [f"Here's the leave status{label} for {target.label} ({target.display}):", ""]
    if b.vacation:
        lines.append(f"✈️ On Vacation ({len(b.vacation)}):")
        lines += _numbered(b.vacation, limit, indent="   ")
        lines.append("")
    else:
        lines += [f"✈️ No one is on vacation{label} {_when(target)}.", ""]
    if b.leave:
        lines.append(f"📝 On Leave ({len(b.leave)}):")
        lines += _numbered(b.leave, limit, indent="   ")
    else:
        lines.append(f"📝 No one is on leave{label} {_when(target)}.")
    absent = len(b.vacation) + len(b.leave)
    lines += ["", f"Total absent{label}: {_plural(absent)}"]
    return lines


def _render_roster(b: DutyBuckets, target: TargetDate, dept: str | None) -> list[str]:
    label = _dept_label(dept)
    lines = [
        f"Here's your complete team roster{label} for {target.display}:",
        "",
        f"👥 Total Team: {len(b.everyone)} members",
    ]
    sections = (
        ("💪 Working", b.working),
        ("🏖️ Day Off", b.off),
        ("✈️ Vacation", b.vacation),
        ("📝 Leave", b.leave),
    )
    for title, entries in sections:
        if not entries:
            continue
        lines += ["", f"{title} ({len(entries)}):"]
        lines += _numbered(entries, LIST_DISPLAY_LIMIT, indent="   ")
    lines += ["", "Let me know if you need details on anyone!"]
    return lines


def _render_find(query: str, staff: list[StaffStatus], target: TargetDate) -> list[str]:
    term = " ".join(w for w in _WORD_RE.findall(query.lower()) if w not in _FIND_STRIP)
    found = [e for e in staff if term and term in e.name.lower()]
    if not found:
        return [
            f'Hmm, I couldn\'t find anyone matching "{term}". 🤔',
            "",
            "Would you like me to show you the full staff list instead?",
        ]
    matches = "match" if len(found) == 1 else "matches"
    lines = [f'I found {len(found)} {matches} for "{term}":', ""]
    for e in found:
        lines += [
            f"👤 {e.name}",
            f"   Role: {e.role} | Dept: {e.department}",
            f"   {target.label.capitalize()}: {_status_tag(e)}",
            f"   ID: {e.id}",
            "",
        ]
    return lines


def _render_summary(b: DutyBuckets, target: TargetDate, dept: str | None) -> list[str]:
    return [
        f"Here's the kitchen status{_dept_label(dept)} for {target.display}:",
        "",
        "📊 Team Summary:",
        f"   • 👥 Total Staff: {len(b.everyone)}",
        f"   • 💪 Working: {len(b.working)}",
        f"   • 🏖️ Day Off: {len(b.off)}",
        f"   • ✈️ Vacation: {len(b.vacation)}",
        f"   • 📝 Leave: {len(b.leave)}",
        "",
        "What would you like to know? Try asking:",
        '• "Who is working today?"',
        '• "Who is off tomorrow?"',
        '• "Who is on vacation?"',
        '• "Find [name]"',
    ]


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def detect_intent(query: str) -> str:
    q = query.lower()
    for name, predicate in INTENT_RULES:
        if predicate(q):
            return name
    return "summary"


def _respond(
    query: str,
    employees: list[Employee],
    session: ConversationSession,
    now: datetime,
    display_limit: int,
) -> str:
    hello = f"{greeting(now.hour)}, Chef! 👋"
    if not employees:
        return f"{hello}\n\n{NO_DATA_MESSAGE}"

    q = query.lower()
    target = resolve_target_date(q, now.date())
    everyone = classify_roster(employees, target)
    dept = detect_department(q)
    buckets = everyone.filter_department(dept)

    # A named person beats every intent, and ignores the department filter
    found = search_people(clean_query(q), everyone.everyone)
    if len(found) == 1:
        lines = _render_person(found[0], target)
    elif found:
        lines = _render_people(found)
    else:
        intent = detect_intent(q)
        logger.info("Query intent=%s date=%s department=%s", intent, target.label, dept)
        if intent == "working":
            lines = _render_working(buckets, target, dept, display_limit)
            session.set_context(dept, target.label, "working", query)
        elif intent == "off":
            lines = _render_off(buckets, target, dept, display_limit)
            session.set_context(dept, target.label, "off", query)
        elif intent == "absent":
            lines = _render_absent(buckets, target, dept, display_limit)
            query_type = "vacation" if "vacation" in q else "leave"
            session.set_context(dept, target.label, query_type, query)
        elif intent == "roster":
            lines = _render_roster(buckets, target, dept)
        elif intent == "find":
            lines = _render_find(q, everyone.everyone, target)
        else:
            lines = _render_summary(buckets, target, dept)

    return "\n".join([hello, "", *lines]).rstrip() + "\n"


def answer(
    query: str,
    employees: list[Employee],
    session: ConversationSession | None = None,
    now: datetime | None = None,
    display_limit: int = DEFAULT_DISPLAY_LIMIT,
) -> tuple[str, ConversationSession]:
    """Answer a duty question about the roster.

    Returns the reply and the updated session. The session passed in is not
    modified; callers keep the returned copy for the next question.
    """
    updated = session.copy() if session is not None else ConversationSession()
    now = now or datetime.now()

    try:
        resolved = query
        if updated.is_follow_up(query):
            resolved = updated.expand(query)
            if resolved != query:
                logger.info("Follow-up %r expanded to %r", query, resolved)
        updated.add_turn("user", query, now.timestamp())
        text = _respond(resolved, employees, updated, now, display_limit)
    except Exception as e:
        logger.exception("Failed to answer %r: %s", query, e)
        return ERROR_MESSAGE, updated

    updated.add_turn("assistant", text, now.timestamp())
    return text, updated
