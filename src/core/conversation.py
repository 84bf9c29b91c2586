"""
Kitchen Roster Assistant - Conversation context.

Short-term dialogue memory for one chat: the last few turns plus the
department/date/intent of the last substantive question, so that a short
follow-up ("tomorrow?", "what about bakery") can be rewritten into a fully
specified question.

A ConversationSession is a plain value owned by the caller (one per chat).
It is never persisted; a bot restart starts every chat fresh.
"""

from __future__ import annotations

import logging
import re
import time
from collections import deque
from dataclasses import dataclass, field, replace

from src.data.models import Turn

logger = logging.getLogger(__name__)

DEFAULT_MAX_TURNS = 20

DEPARTMENT_TERMS: tuple[str, ...] = (
    "hot kitchen", "cold kitchen", "bakery", "pastry", "butchery", "stewarding",
)
DAY_TERMS: tuple[str, ...] = (
    "today", "tomorrow", "yesterday", "next week",
    "sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday",
)

_DEPT = "|".join(DEPARTMENT_TERMS)
_DAY = "|".join(DAY_TERMS)

FOLLOW_UP_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^(what about|how about|and|also|else|more|other|another)\b"),
    re.compile(r"^(who else|anyone else|somebody else)\b"),
    re.compile(r"^(show me more|tell me more|give me more)\b"),
    re.compile(r"^(yes|yeah|yep|ok|okay|sure|please)\b"),
    re.compile(r"^(no|nope|not that)\b"),
    re.compile(r"^(same|similar|like that)\b"),
    re.compile(rf"^(in|for) ({_DEPT})\b"),
    re.compile(rf"^(last )?({_DAY})\s*\??$"),
    re.compile(rf"^({_DEPT})\s*\?$"),
)

_DEPT_RE = re.compile(rf"\b({_DEPT})\b")
_DAY_RE = re.compile(rf"\b(?:(last) )?({_DAY})\b")
_REPLAY_RE = re.compile(r"\b(who else|anyone else|somebody else|more people)\b")

# Words that may surround a department/date slot without changing the question
_FILLER_WORDS = frozenset({
    "what", "about", "how", "and", "also", "in", "for", "the", "on", "then",
    "is", "it", "ok", "okay", "so", "yes", "yeah", "please", "same", "there",
    "what's", "whats", "else", "more", "other", "another", "sure",
})

INTENT_PHRASES: dict[str, str] = {
    "working": "who is working",
    "off": "who is off",
    "leave": "who is on leave",
    "vacation": "who is on vacation",
}


@dataclass(frozen=True)
class LastContext:
    """Slots of the most recent substantive question."""

    department: str | None = None
    date_label: str | None = None
    query_type: str | None = None
    last_query: str | None = None


def is_follow_up(query: str) -> bool:
    """True when a question looks like it refines the previous one.

    Matches short questions (3 words or fewer), a leading discourse marker
    ("what about", "and", "yes"...), a bare day, or a bare department with "?".
    """
    q = " ".join(query.lower().split())
    if not q:
        return False
    if len(q.split(" ")) <= 3:
        return True
    return any(pattern.search(q) for pattern in FOLLOW_UP_PATTERNS)


def build_query(query_type: str, date_label: str | None, department: str | None) -> str:
    """Render a fully specified question from intent, date and department slots."""
    text = INTENT_PHRASES.get(query_type, INTENT_PHRASES["working"])
    if date_label and date_label != "today":
        text += f" {date_label}"
    if department:
        text += f" in {department}"
    return text


@dataclass
class ConversationSession:
    """Dialogue state for one chat: bounded history plus the last query's slots."""

    max_turns: int = DEFAULT_MAX_TURNS
    history: deque[Turn] = field(default_factory=deque)
    last_context: LastContext = field(default_factory=LastContext)

    def __post_init__(self) -> None:
        self.history = deque(self.history, maxlen=self.max_turns)

    # -- history -----------------------------------------------------------

    def push(self, turn: Turn) -> None:
        """Append a turn; the oldest turn is evicted once the limit is reached."""
        self.history.append(turn)

    def add_turn(self, role: str, content: str, timestamp: float | None = None) -> None:
        self.push(Turn(role=role, content=content, timestamp=timestamp or time.time()))

    # -- context -----------------------------------------------------------

    def set_context(
        self,
        department: str | None = None,
        date_label: str | None = None,
        query_type: str | None = None,
        last_query: str | None = None,
    ) -> None:
        """Replace the last context with the given slots (no merging)."""
        self.last_context = LastContext(
            department=department,
            date_label=date_label,
            query_type=query_type,
            last_query=last_query,
        )
        logger.debug("Conversation context set: %s", self.last_context)

    def get_context(self) -> LastContext:
        return self.last_context

    def reset(self) -> None:
        """Forget history and context."""
        self.history.clear()
        self.last_context = LastContext()

    def copy(self) -> ConversationSession:
        return replace(self, history=deque(self.history, maxlen=self.max_turns))

    # -- follow-ups ----------------------------------------------------------

    def is_follow_up(self, query: str) -> bool:
        return is_follow_up(query)

    def expand(self, query: str) -> str:
        """Rewrite a follow-up into a full question using the last intent.

        Only the department and date slots of the previous question change.
        Without a previous intent, or when the follow-up carries more than a
        new slot, the query is returned unchanged.
        """
        ctx = self.last_context
        if ctx.query_type is None:
            return query

        q = " ".join(query.lower().split())
        if _REPLAY_RE.search(q):
            return ctx.last_query or query

        dept_match = _DEPT_RE.search(q)
        day_match = _DAY_RE.search(q)
        if dept_match is None and day_match is None:
            return query

        leftover = _DAY_RE.sub(" ", _DEPT_RE.sub(" ", q))
        words = [w for w in re.findall(r"[a-z']+", leftover) if w not in _FILLER_WORDS]
        if words:
            return query

        department = dept_match.group(1) if dept_match else ctx.department
        if day_match:
            date_label = " ".join(p for p in day_match.groups() if p)
        else:
            date_label = ctx.date_label

        expanded = build_query(ctx.query_type, date_label, department)
        logger.debug("Expanded follow-up %r -> %r", query, expanded)
        return expanded
