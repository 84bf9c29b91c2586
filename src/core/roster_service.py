"""
Kitchen Roster Assistant - Roster Service.

The upload pipeline and the roster loader, shared by every interface:

    grid -> parse -> detect month -> drop older snapshots of that month -> save

A stored roster always represents one month: uploading a roster for a month
that is already stored replaces it instead of merging with it. Persistence is
best-effort: a failed save is logged and the parse result is still returned,
and a failed load reads as "no roster loaded".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from src.core.grid import (
    RawGrid,
    detect_month_from_filename,
    detect_month_from_grid,
    mentions,
    normalize_grid,
)
from src.core.roster_parser import ParseResult, find_header_row, parse
from src.data.models import Employee, RosterSnapshot
from src.ports.roster_store_port import RosterStoreError, RosterStorePort

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    """What happened to one uploaded roster."""

    parse: ParseResult
    month: str | None = None
    replaced: list[int] = field(default_factory=list)   # ids of snapshots removed
    saved: bool = False
    snapshot_id: int | None = None


def detect_month(
    grid: RawGrid, filename: str, today: date | None = None, header_lookahead: int = 10,
) -> str | None:
    """Roster month from the filename first, then from the title rows above the header."""
    month = detect_month_from_filename(filename, today)
    if month:
        return month
    rows = normalize_grid(grid)
    header_index = find_header_row(rows, header_lookahead)
    return detect_month_from_grid(rows, today, max_rows=header_lookahead, header_index=header_index)


def _same_month(snapshot: RosterSnapshot, month: str) -> bool:
    if snapshot.month and snapshot.month.strip().lower() == month.lower():
        return True
    # Older uploads may only carry the month in their filename
    parts = month.lower().split()
    name = snapshot.filename.lower()
    return bool(name) and all(mentions(p, name) for p in parts)


def find_duplicate_snapshots(store: RosterStorePort, month: str) -> list[int]:
    """Ids of stored snapshots that hold a roster for ``month``."""
    return [s.id for s in store.list_snapshots() if s.id is not None and _same_month(s, month)]


def ingest_grid(
    grid: RawGrid,
    filename: str,
    store: RosterStorePort | None,
    today: date | None = None,
    header_lookahead: int = 10,
) -> IngestResult:
    """Parse an uploaded roster and store it, replacing the same month's roster.

    Never raises for store failures; check ``IngestResult.saved``.
    """
    rows = normalize_grid(grid)
    month = detect_month(rows, filename, today, header_lookahead)
    result = parse(rows, month=month, today=today, header_lookahead=header_lookahead)
    ingest = IngestResult(parse=result, month=month)

    if not result.success:
        logger.warning("Roster %s could not be parsed: %s", filename, result.error)
        return ingest
    if store is None:
        return ingest

    snapshot = RosterSnapshot(
        schedules=result.schedules,
        staff=result.staff,
        raw_data=rows,
        month=month,
        filename=filename,
    )
    try:
        duplicates = find_duplicate_snapshots(store, month) if month else []
        if duplicates:
            logger.info("Replacing %d stored roster(s) for %s", len(duplicates), month)
        # Old snapshots go only if the new one is stored
        ingest.snapshot_id = store.replace_snapshots(snapshot, duplicates, filename)
        ingest.saved = True
        ingest.replaced = duplicates
    except RosterStoreError as e:
        logger.error("Failed to store roster %s: %s", filename, e)

    return ingest


def load_roster(store: RosterStorePort | None) -> list[Employee]:
    """The staff of the latest stored roster; empty when nothing can be loaded."""
    if store is None:
        return []
    try:
        snapshot = store.load_latest()
    except RosterStoreError as e:
        logger.error("Failed to load roster: %s", e)
        return []
    if snapshot is None:
        return []
    logger.debug("Loaded roster %s (%d staff)", snapshot.id, len(snapshot.staff))
    return snapshot.staff
