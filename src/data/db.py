"""
Kitchen Roster Assistant - Roster Database.

The Memory pillar: parsed roster snapshots persist in SQLite across bot
restarts. Snapshots are added exclusively by uploading a roster file.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from src.data.models import RosterSnapshot
from src.ports.roster_store_port import RosterStoreError

logger = logging.getLogger(__name__)


class RosterDB:
    """SQLite-backed storage for roster snapshots (one row per upload)."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from src.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Create the roster_snapshots table if it doesn't exist."""
        try:
            with self._connect() as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS roster_snapshots (
                        id          INTEGER PRIMARY KEY AUTOINCREMENT,
                        filename    TEXT    NOT NULL DEFAULT '',
                        month       TEXT,
                        payload     TEXT    NOT NULL,
                        created_at  TEXT    NOT NULL
                    )
                """)
        except sqlite3.Error as e:
            raise RosterStoreError(f"Could not open roster database {self._db_path}: {e}") from e
        logger.debug("Roster table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_snapshot(row: sqlite3.Row) -> RosterSnapshot:
        try:
            payload = json.loads(row["payload"])
        except (TypeError, json.JSONDecodeError) as e:
            raise RosterStoreError(f"Snapshot {row['id']} has a corrupt payload: {e}") from e
        snapshot = RosterSnapshot.from_payload(
            payload,
            id=row["id"],
            filename=row["filename"],
            created_at=row["created_at"],
        )
        if snapshot.month is None:
            snapshot.month = row["month"]
        return snapshot

    @staticmethod
    def _insert(conn: sqlite3.Connection, snapshot: RosterSnapshot, filename: str, created_at: str) -> int:
        payload = json.dumps(snapshot.to_payload(), ensure_ascii=False, default=str)
        cursor = conn.execute(
            """
            INSERT INTO roster_snapshots (filename, month, payload, created_at)
            VALUES (?, ?, ?, ?)
            """,
            (filename, snapshot.month, payload, created_at),
        )
        return cursor.lastrowid

    @staticmethod
    def _stamp(snapshot: RosterSnapshot, snapshot_id: int, filename: str, created_at: str) -> None:
        snapshot.id = snapshot_id
        snapshot.filename = filename
        snapshot.created_at = created_at
        logger.info(
            "Saved roster snapshot %d (%s, month=%s, %d staff)",
            snapshot_id, filename or "unnamed", snapshot.month, len(snapshot.staff),
        )

    def save_snapshot(self, snapshot: RosterSnapshot, filename: str = "") -> int:
        """Store a snapshot and return its new id."""
        filename = filename or snapshot.filename
        created_at = datetime.now().isoformat(timespec="seconds")
        try:
            with self._connect() as conn:
                snapshot_id = self._insert(conn, snapshot, filename, created_at)
        except (sqlite3.Error, TypeError, ValueError) as e:
            raise RosterStoreError(f"Could not save roster snapshot: {e}") from e

        self._stamp(snapshot, snapshot_id, filename, created_at)
        return snapshot_id

    def replace_snapshots(self, snapshot: RosterSnapshot, replace_ids: list[int], filename: str = "") -> int:
        """Delete ``replace_ids`` and store ``snapshot`` in one transaction.

        Either both happen or neither does: a failed insert leaves the old
        snapshots in place. Returns the new snapshot's id.
        """
        filename = filename or snapshot.filename
        created_at = datetime.now().isoformat(timespec="seconds")
        ids = list(replace_ids)
        try:
            with self._connect() as conn:
                if ids:
                    placeholders = ", ".join("?" for _ in ids)
                    conn.execute(f"DELETE FROM roster_snapshots WHERE id IN ({placeholders})", ids)
                snapshot_id = self._insert(conn, snapshot, filename, created_at)
        except (sqlite3.Error, TypeError, ValueError) as e:
            raise RosterStoreError(f"Could not replace roster snapshots {ids}: {e}") from e

        if ids:
            logger.info("Replaced roster snapshot(s) %s", ids)
        self._stamp(snapshot, snapshot_id, filename, created_at)
        return snapshot_id

    def load_latest(self) -> RosterSnapshot | None:
        """Return the most recently stored snapshot, or None when empty."""
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT * FROM roster_snapshots ORDER BY id DESC LIMIT 1"
                ).fetchone()
        except sqlite3.Error as e:
            raise RosterStoreError(f"Could not load roster snapshot: {e}") from e
        return self._row_to_snapshot(row) if row else None

    def list_snapshots(self) -> list[RosterSnapshot]:
        """All stored snapshots, oldest first."""
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT * FROM roster_snapshots ORDER BY id"
                ).fetchall()
        except sqlite3.Error as e:
            raise RosterStoreError(f"Could not list roster snapshots: {e}") from e
        return [self._row_to_snapshot(r) for r in rows]

    def delete_snapshots(self, ids: list[int]) -> int:
        """Delete snapshots by id. Returns how many rows were removed."""
        if not ids:
            return 0
        placeholders = ", ".join("?" for _ in ids)
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    f"DELETE FROM roster_snapshots WHERE id IN ({placeholders})",
                    list(ids),
                )
                deleted = cursor.rowcount
        except sqlite3.Error as e:
            raise RosterStoreError(f"Could not delete roster snapshots: {e}") from e
        logger.info("Deleted %d roster snapshot(s): %s", deleted, ids)
        return deleted

    def clear(self) -> None:
        """Remove every stored snapshot."""
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM roster_snapshots")
        except sqlite3.Error as e:
            raise RosterStoreError(f"Could not clear roster snapshots: {e}") from e
        logger.info("Cleared all roster snapshots")
