"""Roster store port - abstract interface for persisting roster snapshots.

Core modules depend on this protocol, never on a specific storage backend.
"""

from __future__ import annotations

from typing import Protocol

from src.data.models import RosterSnapshot


class RosterStoreError(Exception):
    """Raised when any roster store operation fails."""


class RosterStorePort(Protocol):
    """Abstract snapshot store used by the upload pipeline and the bot."""

    def save_snapshot(self, snapshot: RosterSnapshot, filename: str = "") -> int: ...

    def load_latest(self) -> RosterSnapshot | None: ...

    def list_snapshots(self) -> list[RosterSnapshot]: ...

    def delete_snapshots(self, ids: list[int]) -> int: ...

    def replace_snapshots(
        self, snapshot: RosterSnapshot, replace_ids: list[int], filename: str = "",
    ) -> int: ...
