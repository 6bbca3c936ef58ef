from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Optional


@dataclass
class SyncStateRow:
    generated_at: Optional[str] = None
    remote_baseline: Optional[str] = None
    auto_sync: bool = False
    last_status: Optional[str] = None


class StateRepo:
    """The singleton sync_state row (id=1)."""

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def get(self) -> SyncStateRow:
        row = self.conn.execute(
            "SELECT generated_at, remote_baseline, auto_sync, last_status FROM sync_state WHERE id=1"
        ).fetchone()
        if row is None:
            return SyncStateRow()
        return SyncStateRow(
            generated_at=row["generated_at"],
            remote_baseline=row["remote_baseline"],
            auto_sync=bool(row["auto_sync"]),
            last_status=row["last_status"],
        )

    def set_generated_at(self, value: str) -> None:
        self._set("generated_at", value)

    def set_remote_baseline(self, value: Optional[str]) -> None:
        self._set("remote_baseline", value)

    def set_auto_sync(self, enabled: bool) -> None:
        self._set("auto_sync", 1 if enabled else 0)

    def set_last_status(self, text: Optional[str]) -> None:
        self._set("last_status", text)

    def _set(self, column: str, value) -> None:
        # column names come from the fixed setters above
        self.conn.execute("INSERT OR IGNORE INTO sync_state(id) VALUES (1)")
        self.conn.execute(f"UPDATE sync_state SET {column}=? WHERE id=1", (value,))
        self.conn.commit()
