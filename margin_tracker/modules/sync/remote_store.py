"""
modules/sync/remote_store.py

Purpose
-------
Where the shared snapshot lives. One row per store id, no history:
    read()  -> RemoteRecord | None      (payload + server-side updated_at)
    write(payload) -> updated_at        (upsert, returns the new server timestamp)
    read_timestamp() -> str | None      (cheap check used before each push)

Implementations
---------------
- HttpRemoteStore: PostgREST table (Supabase style) over requests.
- SqliteRemoteStore: a SQLite file shared between machines (network drive,
  synced folder). Also what the tests run against.

Every failure is raised as RemoteStoreError so callers handle one type.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional, Protocol

import requests

from ...constants import DEFAULT_REMOTE_TABLE, DEFAULT_STORE_ID, HTTP_TIMEOUT_SECONDS
from ...utils.helpers import now_iso, parse_iso_timestamp
from ...utils.http import build_session, describe_http_error
from ..backup_restore.snapshot import is_backup_payload

_log = logging.getLogger(__name__)


class RemoteStoreError(Exception):
    """Remote unreachable, refused the request, or returned something unusable."""


@dataclass(frozen=True)
class RemoteRecord:
    payload: dict
    updated_at: str


class RemoteStore(Protocol):
    def read(self) -> Optional[RemoteRecord]: ...
    def read_timestamp(self) -> Optional[str]: ...
    def write(self, payload: dict) -> str: ...


def _checked_record(payload: Any, updated_at: Any) -> RemoteRecord:
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            raise RemoteStoreError(f"Remote payload is not valid JSON: {e}") from e
    if not is_backup_payload(payload):
        raise RemoteStoreError("Remote payload is not a backup snapshot.")
    if not isinstance(updated_at, str) or parse_iso_timestamp(updated_at) is None:
        raise RemoteStoreError(f"Remote row has no usable updated_at: {updated_at!r}")
    return RemoteRecord(payload=dict(payload), updated_at=updated_at)


# ----------------------------
# PostgREST
# ----------------------------

class HttpRemoteStore:
    """
    Snapshot row in a PostgREST table:
        <table>(id text primary key, payload jsonb, updated_at timestamptz)
    The server stamps updated_at on every write.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        table: str = DEFAULT_REMOTE_TABLE,
        store_id: str = DEFAULT_STORE_ID,
        session: Optional[requests.Session] = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.table = table
        self.store_id = store_id
        self.timeout = timeout
        self._session = session or build_session(
            {
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "x-store-id": store_id,
            }
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/rest/v1/{self.table}"

    def _get_rows(self, select: str) -> list:
        try:
            resp = self._session.get(
                self.endpoint,
                params={"id": f"eq.{self.store_id}", "select": select},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            rows = resp.json()
        except requests.RequestException as e:
            raise RemoteStoreError(f"Remote read failed ({describe_http_error(e)})") from e
        except ValueError as e:
            raise RemoteStoreError(f"Remote read returned invalid JSON: {e}") from e
        if not isinstance(rows, list):
            raise RemoteStoreError("Remote read returned an unexpected shape.")
        return rows

    def read(self) -> Optional[RemoteRecord]:
        rows = self._get_rows("payload,updated_at")
        if not rows:
            return None
        row = rows[0] if isinstance(rows[0], dict) else {}
        return _checked_record(row.get("payload"), row.get("updated_at"))

    def read_timestamp(self) -> Optional[str]:
        rows = self._get_rows("updated_at")
        if not rows:
            return None
        updated_at = rows[0].get("updated_at") if isinstance(rows[0], dict) else None
        if not isinstance(updated_at, str):
            raise RemoteStoreError("Remote row has no updated_at.")
        return updated_at

    def write(self, payload: dict) -> str:
        try:
            resp = self._session.post(
                self.endpoint,
                params={"on_conflict": "id"},
                json=[{"id": self.store_id, "payload": payload}],
                headers={
                    "Content-Type": "application/json",
                    "Prefer": "resolution=merge-duplicates,return=representation",
                },
                timeout=self.timeout,
            )
            resp.raise_for_status()
            rows = resp.json()
        except requests.RequestException as e:
            raise RemoteStoreError(f"Remote write failed ({describe_http_error(e)})") from e
        except ValueError as e:
            raise RemoteStoreError(f"Remote write returned invalid JSON: {e}") from e
        if not rows or not isinstance(rows, list) or not isinstance(rows[0], dict):
            raise RemoteStoreError("Remote write returned no row.")
        updated_at = rows[0].get("updated_at")
        if not isinstance(updated_at, str):
            raise RemoteStoreError("Remote write returned no updated_at.")
        _log.info("Pushed snapshot for store %s (updated_at=%s)", self.store_id, updated_at)
        return updated_at


# ----------------------------
# Shared SQLite file
# ----------------------------

_SHARED_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS {DEFAULT_REMOTE_TABLE} (
    id         TEXT PRIMARY KEY,
    payload    TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


class SqliteRemoteStore:
    """
    Snapshot rows in a SQLite file other machines can open too.

    Connections are opened per call so the store can be used from worker
    threads. updated_at strictly increases per row, even for writes landing in
    the same millisecond.
    """

    def __init__(self, path: str | Path, *, store_id: str = DEFAULT_STORE_ID) -> None:
        self.path = Path(path)
        self.store_id = store_id

    def _connect(self) -> sqlite3.Connection:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            con = sqlite3.connect(str(self.path), timeout=10)
            con.row_factory = sqlite3.Row
            con.executescript(_SHARED_SCHEMA)
        except (OSError, sqlite3.Error) as e:
            raise RemoteStoreError(f"Cannot open shared store {self.path}: {e}") from e
        return con

    def read(self) -> Optional[RemoteRecord]:
        con = self._connect()
        try:
            row = con.execute(
                f"SELECT payload, updated_at FROM {DEFAULT_REMOTE_TABLE} WHERE id=?;", (self.store_id,)
            ).fetchone()
        except sqlite3.Error as e:
            raise RemoteStoreError(f"Shared store read failed: {e}") from e
        finally:
            con.close()
        if row is None:
            return None
        return _checked_record(row["payload"], row["updated_at"])

    def read_timestamp(self) -> Optional[str]:
        con = self._connect()
        try:
            row = con.execute(
                f"SELECT updated_at FROM {DEFAULT_REMOTE_TABLE} WHERE id=?;", (self.store_id,)
            ).fetchone()
        except sqlite3.Error as e:
            raise RemoteStoreError(f"Shared store read failed: {e}") from e
        finally:
            con.close()
        return None if row is None else row["updated_at"]

    def write(self, payload: dict) -> str:
        con = self._connect()
        try:
            with con:
                con.execute("BEGIN IMMEDIATE;")
                prev = con.execute(
                    f"SELECT updated_at FROM {DEFAULT_REMOTE_TABLE} WHERE id=?;", (self.store_id,)
                ).fetchone()
                stamp = self._next_stamp(prev["updated_at"] if prev else None)
                con.execute(
                    f"""
                    INSERT INTO {DEFAULT_REMOTE_TABLE}(id, payload, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET payload=excluded.payload, updated_at=excluded.updated_at;
                    """,
                    (self.store_id, json.dumps(payload, ensure_ascii=False), stamp),
                )
        except sqlite3.Error as e:
            raise RemoteStoreError(f"Shared store write failed: {e}") from e
        finally:
            con.close()
        return stamp

    @staticmethod
    def _next_stamp(previous: Optional[str]) -> str:
        stamp = now_iso()
        prev_dt = parse_iso_timestamp(previous)
        now_dt = parse_iso_timestamp(stamp)
        if prev_dt is not None and now_dt is not None and now_dt <= prev_dt:
            bumped = prev_dt + timedelta(milliseconds=1)
            stamp = bumped.replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"
        return stamp
