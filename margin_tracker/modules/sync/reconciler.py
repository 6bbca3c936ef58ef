"""
modules/sync/reconciler.py

Purpose
-------
Decide, for a whole snapshot at a time, whether to adopt the remote copy,
publish the local one, or stop and ask the user.

States
------
- synced:   auto-push allowed; `baseline` is the remote updated_at we last saw/wrote.
- conflict: the remote moved since `baseline` while we also have local data;
            pushes are skipped until resolve() is called.
- disabled: nothing happens until enable().

Store calls are synchronous; AutoSyncService runs them off the UI thread.
Failures never change state or baseline: they come back as an outcome with
action "error" and a status text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ...constants import SYNC_STATE_CONFLICT, SYNC_STATE_DISABLED, SYNC_STATE_SYNCED
from ...models import BackupPayload
from ...utils.helpers import parse_iso_timestamp
from ...utils.loggers import get_event_logger, log_event
from ..backup_restore.snapshot import BackupFormatError, parse_backup_payload, payload_fingerprint
from ..sales.calculations import round2
from ..sales.orders import group_by_order
from .remote_store import RemoteRecord, RemoteStore, RemoteStoreError

_log = logging.getLogger(__name__)

KEEP_LOCAL = "keep_local"
KEEP_REMOTE = "keep_remote"

ACTION_PUSHED = "pushed"
ACTION_ADOPTED = "adopted"
ACTION_NOOP = "noop"
ACTION_CONFLICT = "conflict"
ACTION_SKIPPED = "skipped"
ACTION_ERROR = "error"


@dataclass(frozen=True)
class SnapshotSummary:
    generated_at: str
    orders: int
    lines: int
    revenue: float
    net_margin: float

    @classmethod
    def of(cls, payload: BackupPayload) -> "SnapshotSummary":
        return cls(
            generated_at=payload.generated_at,
            orders=len(group_by_order(payload.sales)),
            lines=len(payload.sales),
            revenue=round2(sum(s.transaction_value for s in payload.sales)),
            net_margin=round2(sum(s.net_margin for s in payload.sales)),
        )


@dataclass(frozen=True)
class ConflictSummary:
    local: SnapshotSummary
    remote: SnapshotSummary
    remote_updated_at: str
    baseline: Optional[str]


@dataclass(frozen=True)
class SyncOutcome:
    action: str
    state: str
    status: str
    baseline: Optional[str] = None
    snapshot: Optional[BackupPayload] = None  # set when action == "adopted"
    conflict: Optional[ConflictSummary] = None


def _newer(a: Optional[str], b: Optional[str]) -> bool:
    """True when timestamp a is strictly later than b (unparsable counts as oldest)."""
    da, db = parse_iso_timestamp(a), parse_iso_timestamp(b)
    if da is None:
        return False
    if db is None:
        return True
    return da > db


def _same_instant(a: Optional[str], b: Optional[str]) -> bool:
    da, db = parse_iso_timestamp(a), parse_iso_timestamp(b)
    if da is None or db is None:
        return a == b
    return da == db


class SyncReconciler:
    def __init__(
        self,
        store: RemoteStore,
        *,
        baseline: Optional[str] = None,
        state: str = SYNC_STATE_DISABLED,
        event_logger: Optional[logging.Logger] = None,
    ) -> None:
        self.store = store
        self.baseline = baseline
        self.state = state
        self.conflict: Optional[ConflictSummary] = None
        self._events = event_logger or get_event_logger()

    # ---- public operations ----

    def enable(self, local: BackupPayload) -> SyncOutcome:
        """Turn auto-sync on and reconcile right away."""
        self.state = SYNC_STATE_SYNCED
        self.conflict = None
        return self.reconcile(local)

    def disable(self) -> SyncOutcome:
        self.state = SYNC_STATE_DISABLED
        self.conflict = None
        self._event("disable", "Auto-sync disabled.")
        return self._outcome(ACTION_NOOP, "Auto-sync disabled.")

    def reconcile(self, local: BackupPayload) -> SyncOutcome:
        """Full comparison against the remote row; see module docstring for the rules."""
        if self.state == SYNC_STATE_DISABLED:
            return self._outcome(ACTION_SKIPPED, "Auto-sync is disabled.")
        try:
            record = self.store.read()
            if record is None:
                return self._publish(local, "No remote snapshot yet; local data published.")

            remote = parse_backup_payload(record.payload)

            if _newer(remote.generated_at, local.generated_at):
                return self._adopt(remote, record, "Remote snapshot is newer; adopted.")

            if payload_fingerprint(remote) == payload_fingerprint(local):
                self.baseline = record.updated_at
                self.state = SYNC_STATE_SYNCED
                self.conflict = None
                return self._outcome(ACTION_NOOP, "Already in sync.")

            if self.baseline is None or _same_instant(self.baseline, record.updated_at):
                return self._publish(local, "Local changes published.")

            return self._raise_conflict(local, remote, record)
        except (RemoteStoreError, BackupFormatError, OSError) as e:
            return self._error("reconcile", e)

    def push(self, local: BackupPayload) -> SyncOutcome:
        """
        Debounced steady-state push: publish only if nobody wrote since our baseline.

        The timestamp check and the write are two store calls, so a peer writing
        in between is overwritten. Only whole snapshots are compared; there is no
        compare-and-swap on the remote row.
        """
        if self.state != SYNC_STATE_SYNCED:
            return self._outcome(ACTION_SKIPPED, f"Push skipped ({self.state}).")
        try:
            remote_ts = self.store.read_timestamp()
            if remote_ts is None or self.baseline is None or _same_instant(remote_ts, self.baseline):
                return self._publish(local, "Local changes published.")

            record = self.store.read()
            if record is None:
                return self._publish(local, "Local changes published.")
            remote = parse_backup_payload(record.payload)
            return self._raise_conflict(local, remote, record)
        except (RemoteStoreError, BackupFormatError, OSError) as e:
            return self._error("push", e)

    def resolve(self, choice: str, local: BackupPayload) -> SyncOutcome:
        """Manual tie-break: keep_local overwrites remote, keep_remote overwrites local."""
        if choice not in (KEEP_LOCAL, KEEP_REMOTE):
            raise ValueError(f"Unknown conflict choice: {choice!r}")
        try:
            if choice == KEEP_LOCAL:
                outcome = self._publish(local, "Conflict resolved: local data kept and published.")
            else:
                record = self.store.read()
                if record is None:
                    outcome = self._publish(local, "Remote snapshot is gone; local data published.")
                else:
                    remote = parse_backup_payload(record.payload)
                    outcome = self._adopt(remote, record, "Conflict resolved: remote data adopted.")
        except (RemoteStoreError, BackupFormatError, OSError) as e:
            return self._error("resolve", e)
        self._event("resolve", outcome.status, {"choice": choice})
        return outcome

    # ---- transitions ----

    def _publish(self, local: BackupPayload, status: str) -> SyncOutcome:
        updated_at = self.store.write(local.to_dict())
        self.baseline = updated_at
        self.state = SYNC_STATE_SYNCED
        self.conflict = None
        self._event("push", status, {"updated_at": updated_at, "lines": len(local.sales)})
        return self._outcome(ACTION_PUSHED, status)

    def _adopt(self, remote: BackupPayload, record: RemoteRecord, status: str) -> SyncOutcome:
        self.baseline = record.updated_at
        self.state = SYNC_STATE_SYNCED
        self.conflict = None
        self._event("pull", status, {"updated_at": record.updated_at, "lines": len(remote.sales)})
        return self._outcome(ACTION_ADOPTED, status, snapshot=remote)

    def _raise_conflict(self, local: BackupPayload, remote: BackupPayload, record: RemoteRecord) -> SyncOutcome:
        self.state = SYNC_STATE_CONFLICT
        self.conflict = ConflictSummary(
            local=SnapshotSummary.of(local),
            remote=SnapshotSummary.of(remote),
            remote_updated_at=record.updated_at,
            baseline=self.baseline,
        )
        status = "Remote data changed on another device; choose which version to keep."
        self._event(
            "conflict",
            status,
            {"baseline": self.baseline, "remote_updated_at": record.updated_at},
            level=logging.WARNING,
        )
        return self._outcome(ACTION_CONFLICT, status, conflict=self.conflict)

    def _error(self, phase: str, exc: Exception) -> SyncOutcome:
        status = f"Sync error: {exc}"
        _log.warning("sync %s failed: %s", phase, exc)
        self._event(phase, status, {"error": exc.__class__.__name__}, level=logging.ERROR)
        return self._outcome(ACTION_ERROR, status)

    # ---- helpers ----

    def _outcome(self, action: str, status: str, **kwargs) -> SyncOutcome:
        return SyncOutcome(action=action, state=self.state, status=status, baseline=self.baseline, **kwargs)

    def _event(self, phase: str, message: str, extra: Optional[dict] = None, level: int = logging.INFO) -> None:
        log_event(self._events, "sync", phase, message, extra, level=level)
