"""
modules/sync/service.py

Purpose
-------
Run the SyncReconciler off the UI thread and debounce pushes after edits.

- Store calls execute on QThreadPool workers; results come back to the UI
  thread through a queued signal.
- One job at a time. A request arriving while a job runs is remembered
  (latest wins) and started when the job finishes.
- Local edits restart a single-shot timer; the push happens when it fires.
- After teardown() results are dropped. An adopted remote snapshot is also
  dropped if the local data changed while the job was running; the baseline
  goes back to its value before the job and a reconcile is queued, so the newer
  local edits are compared against the remote (and conflict if a peer wrote).
- disable() takes effect at once. A job already running when it is called
  finishes, but its outcome is discarded and the state stays disabled.

Signals
-------
- status_changed(str)
- state_changed(str)
- conflict_detected(ConflictSummary)
- snapshot_adopted(BackupPayload)
"""

from __future__ import annotations

import logging
import traceback
from typing import Callable, Optional

from PySide6.QtCore import QObject, QThreadPool, QTimer, Signal, Slot

from ...constants import SYNC_DEBOUNCE_MS, SYNC_STATE_SYNCED
from ...models import BackupPayload
from ...utils.jobs import JobRunnable
from .reconciler import ACTION_ADOPTED, ACTION_CONFLICT, SyncOutcome, SyncReconciler

_log = logging.getLogger(__name__)

JOB_ENABLE = "enable"
JOB_RECONCILE = "reconcile"
JOB_PUSH = "push"
JOB_RESOLVE = "resolve"


class AutoSyncService(QObject):
    status_changed = Signal(str)
    state_changed = Signal(str)
    conflict_detected = Signal(object)
    snapshot_adopted = Signal(object)

    # worker -> UI thread
    _job_finished = Signal(str, int, object, object)

    def __init__(
        self,
        reconciler: SyncReconciler,
        snapshot_provider: Callable[[], BackupPayload],
        revision_provider: Callable[[], int],
        *,
        debounce_ms: int = SYNC_DEBOUNCE_MS,
        pool: Optional[QThreadPool] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.reconciler = reconciler
        self._snapshot = snapshot_provider
        self._revision = revision_provider
        self._pool = pool or QThreadPool.globalInstance()

        self._busy = False
        self._pending: Optional[tuple[str, Optional[str]]] = None
        self._closed = False
        self._disabled_during_job = False
        self.last_status = ""

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(int(debounce_ms))
        self._timer.timeout.connect(self._on_debounce_elapsed)

        self._job_finished.connect(self._on_job_finished)

    # ---- properties ----

    @property
    def state(self) -> str:
        return self.reconciler.state

    @property
    def busy(self) -> bool:
        return self._busy

    # ---- requests (UI thread) ----

    def enable(self) -> None:
        self._request(JOB_ENABLE)

    def reconcile_now(self) -> None:
        self._request(JOB_RECONCILE)

    def resolve(self, choice: str) -> None:
        self._request(JOB_RESOLVE, choice)

    def disable(self) -> None:
        self._timer.stop()
        self._pending = None
        if self._busy:
            self._disabled_during_job = True
        outcome = self.reconciler.disable()
        self._publish(outcome)

    def schedule_push(self) -> None:
        """Call after every local mutation; pushes once edits pause for the debounce interval."""
        if self._closed or self.reconciler.state != SYNC_STATE_SYNCED:
            return
        self._timer.start()

    def teardown(self) -> None:
        self._closed = True
        self._timer.stop()
        self._pending = None

    # ---- internals ----

    @Slot()
    def _on_debounce_elapsed(self) -> None:
        self._request(JOB_PUSH)

    def _request(self, kind: str, arg: Optional[str] = None) -> None:
        if self._closed:
            return
        if self._busy:
            self._pending = (kind, arg)
            return
        self._start(kind, arg)

    def _start(self, kind: str, arg: Optional[str]) -> None:
        local = self._snapshot()
        revision = self._revision()
        baseline = self.reconciler.baseline
        self._busy = True
        self._disabled_during_job = False

        def work() -> None:
            try:
                outcome = self._run_job(kind, arg, local)
            except Exception as exc:  # keep the worker alive; report to the UI thread
                _log.error("sync job %s crashed:\n%s", kind, traceback.format_exc())
                outcome = SyncOutcome(
                    action="error",
                    state=self.reconciler.state,
                    status=f"Sync error: {exc}",
                    baseline=self.reconciler.baseline,
                )
            self._job_finished.emit(kind, revision, baseline, outcome)

        self._pool.start(JobRunnable(work))

    def _run_job(self, kind: str, arg: Optional[str], local: BackupPayload) -> SyncOutcome:
        if kind == JOB_ENABLE:
            return self.reconciler.enable(local)
        if kind == JOB_RECONCILE:
            return self.reconciler.reconcile(local)
        if kind == JOB_RESOLVE:
            return self.reconciler.resolve(arg or "", local)
        return self.reconciler.push(local)

    @Slot(str, int, object, object)
    def _on_job_finished(self, kind: str, revision: int, baseline: Optional[str], outcome: SyncOutcome) -> None:
        self._busy = False
        if self._closed:
            _log.debug("sync result for %s dropped after teardown", kind)
            return

        if self._disabled_during_job:
            self._disabled_during_job = False
            _log.info("sync result for %s dropped: auto-sync was disabled meanwhile", kind)
            if outcome.action == ACTION_ADOPTED:
                self.reconciler.baseline = baseline
            self.reconciler.disable()
            # persist whatever baseline the finished job left
            self.state_changed.emit(self.reconciler.state)
        elif outcome.action == ACTION_ADOPTED and revision != self._revision():
            _log.info("remote snapshot dropped: local data changed during %s", kind)
            # the snapshot was never applied, so the baseline must not move
            self.reconciler.baseline = baseline
            if self._pending is None:
                self._pending = (JOB_RECONCILE, None)
        else:
            self._publish(outcome)

        if self._pending is not None:
            next_kind, next_arg = self._pending
            self._pending = None
            self._request(next_kind, next_arg)

    def _publish(self, outcome: SyncOutcome) -> None:
        self.last_status = outcome.status
        if outcome.action == ACTION_ADOPTED and outcome.snapshot is not None:
            self.snapshot_adopted.emit(outcome.snapshot)
        if outcome.action == ACTION_CONFLICT and outcome.conflict is not None:
            self._timer.stop()
            self.conflict_detected.emit(outcome.conflict)
        self.state_changed.emit(outcome.state)
        self.status_changed.emit(outcome.status)
