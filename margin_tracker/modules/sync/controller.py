from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtWidgets import QWidget

from ..base_module import BaseModule
from ...constants import SYNC_STATE_CONFLICT, SYNC_STATE_DISABLED
from .reconciler import ConflictSummary, SyncReconciler
from .remote_store import HttpRemoteStore, SqliteRemoteStore
from .service import AutoSyncService
from .views import ConflictDialog, SyncView

_log = logging.getLogger(__name__)


def describe_store(store) -> str:
    if isinstance(store, HttpRemoteStore):
        return store.endpoint
    if isinstance(store, SqliteRemoteStore):
        return f"shared file {store.path}"
    return "not configured"


class SyncController(BaseModule):
    """
    Wires the session to AutoSyncService and persists the sync bookkeeping
    (baseline, auto-sync flag, last status) in the local sync_state row.

    `store` None means no remote is configured: the page stays read-only.
    """

    TITLE = "Sync"

    def __init__(self, session, store=None, *, debounce_ms: Optional[int] = None, ask_on_conflict: bool = True) -> None:
        super().__init__()
        self.session = session
        self.store = store
        self._ask = ask_on_conflict
        self._pending_conflict: Optional[ConflictSummary] = None
        self.view = SyncView()
        self.service: Optional[AutoSyncService] = None

        saved = session.state_repo.get()
        self.view.lbl_status.setText(saved.last_status or "")
        self.view.set_available(store is not None, describe_store(store))
        self.view.set_state(SYNC_STATE_DISABLED)
        self._refresh_labels()
        session.changed.connect(self._refresh_labels)

        if store is None:
            return

        reconciler = SyncReconciler(store, baseline=saved.remote_baseline, state=SYNC_STATE_DISABLED)
        kwargs = {} if debounce_ms is None else {"debounce_ms": debounce_ms}
        self.service = AutoSyncService(
            reconciler,
            session.snapshot,
            lambda: session.revision,
            parent=self,
            **kwargs,
        )
        self.service.status_changed.connect(self._on_status)
        self.service.state_changed.connect(self._on_state)
        self.service.conflict_detected.connect(self._on_conflict)
        self.service.snapshot_adopted.connect(session.adopt_snapshot)
        session.locally_modified.connect(self.service.schedule_push)

        self.view.chk_auto.toggled.connect(self._on_toggle)
        self.view.btn_sync.clicked.connect(self.service.reconcile_now)
        self.view.btn_resolve.clicked.connect(self._ask_resolution)

        if saved.auto_sync:
            self.view.chk_auto.setChecked(True)

    def get_widget(self) -> QWidget:
        return self.view

    def teardown(self) -> None:
        if self.service is not None:
            self.service.teardown()

    # ------------------------------------------------------------------
    def _on_toggle(self, on: bool) -> None:
        self.session.state_repo.set_auto_sync(on)
        if on:
            self.service.enable()
        else:
            self.service.disable()

    def _on_status(self, text: str) -> None:
        self.view.lbl_status.setText(text)
        self.session.state_repo.set_last_status(text)

    def _on_state(self, state: str) -> None:
        self.view.set_state(state)
        self.session.state_repo.set_remote_baseline(self.service.reconciler.baseline)
        self._refresh_labels()

    def _on_conflict(self, conflict: ConflictSummary) -> None:
        self._pending_conflict = conflict
        if self._ask:
            self._ask_resolution()

    def _ask_resolution(self) -> None:
        conflict = self._pending_conflict or self.service.reconciler.conflict
        if conflict is None or self.service.state != SYNC_STATE_CONFLICT:
            return
        dlg = ConflictDialog(conflict, self.view)
        if dlg.exec() and dlg.choice():
            self.resolve(dlg.choice())

    def resolve(self, choice: str) -> None:
        self._pending_conflict = None
        self.service.resolve(choice)

    def _refresh_labels(self) -> None:
        self.view.lbl_generated.setText(self.session.state.generated_at or "—")
        baseline = self.service.reconciler.baseline if self.service is not None else None
        self.view.lbl_baseline.setText(baseline or "—")
