from __future__ import annotations

from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QCheckBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QFrame,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from ...utils.helpers import fmt_money
from .reconciler import KEEP_LOCAL, KEEP_REMOTE, ConflictSummary, SnapshotSummary


class SyncView(QWidget):
    """Status page for remote sync: toggle, manual sync, last status."""

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        root = QVBoxLayout(self)
        root.setContentsMargins(16, 16, 16, 16)
        root.setSpacing(12)

        title = QLabel("<h2>Remote sync</h2>")
        title.setTextFormat(Qt.RichText)
        root.addWidget(title)

        card = QFrame()
        card.setFrameShape(QFrame.StyledPanel)
        form = QFormLayout(card)
        self.lbl_remote = QLabel("—")
        self.lbl_remote.setTextInteractionFlags(Qt.TextSelectableByMouse)
        self.lbl_state = QLabel("—")
        self.lbl_baseline = QLabel("—")
        self.lbl_generated = QLabel("—")
        self.lbl_status = QLabel("")
        self.lbl_status.setWordWrap(True)
        form.addRow("Remote:", self.lbl_remote)
        form.addRow("State:", self.lbl_state)
        form.addRow("Remote updated at:", self.lbl_baseline)
        form.addRow("Local snapshot:", self.lbl_generated)
        form.addRow("Last status:", self.lbl_status)
        root.addWidget(card)

        row = QHBoxLayout()
        self.chk_auto = QCheckBox("Auto-sync")
        self.btn_sync = QPushButton("Sync now")
        self.btn_resolve = QPushButton("Resolve conflict…")
        self.btn_resolve.setVisible(False)
        row.addWidget(self.chk_auto)
        row.addWidget(self.btn_sync)
        row.addWidget(self.btn_resolve)
        row.addStretch(1)
        root.addLayout(row)
        root.addStretch(1)

    def set_available(self, available: bool, remote_text: str) -> None:
        self.lbl_remote.setText(remote_text)
        self.chk_auto.setEnabled(available)
        self.btn_sync.setEnabled(available)

    def set_state(self, state: str) -> None:
        self.lbl_state.setText(state.capitalize())
        color = {"synced": "#2e7d32", "conflict": "#c62828"}.get(state, "#666")
        self.lbl_state.setStyleSheet(f"color: {color}; font-weight: bold;")
        self.btn_resolve.setVisible(state == "conflict")


def _summary_cells(s: SnapshotSummary) -> list[str]:
    return [s.generated_at or "—", str(s.orders), str(s.lines), fmt_money(s.revenue), fmt_money(s.net_margin)]


class ConflictDialog(QDialog):
    """
    Side-by-side summary of the two snapshots. `choice()` is KEEP_LOCAL,
    KEEP_REMOTE, or None when the user postponed the decision.
    """

    ROWS = ["Generated at", "Orders", "Lines", "Revenue", "Net margin"]

    def __init__(self, conflict: ConflictSummary, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Sync conflict")
        self.setModal(True)
        self._choice: Optional[str] = None

        intro = QLabel(
            "The remote data was changed on another device since this one last synced.\n"
            "Choose which version to keep; the other one is overwritten."
        )
        intro.setWordWrap(True)

        grid = QGridLayout()
        grid.addWidget(QLabel("<b>This device</b>"), 0, 1)
        grid.addWidget(QLabel("<b>Remote</b>"), 0, 2)
        local, remote = _summary_cells(conflict.local), _summary_cells(conflict.remote)
        for i, name in enumerate(self.ROWS, start=1):
            grid.addWidget(QLabel(name), i, 0)
            grid.addWidget(QLabel(local[i - 1]), i, 1)
            grid.addWidget(QLabel(remote[i - 1]), i, 2)
        grid.addWidget(QLabel("Remote updated at"), len(self.ROWS) + 1, 0)
        grid.addWidget(QLabel(conflict.remote_updated_at), len(self.ROWS) + 1, 2)

        buttons = QDialogButtonBox()
        self.btn_local = buttons.addButton("Keep this device", QDialogButtonBox.AcceptRole)
        self.btn_remote = buttons.addButton("Keep remote", QDialogButtonBox.AcceptRole)
        buttons.addButton("Decide later", QDialogButtonBox.RejectRole)
        self.btn_local.clicked.connect(lambda: self._pick(KEEP_LOCAL))
        self.btn_remote.clicked.connect(lambda: self._pick(KEEP_REMOTE))
        buttons.rejected.connect(self.reject)

        lay = QVBoxLayout(self)
        lay.addWidget(intro)
        lay.addLayout(grid)
        lay.addWidget(buttons)

    def _pick(self, choice: str) -> None:
        self._choice = choice
        self.accept()

    def choice(self) -> Optional[str]:
        return self._choice
