"""
modules/backup_restore/controller.py

Purpose
-------
Glue between the app shell and the backup workflows; owns the top-level widget.

Export writes the current session snapshot (sales, catalog, stock,
generated_at) to a JSON file. Import parses a JSON file off the UI thread,
asks for confirmation, then replaces the session data through
TrackerSession.import_backup(). CSV exports of sales and catalog live here too.

Public Interface (called by app shell)
--------------------------------------
- get_widget() -> QWidget
- get_title() -> str
- teardown() -> None
"""

from __future__ import annotations

import datetime
from pathlib import Path
from typing import Callable, Optional

from PySide6.QtCore import Qt, Signal, Slot, QSettings, QStandardPaths
from PySide6.QtWidgets import (
    QWidget,
    QVBoxLayout,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QFrame,
    QFileDialog,
)

from ...constants import APP_NAME
from ...models import BackupPayload
from ...utils.ui_helpers import confirm, error, info
from ..base_module import BaseModule
from ..sales.exports import catalog_to_csv, sales_to_csv, write_csv
from .service import ExportJob, ImportJob
from .validators import BACKUP_SUFFIX


class BackupRestoreController(BaseModule):
    """
    Main controller for the Backup & Restore screen.

    Signals:
      backup_completed(path)  - a JSON backup was written
      restore_completed(path) - a JSON backup replaced the session data
    """

    backup_completed = Signal(str)
    restore_completed = Signal(str)

    TITLE = "Backup & Restore"
    SETTINGS_KEY_LAST_BACKUP = "backup_restore/last_backup_path"

    def __init__(self, session, *, settings: Optional[QSettings] = None, confirm_import: bool = True) -> None:
        super().__init__()
        self.session = session
        self._settings = settings or QSettings(APP_NAME, APP_NAME)
        self._confirm_import = confirm_import
        self._widget: Optional[QWidget] = None
        self._last_backup_path: Optional[Path] = self._load_last_backup_path()
        # keep job objects alive until their signal arrives
        self._export_job: Optional[ExportJob] = None
        self._import_job: Optional[ImportJob] = None
        self._import_source = ""

    # -------- Public API expected by the shell --------

    def get_widget(self) -> QWidget:
        if self._widget is None:
            self._widget = self._build_widget()
        return self._widget

    def teardown(self) -> None:
        self._export_job = None
        self._import_job = None

    # -------- UI construction --------

    def _build_widget(self) -> QWidget:
        w = QWidget()
        root = QVBoxLayout(w)
        root.setContentsMargins(24, 24, 24, 24)
        root.setSpacing(16)

        title = QLabel(f"<h2>{self.TITLE}</h2>")
        title.setTextFormat(Qt.RichText)
        root.addWidget(title)

        subtitle = QLabel("Save everything to a JSON file, restore from one, or export tables as CSV.")
        subtitle.setWordWrap(True)
        root.addWidget(subtitle)

        cards = QHBoxLayout()
        cards.setSpacing(16)
        root.addLayout(cards)

        self.btn_export = self._add_card(
            cards, "Export backup", "Write sales, catalog and stock to a JSON file.", "Export…", self.export_backup_dialog
        )
        self.btn_import = self._add_card(
            cards,
            "Import backup",
            "Replace all sales and the catalog with the content of a JSON backup.\n"
            "With auto-sync on, the imported data is published to the remote.",
            "Import…",
            self.import_backup_dialog,
        )
        self.btn_csv_sales = self._add_card(
            cards, "Sales CSV", "All sale lines with computed amounts.", "Export CSV…", self._export_sales_csv
        )
        self.btn_csv_catalog = self._add_card(
            cards, "Catalog CSV", "Catalog with current stock and status.", "Export CSV…", self._export_catalog_csv
        )

        self.lbl_status = QLabel("")
        self.lbl_status.setWordWrap(True)
        root.addWidget(self.lbl_status)

        self._last_label = QLabel(self._format_last_backup_label())
        self._last_label.setWordWrap(True)
        self._last_label.setStyleSheet("color: #666;")
        root.addWidget(self._last_label)

        root.addStretch(1)
        return w

    def _add_card(self, layout, title: str, text: str, button: str, on_click: Callable[[], None]) -> QPushButton:
        card = QFrame()
        card.setFrameShape(QFrame.StyledPanel)
        v = QVBoxLayout(card)
        v.setContentsMargins(16, 16, 16, 16)
        v.setSpacing(8)
        v.addWidget(QLabel(f"<b>{title}</b>"))
        lbl = QLabel(text)
        lbl.setWordWrap(True)
        v.addWidget(lbl)
        v.addStretch(1)
        btn = QPushButton(button)
        btn.clicked.connect(on_click)
        v.addWidget(btn, alignment=Qt.AlignRight)
        layout.addWidget(card)
        return btn

    def _format_last_backup_label(self) -> str:
        if self._last_backup_path and self._last_backup_path.exists():
            return f"Last backup: {self._last_backup_path}"
        return "No backups created yet."

    def _save_last_backup_path(self, path: Path) -> None:
        self._settings.setValue(self.SETTINGS_KEY_LAST_BACKUP, str(path))
        self._last_backup_path = path
        if self._widget is not None:
            self._last_label.setText(self._format_last_backup_label())

    def _load_last_backup_path(self) -> Optional[Path]:
        val = self._settings.value(self.SETTINGS_KEY_LAST_BACKUP, "", str)
        return Path(val) if val and str(val).strip() else None

    def _set_status(self, text: str) -> None:
        if self._widget is not None:
            self.lbl_status.setText(text)

    def _default_dir(self) -> str:
        if self._last_backup_path is not None:
            return str(self._last_backup_path.parent)
        return QStandardPaths.writableLocation(QStandardPaths.DocumentsLocation) or str(Path.cwd())

    # -------- JSON backup --------

    @Slot()
    def export_backup_dialog(self) -> None:
        stamp = datetime.datetime.now().strftime("%Y%m%d-%H%M")
        suggested = str(Path(self._default_dir()) / f"margin-backup-{stamp}{BACKUP_SUFFIX}")
        path, _ = QFileDialog.getSaveFileName(self._widget, "Export backup", suggested, f"Backup (*{BACKUP_SUFFIX})")
        if path:
            self.start_export(path)

    def start_export(self, dest_path: str) -> None:
        if self._export_job is not None:
            return
        self._set_status("Writing backup…")
        self._export_job = ExportJob()
        self._export_job.finished.connect(self._on_export_finished)
        self._export_job.run_async(self.session.snapshot(), dest_path)

    def _on_export_finished(self, ok: bool, message: str, out_path: str) -> None:
        self._export_job = None
        self._set_status(message)
        if ok:
            p = Path(out_path)
            self._save_last_backup_path(p)
            self.backup_completed.emit(str(p))
        elif self._widget is not None:
            error(self._widget, "Export failed", message)

    @Slot()
    def import_backup_dialog(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self._widget, "Import backup", self._default_dir(), f"Backup (*{BACKUP_SUFFIX})")
        if path:
            self.start_import(path)

    def start_import(self, src_path: str) -> None:
        if self._import_job is not None:
            return
        self._set_status("Reading backup…")
        self._import_source = src_path
        self._import_job = ImportJob()
        self._import_job.finished.connect(self._on_import_parsed)
        self._import_job.run_async(src_path)

    def _on_import_parsed(self, ok: bool, message: str, payload: Optional[BackupPayload]) -> None:
        self._import_job = None
        if not ok or payload is None:
            self._set_status(message)
            if self._widget is not None:
                error(self._widget, "Import failed", message)
            return

        if self._confirm_import:
            text = (
                f"{message}\n\nReplace the current {len(self.session.state.sales)} sales and "
                f"{len(self.session.state.catalog)} catalog products with this backup "
                f"({len(payload.sales)} sales, {len(payload.catalog)} products)?"
            )
            if not confirm(self._widget, "Import backup", text):
                self._set_status("Import cancelled.")
                return

        self.session.import_backup(payload)
        self._set_status(f"Imported {len(payload.sales)} sales from {self._import_source}.")
        self.restore_completed.emit(self._import_source)

    # -------- CSV --------

    def _csv_path(self, stem: str) -> str:
        stamp = datetime.date.today().strftime("%Y%m%d")
        suggested = str(Path(self._default_dir()) / f"{stem}_{stamp}.csv")
        path, _ = QFileDialog.getSaveFileName(self._widget, "Export CSV", suggested, "CSV (*.csv)")
        return path

    def _write_csv(self, path: str, text: str) -> None:
        try:
            out = write_csv(path, text)
        except OSError as e:
            error(self._widget, "Export failed", str(e))
            return
        self._set_status(f"CSV written: {out}")
        info(self._widget, "Export", f"CSV written:\n{out}")

    @Slot()
    def _export_sales_csv(self) -> None:
        path = self._csv_path("sales")
        if path:
            self._write_csv(path, sales_to_csv(self.session.state.sales))

    @Slot()
    def _export_catalog_csv(self) -> None:
        path = self._csv_path("catalog")
        if path:
            state = self.session.state
            self._write_csv(path, catalog_to_csv(state.catalog, state.stock))
