from PySide6.QtWidgets import (
    QApplication,
    QMainWindow,
    QWidget,
    QVBoxLayout,
    QListWidget,
    QListWidgetItem,
    QStackedWidget,
    QHBoxLayout,
    QSizePolicy,
    QLabel,
)
from PySide6.QtCore import Qt
from pathlib import Path
import logging
import sys

from .config import remote_store_from_config
from .constants import APP_NAME, STYLE_FILE
from .database import get_connection
from .modules.base_module import BaseModule
from .session import TrackerSession
from .utils.loggers import get_logger
from .utils.ui_helpers import wrap_center

_log = logging.getLogger(__name__)


def load_qss() -> str:
    qss = ""
    f = Path(__file__).resolve().parent / STYLE_FILE
    if f.exists():
        qss = f.read_text(encoding="utf-8")
    return qss


class MainWindow(QMainWindow):
    """
    Left nav + stacked pages. Every module is created up front because the
    stock and sync screens run timers even when not visible.
    """

    def __init__(self, session: TrackerSession, *, remote_store=None, auto_refresh_catalog: bool = True):
        super().__init__()
        self.setWindowTitle(APP_NAME)
        self.setWindowFlag(Qt.WindowMinimizeButtonHint, True)
        self.setWindowFlag(Qt.WindowMaximizeButtonHint, True)
        self.setMinimumSize(980, 600)

        self.session = session

        # ---- Central layout: left nav + stacked pages ----
        central = QWidget(self)
        layout = QVBoxLayout(central)
        self.setCentralWidget(central)

        self.nav = QListWidget()
        self.nav.setFixedWidth(140)
        self.nav.setSizePolicy(QSizePolicy.Fixed, QSizePolicy.Expanding)
        self.stack = QStackedWidget()

        row = QWidget()
        row_lay = QHBoxLayout(row)
        row_lay.addWidget(self.nav)
        row_lay.addWidget(self.stack, 1)
        layout.addWidget(row, 1)

        self.modules: list[tuple[str, BaseModule | None]] = []
        self.nav.currentRowChanged.connect(self._on_nav_item_changed)

        from .modules.dashboard.controller import DashboardController
        from .modules.sales.controller import SalesController
        from .modules.inventory.controller import InventoryController
        from .modules.sync.controller import SyncController
        from .modules.backup_restore import MODULE_TITLE, create_module

        self._add_guarded("Dashboard", lambda: DashboardController(session))
        self._add_guarded("Sales", lambda: SalesController(session))
        self._add_guarded("Stock", lambda: InventoryController(session, auto_refresh=auto_refresh_catalog))
        self._add_guarded("Sync", lambda: SyncController(session, remote_store))
        self._add_guarded(MODULE_TITLE, lambda: create_module(session))

        dashboard = self.module("Dashboard")
        if dashboard is not None:
            dashboard.navigate_to_stock.connect(lambda: self.show_module("Stock"))

        if self.nav.count():
            self.nav.setCurrentRow(0)

    # ---------- module registry ----------
    def add_module(self, title: str, module: BaseModule):
        page = module.get_widget()
        self.nav.addItem(QListWidgetItem(title))
        self.stack.addWidget(page)
        self.modules.append((title, module))

    def add_placeholder(self, title: str, message: str):
        self.nav.addItem(QListWidgetItem(title))
        self.stack.addWidget(wrap_center(QLabel(f"{title}\n\n{message}")))
        self.modules.append((title, None))

    def _add_guarded(self, title: str, factory):
        """A screen that fails to build is replaced by a placeholder; the rest of the app keeps working."""
        try:
            controller = factory()
        except Exception:
            _log.exception("[%s] failed to load", title)
            self.add_placeholder(title, "Loading failed (see log).")
            return
        self.add_module(title, controller)

    def module(self, title: str):
        for t, m in self.modules:
            if t == title:
                return m
        return None

    def show_module(self, title: str) -> None:
        for i, (t, _m) in enumerate(self.modules):
            if t == title:
                self.nav.setCurrentRow(i)
                return

    def _on_nav_item_changed(self, index: int):
        if index < 0 or index >= len(self.modules):
            return
        self.stack.setCurrentIndex(index)
        mod = self.modules[index][1]
        if mod is not None:
            mod.refresh()

    def closeEvent(self, event):  # noqa: N802 (Qt naming)
        for title, mod in self.modules:
            if mod is None:
                continue
            try:
                mod.teardown()
            except RuntimeError:
                _log.exception("teardown failed for %s", title)
        super().closeEvent(event)


def main():
    get_logger("margin_tracker")

    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)

    conn = get_connection()
    session = TrackerSession(conn)

    qss = load_qss()
    if qss:
        app.setStyleSheet(qss)

    win = MainWindow(session, remote_store=remote_store_from_config())
    win.resize(1200, 720)
    win.show()
    rc = app.exec()
    conn.close()
    sys.exit(rc)


if __name__ == "__main__":
    main()
