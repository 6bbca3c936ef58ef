from __future__ import annotations

import datetime
import logging
import os

from PySide6.QtCore import QStandardPaths, QTimer
from PySide6.QtWidgets import QWidget, QFileDialog

from ..base_module import BaseModule
from ..catalog.job import CatalogRefreshJob
from ..sales.exports import catalog_to_csv, write_csv
from ...config import CATALOG_URL
from ...constants import CATALOG_REFRESH_MS
from ...utils.helpers import now_iso
from ...utils.ui_helpers import info, error
from .model import StockTableModel
from .view import InventoryView

_log = logging.getLogger(__name__)


class InventoryController(BaseModule):
    """
    Stock screen: catalog products with remaining stock derived from sales.

    The catalog is refreshed from the pricing page on demand and every
    CATALOG_REFRESH_MS while the app runs. A failed refresh keeps the current
    catalog.
    """

    TITLE = "Stock"

    def __init__(self, session, *, auto_refresh: bool = True, catalog_url: str | None = None):
        super().__init__()
        self.session = session
        self._catalog_url = catalog_url or CATALOG_URL
        self._job: CatalogRefreshJob | None = None
        self._interactive = False

        self.view = InventoryView()
        self.model = StockTableModel([])
        self.view.tbl_stock.setModel(self.model)

        self.view.txt_search.textChanged.connect(lambda _=None: self._reload())
        self.view.cmb_category.currentIndexChanged.connect(lambda _=None: self._reload())
        self.view.chk_low.toggled.connect(lambda _=None: self._reload())
        self.view.btn_refresh_catalog.clicked.connect(lambda: self.refresh_catalog(interactive=True))
        self.view.btn_export.clicked.connect(self._export_csv)
        self.session.changed.connect(self._reload)

        self._timer = QTimer(self)
        self._timer.setInterval(CATALOG_REFRESH_MS)
        self._timer.timeout.connect(lambda: self.refresh_catalog(interactive=False))
        if auto_refresh:
            self._timer.start()

        self._reload()

    def get_widget(self) -> QWidget:
        return self.view

    def refresh(self) -> None:
        self._reload()

    def teardown(self) -> None:
        self._timer.stop()

    # ------------------------------------------------------------------
    def _reload(self):
        rows = self.session.stock_rows(
            category=self.view.selected_category,
            only_low=self.view.chk_low.isChecked(),
            query=self.view.query_text,
        )
        self.model.replace(rows)
        total = len(self.session.state.catalog)
        self.view.lbl_summary.setText(f"{len(rows)} of {total} products")
        self.view.tbl_stock.resizeColumnsToContents()

    def refresh_catalog(self, *, interactive: bool = False) -> None:
        if self._job is not None:
            return
        self._interactive = interactive
        self.view.btn_refresh_catalog.setEnabled(False)
        self.view.lbl_status.setText("Refreshing catalog…")
        self._job = CatalogRefreshJob(self._catalog_url)
        self._job.finished.connect(self._on_catalog_fetched)
        self._job.run_async()

    def _on_catalog_fetched(self, ok: bool, message: str, products) -> None:
        self._job = None
        self.view.btn_refresh_catalog.setEnabled(True)
        if ok:
            self.session.replace_catalog(products)
            self.view.lbl_status.setText(f"{message} Last refresh: {now_iso()}")
            _log.info(message)
            return
        _log.warning("Catalog refresh failed: %s", message)
        self.view.lbl_status.setText(f"Catalog refresh failed; keeping current catalog. {message}")
        if self._interactive:
            error(self.view, "Catalog", message)

    def _export_csv(self):
        docs = QStandardPaths.writableLocation(QStandardPaths.DocumentsLocation) or os.getcwd()
        stamp = datetime.date.today().strftime("%Y%m%d")
        suggested = os.path.join(docs, f"catalog_{stamp}.csv")
        path, _ = QFileDialog.getSaveFileName(self.view, "Export catalog", suggested, "CSV (*.csv)")
        if not path:
            return
        state = self.session.state
        try:
            out = write_csv(path, catalog_to_csv(state.catalog, state.stock))
        except OSError as e:
            error(self.view, "Export failed", str(e))
            return
        info(self.view, "Export", f"Catalog exported to:\n{out}")
