from PySide6.QtWidgets import QWidget, QFileDialog
from PySide6.QtCore import QStandardPaths
import datetime
import logging
import os

from ..base_module import BaseModule
from .view import SalesView
from .model import SalesTableModel, OrdersTableModel
from .form import SaleForm, OrderForm
from .exports import sales_to_csv, write_csv
from ...database.repositories.sales_repo import DomainError
from ...utils.helpers import fmt_money
from ...utils.ui_helpers import info, error, confirm

_log = logging.getLogger(__name__)


class SalesController(BaseModule):
    TITLE = "Sales"

    def __init__(self, session):
        super().__init__()
        self.session = session
        self.view = SalesView()
        self.model = SalesTableModel([])
        self.orders_model = OrdersTableModel([])
        self.view.tbl.setModel(self.model)
        self.view.tbl_orders.setModel(self.orders_model)
        self._wire()
        self._reload()

    def get_widget(self) -> QWidget:
        return self.view

    def refresh(self) -> None:
        self._reload()

    def _wire(self):
        self.view.btn_add.clicked.connect(self._add)
        self.view.btn_add_order.clicked.connect(self._add_order)
        self.view.btn_edit.clicked.connect(self._edit)
        self.view.btn_del.clicked.connect(self._delete)
        self.view.btn_export.clicked.connect(self._export_csv)
        self.view.tbl.doubleClicked.connect(lambda _=None: self._edit())
        self.view.filtersChanged.connect(self._reload)
        self.view.modeChanged.connect(lambda _m: self._reload())
        self.session.changed.connect(self._reload)

    # ------------------------------------------------------------------
    def _reload(self):
        filters = self.view.filters()
        if self.view.current_mode() == "orders":
            rows = self.session.orders(filters)
            self.orders_model.replace(rows)
            self.view.lbl_summary.setText(f"{len(rows)} orders")
        else:
            rows = self.session.filtered_sales(filters)
            self.model.replace(rows)
            margin = sum(s.net_margin for s in rows)
            self.view.lbl_summary.setText(f"{len(rows)} lines · net margin {fmt_money(margin)}")
        self.view.tbl.resizeColumnsToContents()
        self.view.tbl_orders.resizeColumnsToContents()

    def _selected_sale(self):
        row = self.view.tbl.selected_source_row()
        if row < 0:
            return None
        return self.model.sale_at(row)

    # ------------------------------------------------------------------
    def _add(self):
        dlg = SaleForm(self.view, session=self.session)
        if not dlg.exec():
            return
        sale, err = self.session.save_sale(dlg.payload())
        if err:
            info(self.view, "Not saved", err)
            return
        _log.info("sale %s added (%s, %s)", sale.id, sale.product_ref, sale.date)

    def _add_order(self):
        dlg = OrderForm(self.view, session=self.session)
        if not dlg.exec():
            return
        p = dlg.payload()
        created, err = self.session.save_order(
            p["header"], p["lines"], p["shipping_charged"], p["shipping_real"]
        )
        if err:
            info(self.view, "Order not saved", err)
            return
        _log.info("order added with %d lines", len(created))

    def _edit(self):
        if self.view.current_mode() != "lines":
            return
        sale = self._selected_sale()
        if sale is None:
            info(self.view, "Select", "Please select a sale line to edit.")
            return
        dlg = SaleForm(self.view, session=self.session, initial=sale)
        if not dlg.exec():
            return
        try:
            _saved, err = self.session.save_sale(dlg.payload(), sale.id)
        except DomainError as e:
            error(self.view, "Sale", str(e))
            return
        if err:
            info(self.view, "Not saved", err)

    def _delete(self):
        sale = self._selected_sale()
        if sale is None:
            info(self.view, "Select", "Please select a sale line to delete.")
            return
        text = f"Delete {sale.product_ref} × {sale.quantity:g} for {sale.client_or_tx or 'unknown client'} ({sale.date})?"
        if not confirm(self.view, "Delete sale", text):
            return
        try:
            self.session.delete_sale(sale.id)
        except DomainError as e:
            error(self.view, "Sale", str(e))

    def _export_csv(self):
        docs = QStandardPaths.writableLocation(QStandardPaths.DocumentsLocation) or os.getcwd()
        stamp = datetime.date.today().strftime("%Y%m%d")
        suggested = os.path.join(docs, f"sales_{stamp}.csv")
        path, _ = QFileDialog.getSaveFileName(self.view, "Export sales", suggested, "CSV (*.csv)")
        if not path:
            return
        try:
            out = write_csv(path, sales_to_csv(self.session.filtered_sales(self.view.filters())))
        except OSError as e:
            error(self.view, "Export failed", str(e))
            return
        info(self.view, "Export", f"Sales exported to:\n{out}")
