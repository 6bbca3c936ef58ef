from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QPushButton, QLineEdit, QLabel,
    QComboBox, QButtonGroup, QDateEdit, QCheckBox, QStackedWidget
)
from PySide6.QtCore import Qt, QDate, Signal

from ...constants import CATEGORIES, CHANNELS
from ...widgets.table_view import TableView
from .filters import SaleFilters


class SalesView(QWidget):
    # 'lines' or 'orders'
    modeChanged = Signal(str)
    filtersChanged = Signal()

    def __init__(self, parent=None):
        super().__init__(parent)
        root = QVBoxLayout(self)

        # --- Mode toggle (Lines | Orders) ---
        modebar = QHBoxLayout()
        modebar.addWidget(QLabel("View:"))
        self.btn_mode_lines = QPushButton("Sale lines")
        self.btn_mode_orders = QPushButton("Orders")
        for b in (self.btn_mode_lines, self.btn_mode_orders):
            b.setCheckable(True)
        self._mode_group = QButtonGroup(self)
        self._mode_group.setExclusive(True)
        self._mode_group.addButton(self.btn_mode_lines)
        self._mode_group.addButton(self.btn_mode_orders)
        self.btn_mode_lines.setChecked(True)
        modebar.addWidget(self.btn_mode_lines)
        modebar.addWidget(self.btn_mode_orders)
        modebar.addStretch(1)
        self.lbl_summary = QLabel("")
        modebar.addWidget(self.lbl_summary)
        root.addLayout(modebar)

        # --- Toolbar ---
        bar = QHBoxLayout()
        self.btn_add = QPushButton("New sale")
        self.btn_add_order = QPushButton("New order…")
        self.btn_edit = QPushButton("Edit")
        self.btn_del = QPushButton("Delete")
        self.btn_export = QPushButton("Export CSV…")
        for b in (self.btn_add, self.btn_add_order, self.btn_edit, self.btn_del, self.btn_export):
            bar.addWidget(b)
        bar.addStretch(1)
        self.search = QLineEdit()
        self.search.setPlaceholderText("Search client, transaction, product…")
        bar.addWidget(QLabel("Search:"))
        bar.addWidget(self.search, 2)
        root.addLayout(bar)

        # --- Filters ---
        fbar = QHBoxLayout()
        self.cmb_channel = QComboBox()
        self.cmb_channel.addItem("All channels", None)
        for c in CHANNELS:
            self.cmb_channel.addItem(c, c)
        self.cmb_category = QComboBox()
        self.cmb_category.addItem("All categories", None)
        for c in CATEGORIES:
            self.cmb_category.addItem(c, c)
        self.cmb_stock = QComboBox()
        self.cmb_stock.addItem("Any stock", None)
        self.cmb_stock.addItem("Low stock", "low")
        self.cmb_stock.addItem("Out of stock", "out")

        self.chk_dates = QCheckBox("Dates")
        self.date_from = QDateEdit(); self.date_from.setCalendarPopup(True)
        self.date_to = QDateEdit(); self.date_to.setCalendarPopup(True)
        today = QDate.currentDate()
        self.date_from.setDate(today.addMonths(-1))
        self.date_to.setDate(today)
        self.date_from.setEnabled(False)
        self.date_to.setEnabled(False)
        self.btn_clear = QPushButton("Clear")

        for w in (self.cmb_channel, self.cmb_category, self.cmb_stock, self.chk_dates,
                  self.date_from, QLabel("→"), self.date_to, self.btn_clear):
            fbar.addWidget(w)
        fbar.addStretch(1)
        root.addLayout(fbar)

        # --- Tables ---
        self.stack = QStackedWidget()
        self.tbl = TableView()
        self.tbl_orders = TableView()
        self.stack.addWidget(self.tbl)
        self.stack.addWidget(self.tbl_orders)
        root.addWidget(self.stack, 1)

        self._mode = "lines"
        self.btn_mode_lines.toggled.connect(self._on_mode_toggle)
        self.btn_mode_orders.toggled.connect(self._on_mode_toggle)

        self.search.textChanged.connect(lambda _=None: self.filtersChanged.emit())
        for cmb in (self.cmb_channel, self.cmb_category, self.cmb_stock):
            cmb.currentIndexChanged.connect(lambda _=None: self.filtersChanged.emit())
        self.chk_dates.toggled.connect(self._on_dates_toggled)
        self.date_from.dateChanged.connect(lambda _=None: self._dates_changed())
        self.date_to.dateChanged.connect(lambda _=None: self._dates_changed())
        self.btn_clear.clicked.connect(self.clear_filters)

    # --- Public helpers ----------------------------------------------------

    def current_mode(self) -> str:
        return self._mode

    def set_mode(self, mode: str):
        mode = "orders" if mode == "orders" else "lines"
        if mode == "orders":
            self.btn_mode_orders.setChecked(True)
        else:
            self.btn_mode_lines.setChecked(True)

    def filters(self) -> SaleFilters:
        f = SaleFilters(
            channel=self.cmb_channel.currentData(),
            category=self.cmb_category.currentData(),
            query=self.search.text(),
            stock_status=self.cmb_stock.currentData(),
        )
        if self.chk_dates.isChecked():
            f.date_from = self.date_from.date().toString("yyyy-MM-dd")
            f.date_to = self.date_to.date().toString("yyyy-MM-dd")
        return f

    def clear_filters(self):
        widgets = (self.search, self.cmb_channel, self.cmb_category, self.cmb_stock, self.chk_dates)
        for w in widgets:
            w.blockSignals(True)
        self.search.clear()
        self.cmb_channel.setCurrentIndex(0)
        self.cmb_category.setCurrentIndex(0)
        self.cmb_stock.setCurrentIndex(0)
        self.chk_dates.setChecked(False)
        self.date_from.setEnabled(False)
        self.date_to.setEnabled(False)
        for w in widgets:
            w.blockSignals(False)
        self.filtersChanged.emit()

    # --- Internals ---------------------------------------------------------

    def _on_mode_toggle(self, _checked: bool):
        new_mode = "orders" if self.btn_mode_orders.isChecked() else "lines"
        if new_mode != self._mode:
            self._mode = new_mode
            self.stack.setCurrentIndex(1 if new_mode == "orders" else 0)
            # order rows are aggregates; edit/delete act on lines only
            self.btn_edit.setVisible(new_mode == "lines")
            self.btn_del.setVisible(new_mode == "lines")
            self.modeChanged.emit(new_mode)

    def _on_dates_toggled(self, on: bool):
        self.date_from.setEnabled(on)
        self.date_to.setEnabled(on)
        self.filtersChanged.emit()

    def _dates_changed(self):
        if self.chk_dates.isChecked():
            self.filtersChanged.emit()
