from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QPushButton, QComboBox,
    QLineEdit, QLabel, QCheckBox
)

from ...constants import CATEGORIES
from ...widgets.table_view import TableView


class InventoryView(QWidget):
    def __init__(self, parent: QWidget | None = None):
        super().__init__(parent)
        root = QVBoxLayout(self)
        root.setContentsMargins(8, 8, 8, 8)
        root.setSpacing(8)

        # ---------- Filter + actions row ----------
        row = QHBoxLayout()
        row.setSpacing(6)

        self.txt_search = QLineEdit(objectName="txt_search")
        self.txt_search.setPlaceholderText("Search reference…")
        self.txt_search.setMinimumWidth(220)

        self.cmb_category = QComboBox(objectName="cmb_category")
        self.cmb_category.addItem("All categories", None)
        for c in CATEGORIES:
            self.cmb_category.addItem(c, c)

        self.chk_low = QCheckBox("Low / out only", objectName="chk_low")

        self.btn_refresh_catalog = QPushButton("Refresh catalog", objectName="btn_refresh_catalog")
        self.btn_export = QPushButton("Export CSV…", objectName="btn_export")

        row.addWidget(QLabel("Search"), 0, Qt.AlignVCenter)
        row.addWidget(self.txt_search, 2)
        row.addWidget(self.cmb_category, 1)
        row.addWidget(self.chk_low, 0, Qt.AlignVCenter)
        row.addStretch(1)
        row.addWidget(self.btn_refresh_catalog)
        row.addWidget(self.btn_export)
        root.addLayout(row)

        self.lbl_summary = QLabel("", objectName="lbl_summary")
        root.addWidget(self.lbl_summary)

        self.tbl_stock = TableView()
        self.tbl_stock.setObjectName("tbl_stock")
        root.addWidget(self.tbl_stock, 1)

        self.lbl_status = QLabel("", objectName="lbl_status")
        self.lbl_status.setStyleSheet("color: #666;")
        root.addWidget(self.lbl_status)

    @property
    def query_text(self) -> str:
        return (self.txt_search.text() or "").strip()

    @property
    def selected_category(self) -> str | None:
        return self.cmb_category.currentData()
