from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from PySide6.QtCore import Qt, Signal, QDate
from PySide6.QtGui import QFont, QStandardItemModel, QStandardItem
from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QComboBox, QDateEdit,
    QGridLayout, QFrame, QTableView, QHeaderView, QAbstractItemView
)

from ...utils.helpers import fmt_money


class DashboardView(QWidget):
    """
    Pure-UI dashboard surface. Controller drives it by calling the setters.

    Signals:
        period_changed(period_key: str, date_from: str, date_to: str)
        low_stock_view_requested()

    Period keys: "all", "mtd", "last30", "custom". For "all" both dates are "".
    """

    period_changed = Signal(str, str, str)
    low_stock_view_requested = Signal()

    KPI_KEYS = [
        ("revenue", "Revenue", "transaction value"),
        ("net_margin", "Net Margin", "after commissions, fees, costs"),
        ("avg_margin_pct", "Avg Margin %", "mean of sale lines"),
        ("commissions", "Commissions", "marketplace share"),
        ("payment_fees", "Payment Fees", "processor charges"),
        ("sales_count", "Sale Lines", "orders: —"),
        ("low_stock", "Low / Out of Stock", "click to view"),
    ]

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self._kpi_cards: Dict[str, KPICard] = {}
        self._period_key = "all"
        self._build_ui()
        self._wire()

    # ---------------- UI ----------------
    def _build_ui(self) -> None:
        root = QVBoxLayout(self)
        root.setContentsMargins(8, 8, 8, 8)
        root.setSpacing(10)

        # ===== Top Bar =====
        top = QHBoxLayout()
        title = QLabel("<h2>Dashboard</h2>")
        title.setTextFormat(Qt.RichText)
        top.addWidget(title)
        top.addStretch(1)

        self.cmb_period = QComboBox()
        self.cmb_period.addItems(["All time", "MTD", "Last 30 Days", "Custom"])

        self.ed_from = QDateEdit()
        self.ed_from.setCalendarPopup(True)
        self.ed_from.setDisplayFormat("yyyy-MM-dd")
        self.ed_to = QDateEdit()
        self.ed_to.setCalendarPopup(True)
        self.ed_to.setDisplayFormat("yyyy-MM-dd")
        self.ed_from.setDate(QDate.currentDate().addDays(-29))
        self.ed_to.setDate(QDate.currentDate())

        self.btn_apply_period = QPushButton("Apply")
        self._toggle_custom_dates(False)

        top.addWidget(QLabel("Period:"))
        top.addWidget(self.cmb_period)
        top.addWidget(self.ed_from)
        top.addWidget(self.ed_to)
        top.addWidget(self.btn_apply_period)
        root.addLayout(top)

        # ===== KPI Grid =====
        gridwrap = QWidget()
        self.grid = QGridLayout(gridwrap)
        self.grid.setContentsMargins(0, 0, 0, 0)
        self.grid.setHorizontalSpacing(10)
        self.grid.setVerticalSpacing(10)
        for key, title_text, caption in self.KPI_KEYS:
            card = KPICard(title_text, caption)
            self._kpi_cards[key] = card
        self._kpi_cards["low_stock"].clicked.connect(self.low_stock_view_requested.emit)
        self._reflow_kpis()
        root.addWidget(gridwrap)

        # ===== Tables =====
        tables = QHBoxLayout()
        self.tbl_channels = QTableView()
        self.model_channels = QStandardItemModel(0, 4, self)
        self.model_channels.setHorizontalHeaderLabels(["Channel", "Lines", "Revenue", "Net margin"])
        self.tbl_channels.setModel(self.model_channels)
        self._prep_simple_table(self.tbl_channels)

        self.tbl_top_products = QTableView()
        self.model_top_products = QStandardItemModel(0, 4, self)
        self.model_top_products.setHorizontalHeaderLabels(["Product", "Qty", "Revenue HT", "Net margin"])
        self.tbl_top_products.setModel(self.model_top_products)
        self._prep_simple_table(self.tbl_top_products)

        tables.addWidget(_Card(self.tbl_channels, "By channel"), 1)
        tables.addWidget(_Card(self.tbl_top_products, "Top products"), 1)
        root.addLayout(tables, 1)

    def _wire(self) -> None:
        self.cmb_period.currentIndexChanged.connect(self._on_period_combo)
        self.btn_apply_period.clicked.connect(self._apply_period)

    # ---------------- period helpers ----------------
    def _on_period_combo(self) -> None:
        key = self._period_key_from_combo()
        self._period_key = key
        self._toggle_custom_dates(key == "custom")
        # custom waits for Apply
        if key != "custom":
            self._apply_period()

    def _apply_period(self) -> None:
        df, dt = self.current_period_dates()
        self.period_changed.emit(self._period_key, df, dt)

    def _period_key_from_combo(self) -> str:
        m = {0: "all", 1: "mtd", 2: "last30", 3: "custom"}
        return m.get(self.cmb_period.currentIndex(), "all")

    def _toggle_custom_dates(self, on: bool) -> None:
        self.ed_from.setVisible(on)
        self.ed_to.setVisible(on)
        self.btn_apply_period.setVisible(on)

    def current_period_dates(self) -> Tuple[str, str]:
        today = QDate.currentDate()
        key = self._period_key
        if key == "all":
            return "", ""
        if key == "mtd":
            df, dt = QDate(today.year(), today.month(), 1), today
        elif key == "last30":
            df, dt = today.addDays(-29), today
        else:
            df, dt = self.ed_from.date(), self.ed_to.date()
        return df.toString("yyyy-MM-dd"), dt.toString("yyyy-MM-dd")

    # ---------------- Public setters for controller ----------------
    def set_kpi_text(self, key: str, text: str, caption: Optional[str] = None) -> None:
        card = self._kpi_cards.get(key)
        if not card:
            return
        card.set_value(text)
        if caption is not None:
            card.set_caption(caption)

    def kpi_text(self, key: str) -> str:
        return self._kpi_cards[key].lbl_value.text()

    def set_channels(self, rows) -> None:
        self.model_channels.removeRows(0, self.model_channels.rowCount())
        for r in rows:
            self.model_channels.appendRow([
                QStandardItem(r.channel),
                QStandardItem(str(r.sales_count)),
                QStandardItem(fmt_money(r.revenue)),
                QStandardItem(fmt_money(r.net_margin)),
            ])
        self.tbl_channels.resizeColumnsToContents()

    def set_top_products(self, rows: List[Dict[str, object]]) -> None:
        self.model_top_products.removeRows(0, self.model_top_products.rowCount())
        for r in rows:
            self.model_top_products.appendRow([
                QStandardItem(str(r.get("product_ref", ""))),
                QStandardItem(f"{float(r.get('quantity') or 0.0):g}"),
                QStandardItem(fmt_money(r.get("revenue"))),
                QStandardItem(fmt_money(r.get("net_margin"))),
            ])
        self.tbl_top_products.resizeColumnsToContents()

    # --------------- Layout: responsive KPI grid ---------------
    def resizeEvent(self, event) -> None:  # type: ignore[override]
        super().resizeEvent(event)
        self._reflow_kpis()

    def _reflow_kpis(self) -> None:
        while self.grid.count():
            item = self.grid.takeAt(0)
            w = item.widget()
            if w:
                w.setParent(None)

        cols = 4 if self.width() >= 1100 else 3
        for idx, (key, _t, _c) in enumerate(self.KPI_KEYS):
            self.grid.addWidget(self._kpi_cards[key], idx // cols, idx % cols)

    def _prep_simple_table(self, tv: QTableView) -> None:
        tv.setSelectionMode(QAbstractItemView.NoSelection)
        tv.verticalHeader().setVisible(False)
        tv.horizontalHeader().setStretchLastSection(True)
        tv.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeToContents)
        tv.setEditTriggers(QAbstractItemView.NoEditTriggers)


# ======================= Visual building blocks =======================

class KPICard(QFrame):
    clicked = Signal()

    def __init__(self, title: str, caption: str) -> None:
        super().__init__()
        self.setObjectName("kpi_card")
        self.setStyleSheet("""
            QFrame#kpi_card {
                border: 1px solid #e1e1e1;
                border-radius: 10px;
                background: #fff;
            }
        """)

        v = QVBoxLayout(self)
        v.setContentsMargins(12, 10, 12, 12)
        v.setSpacing(2)

        self.lbl_title = QLabel(title)
        f = self.lbl_title.font()
        f.setBold(True)
        self.lbl_title.setFont(f)

        self.lbl_value = QLabel("—")
        fv = QFont(self.lbl_value.font())
        fv.setPointSize(fv.pointSize() + 6)
        fv.setBold(True)
        self.lbl_value.setFont(fv)

        self.lbl_caption = QLabel(caption)
        self.lbl_caption.setStyleSheet("color: #777;")

        v.addWidget(self.lbl_title)
        v.addWidget(self.lbl_value)
        v.addWidget(self.lbl_caption)

    def mousePressEvent(self, e) -> None:  # type: ignore[override]
        if e.button() == Qt.LeftButton:
            self.clicked.emit()
        super().mousePressEvent(e)

    def set_value(self, s: str) -> None:
        self.lbl_value.setText(s)

    def set_caption(self, s: str) -> None:
        self.lbl_caption.setText(s)


class _Card(QWidget):
    """Wrap any widget in a titled card frame."""
    def __init__(self, inner: QWidget, title: str) -> None:
        super().__init__()
        v = QVBoxLayout(self)
        v.setContentsMargins(0, 0, 0, 0)
        frame = QFrame()
        frame.setFrameShape(QFrame.StyledPanel)
        frame.setStyleSheet("QFrame { border:1px solid #dcdcdc; border-radius:8px; }")
        fl = QVBoxLayout(frame)
        fl.setContentsMargins(12, 10, 12, 12)
        fl.setSpacing(6)
        fl.addWidget(QLabel(f"<b>{title}</b>"))
        fl.addWidget(inner)
        v.addWidget(frame)
