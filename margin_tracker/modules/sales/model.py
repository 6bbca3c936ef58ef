from PySide6.QtCore import QAbstractTableModel, Qt, QModelIndex
from PySide6.QtGui import QColor

from ...models import OrderRow, Sale
from ...utils.helpers import fmt_money, fmt_pct
from ...utils.ui_helpers import money_color


class _RowsModel(QAbstractTableModel):
    """
    Shared plumbing: subclasses declare COLUMNS as (header, attribute, kind)
    where kind is "text", "qty", "money" or "pct".
    """

    COLUMNS: list[tuple[str, str, str]] = []
    MARGIN_ATTRS = {"net_margin", "net_margin_pct", "gross_margin"}

    def __init__(self, rows: list | None = None):
        super().__init__()
        self._rows = list(rows or [])

    def rowCount(self, parent=QModelIndex()):
        return 0 if parent.isValid() else len(self._rows)

    def columnCount(self, parent=QModelIndex()):
        return len(self.COLUMNS)

    def _raw(self, row, attr):
        return getattr(row, attr)

    def data(self, index, role=Qt.DisplayRole):
        if not index.isValid():
            return None
        r = self._rows[index.row()]
        _header, attr, kind = self.COLUMNS[index.column()]
        value = self._raw(r, attr)

        if role == Qt.UserRole:
            return value
        if role in (Qt.DisplayRole, Qt.EditRole):
            if value is None:
                return ""
            if kind == "money":
                return fmt_money(value)
            if kind == "pct":
                return fmt_pct(value)
            if kind == "qty":
                return f"{value:g}" if isinstance(value, float) else str(value)
            return str(value)
        if role == Qt.TextAlignmentRole and kind in ("money", "pct", "qty"):
            return int(Qt.AlignRight | Qt.AlignVCenter)
        if role == Qt.ForegroundRole and attr in self.MARGIN_ATTRS and isinstance(value, (int, float)):
            color = money_color(value)
            return QColor(color) if color else None
        return None

    def headerData(self, section, orientation, role=Qt.DisplayRole):
        if orientation == Qt.Horizontal and role == Qt.DisplayRole:
            return self.COLUMNS[section][0] if section < len(self.COLUMNS) else None
        return super().headerData(section, orientation, role)

    def at(self, row: int):
        return self._rows[row]

    def replace(self, rows: list):
        self.beginResetModel()
        self._rows = list(rows)
        self.endResetModel()


class SalesTableModel(_RowsModel):
    COLUMNS = [
        ("Date", "date", "text"),
        ("Client / TX", "client_or_tx", "text"),
        ("Transaction", "transaction_ref", "text"),
        ("Channel", "channel", "text"),
        ("Product", "product_ref", "text"),
        ("Qty", "quantity", "qty"),
        ("Unit HT", "sell_price_unit_ht", "money"),
        ("Total HT", "sell_total_ht", "money"),
        ("Shipping", "shipping_charged", "money"),
        ("Transaction value", "transaction_value", "money"),
        ("Commission", "commission_rate_display", "text"),
        ("Commission €", "commission_eur", "money"),
        ("Payment fee", "payment_fee", "money"),
        ("Net received", "net_received", "money"),
        ("Total cost", "total_cost", "money"),
        ("Net margin", "net_margin", "money"),
        ("Margin %", "net_margin_pct", "pct"),
    ]

    def sale_at(self, row: int) -> Sale:
        return self._rows[row]


class OrdersTableModel(_RowsModel):
    COLUMNS = [
        ("Date", "date", "text"),
        ("Client / TX", "client_or_tx", "text"),
        ("Transaction", "transaction_ref", "text"),
        ("Channel", "channel", "text"),
        ("Products", "product_refs", "text"),
        ("Lines", "line_count", "qty"),
        ("Qty", "quantity", "qty"),
        ("Avg unit HT", "avg_unit_price_ht", "money"),
        ("Transaction value", "transaction_value", "money"),
        ("Commission €", "commission_eur", "money"),
        ("Payment fee", "payment_fee", "money"),
        ("Net received", "net_received", "money"),
        ("Net margin", "net_margin", "money"),
        ("Margin %", "net_margin_pct", "pct"),
        ("Stock", "stock_flags", "text"),
    ]

    def _raw(self, row: OrderRow, attr):
        if attr == "product_refs":
            return ", ".join(row.product_refs)
        if attr == "stock_flags":
            parts = []
            if row.out_of_stock_refs:
                parts.append("Out: " + ", ".join(row.out_of_stock_refs))
            if row.low_stock_refs:
                parts.append("Low: " + ", ".join(row.low_stock_refs))
            return "; ".join(parts)
        return getattr(row, attr)

    def data(self, index, role=Qt.DisplayRole):
        if index.isValid() and role == Qt.BackgroundRole:
            r = self._rows[index.row()]
            if r.out_of_stock_refs:
                return QColor("#fdecea")
            if r.low_stock_refs:
                return QColor("#fff8e1")
        return super().data(index, role)

    def order_at(self, row: int) -> OrderRow:
        return self._rows[row]
