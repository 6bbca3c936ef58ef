from __future__ import annotations

from typing import Any, Dict, List, Optional

from PySide6.QtCore import QAbstractTableModel, Qt, QModelIndex
from PySide6.QtGui import QColor

from ...utils.helpers import fmt_money
from .stock import STATUS_LOW, STATUS_OUT


class StockTableModel(QAbstractTableModel):
    """
    Rows come from inventory.stock.stock_rows(): plain dicts with ref, category,
    buy_price_unit, initial_stock, stock, status, status_label, datasheet_url.
    """
    COLUMNS: List[tuple[str, str]] = [
        ("Reference", "ref"),
        ("Category", "category"),
        ("Unit buy", "buy_price_unit"),
        ("Initial", "initial_stock"),
        ("Stock", "stock"),
        ("Status", "status_label"),
        ("Datasheet", "datasheet_url"),
    ]
    _NUMERIC = {"buy_price_unit", "initial_stock", "stock"}

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None) -> None:
        super().__init__()
        self._rows: List[Dict[str, Any]] = list(rows or [])

    def rowCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return 0 if parent.isValid() else len(self._rows)

    def columnCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return len(self.COLUMNS)

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole) -> Any:
        if not index.isValid():
            return None
        r = self._rows[index.row()]
        key = self.COLUMNS[index.column()][1]
        value = r.get(key)

        if role == Qt.UserRole:
            return value
        if role in (Qt.DisplayRole, Qt.EditRole):
            if value is None:
                return ""
            if key == "buy_price_unit":
                return fmt_money(value)
            if isinstance(value, float):
                return f"{value:g}"
            return str(value)
        if role == Qt.TextAlignmentRole and key in self._NUMERIC:
            return int(Qt.AlignRight | Qt.AlignVCenter)
        if role == Qt.BackgroundRole:
            if r.get("status") == STATUS_OUT:
                return QColor("#fdecea")
            if r.get("status") == STATUS_LOW:
                return QColor("#fff8e1")
        return None

    def headerData(self, section: int, orientation: Qt.Orientation, role: int = Qt.DisplayRole) -> Any:
        if orientation == Qt.Horizontal and role == Qt.DisplayRole:
            return self.COLUMNS[section][0]
        return super().headerData(section, orientation, role)

    def at(self, row: int) -> Dict[str, Any]:
        return self._rows[row]

    def replace(self, rows: List[Dict[str, Any]]) -> None:
        self.beginResetModel()
        self._rows = list(rows or [])
        self.endResetModel()
