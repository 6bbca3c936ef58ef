from PySide6.QtCore import QSortFilterProxyModel, Qt
from PySide6.QtWidgets import QAbstractItemView, QHeaderView, QTableView


class TableView(QTableView):
    """
    Read-only, sortable table. The source model sits behind a QSortFilterProxyModel
    so header clicks never reorder the underlying rows. Models expose raw values
    under Qt.UserRole for numeric sorting.
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self._proxy = QSortFilterProxyModel(self)
        self._proxy.setSortRole(Qt.UserRole)
        super().setModel(self._proxy)
        self.setSortingEnabled(True)
        self.setAlternatingRowColors(True)
        self.setSelectionBehavior(QAbstractItemView.SelectRows)
        self.setSelectionMode(QAbstractItemView.SingleSelection)
        self.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.verticalHeader().setVisible(False)
        self.horizontalHeader().setStretchLastSection(True)
        self.horizontalHeader().setSectionResizeMode(QHeaderView.Interactive)

    def setModel(self, model):  # noqa: N802 (Qt naming)
        self._proxy.setSourceModel(model)

    def source_model(self):
        return self._proxy.sourceModel()

    def selected_source_row(self) -> int:
        """Row index in the source model, or -1 when nothing is selected."""
        idx = self.currentIndex()
        if not idx.isValid():
            return -1
        return self._proxy.mapToSource(idx).row()
