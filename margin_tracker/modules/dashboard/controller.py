# margin_tracker/modules/dashboard/controller.py
from __future__ import annotations

from PySide6.QtCore import Signal
from PySide6.QtWidgets import QWidget

from ..base_module import BaseModule
from ..sales.filters import SaleFilters
from ...utils.helpers import fmt_money, fmt_pct
from .kpis import top_products
from .view import DashboardView


class DashboardController(BaseModule):
    """
    Owns the period context and feeds KPI totals to the view.

    Signals:
      - navigate_to_stock(): the low-stock card was clicked
    """

    TITLE = "Dashboard"
    navigate_to_stock = Signal()

    def __init__(self, session) -> None:
        super().__init__()
        self.session = session
        self.view = DashboardView()
        self._date_from = ""
        self._date_to = ""

        self.view.period_changed.connect(self._on_period_changed)
        self.view.low_stock_view_requested.connect(self.navigate_to_stock.emit)
        self.session.changed.connect(self.refresh)
        self.refresh()

    def get_widget(self) -> QWidget:
        return self.view

    def _on_period_changed(self, _key: str, date_from: str, date_to: str) -> None:
        self._date_from, self._date_to = date_from, date_to
        self.refresh()

    def current_filters(self) -> SaleFilters:
        return SaleFilters(date_from=self._date_from or None, date_to=self._date_to or None)

    def refresh(self) -> None:
        filters = self.current_filters()
        k = self.session.kpis(filters)
        v = self.view
        v.set_kpi_text("revenue", fmt_money(k.total_revenue))
        v.set_kpi_text("net_margin", fmt_money(k.total_net_margin))
        v.set_kpi_text("avg_margin_pct", fmt_pct(k.avg_net_margin_pct))
        v.set_kpi_text("commissions", fmt_money(k.total_commissions))
        v.set_kpi_text("payment_fees", fmt_money(k.total_payment_fees))
        v.set_kpi_text("sales_count", str(k.sales_count), caption=f"orders: {k.orders_count}")

        low = sum(1 for r in self.session.stock_rows(only_low=True))
        v.set_kpi_text("low_stock", str(low))

        v.set_channels(k.by_channel)
        v.set_top_products(top_products(self.session.filtered_sales(filters)))
