"""
sales/filters.py

Search / filter bar semantics for the sales and orders tables.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from ...models import Sale, StockMap
from ..inventory.stock import STATUS_LOW, STATUS_OUT, stock_status


@dataclass
class SaleFilters:
    channel: Optional[str] = None
    category: Optional[str] = None
    date_from: Optional[str] = None  # inclusive, YYYY-MM-DD
    date_to: Optional[str] = None    # inclusive
    query: str = ""
    stock_status: Optional[str] = None  # "low" | "out"

    def is_empty(self) -> bool:
        return not any(
            [self.channel, self.category, self.date_from, self.date_to, (self.query or "").strip(), self.stock_status]
        )


def _matches_query(sale: Sale, needle: str) -> bool:
    haystack = (sale.client_or_tx, sale.transaction_ref, sale.product_ref)
    return any(needle in (field or "").casefold() for field in haystack)


def filter_sales(
    sales: Iterable[Sale],
    filters: Optional[SaleFilters] = None,
    stock: Optional[StockMap] = None,
) -> list[Sale]:
    """
    Sales matching every set criterion, input order preserved.

    `stock_status` keeps only tracked refs currently in that state.
    """
    sales = list(sales)
    if filters is None or filters.is_empty():
        return sales

    stock = stock or {}
    needle = (filters.query or "").strip().casefold()
    out: list[Sale] = []
    for s in sales:
        if filters.channel and s.channel != filters.channel:
            continue
        if filters.category and s.category != filters.category:
            continue
        # ISO dates compare correctly as strings
        if filters.date_from and s.date < filters.date_from:
            continue
        if filters.date_to and s.date > filters.date_to:
            continue
        if needle and not _matches_query(s, needle):
            continue
        if filters.stock_status in (STATUS_LOW, STATUS_OUT):
            if s.product_ref not in stock or stock_status(stock[s.product_ref]) != filters.stock_status:
                continue
        out.append(s)
    return out
