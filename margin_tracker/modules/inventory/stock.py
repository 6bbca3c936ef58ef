"""
inventory/stock.py

Derived stock: initial catalog stock minus everything sold. Always recomputed
from the full catalog + sales lists; the stock_cache table only mirrors the
last result.
"""
from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ...constants import LOW_STOCK_THRESHOLD
from ...models import CatalogProduct, Sale, StockMap
from ...utils.helpers import to_number

STATUS_OUT = "out"
STATUS_LOW = "low"
STATUS_OK = "ok"

STATUS_LABELS = {
    STATUS_OUT: "Out of stock",
    STATUS_LOW: "Low stock",
    STATUS_OK: "OK",
}


def _as_count(x: float):
    return int(x) if float(x).is_integer() else x


def compute_stock_map(catalog: Iterable[CatalogProduct], sales: Iterable[Sale]) -> StockMap:
    """
    ref -> remaining units for every catalog ref.

    Sales pointing at refs outside the catalog are ignored (not tracked).
    """
    stock: dict[str, float] = {}
    for item in catalog:
        stock[item.ref] = to_number(item.initial_stock)
    for sale in sales:
        ref = (sale.product_ref or "").strip()
        if ref in stock:
            stock[ref] -= to_number(sale.quantity)
    return {ref: _as_count(qty) for ref, qty in stock.items()}


def available_quantity(stock: StockMap, ref: str, editing_sale: Optional[Sale] = None) -> Optional[float]:
    """
    Units that can still be sold for `ref`, or None when the ref is not tracked.

    When editing a sale of the same ref, its current quantity is given back first.
    """
    ref = (ref or "").strip()
    if ref not in stock:
        return None
    available = to_number(stock[ref])
    if editing_sale is not None and (editing_sale.product_ref or "").strip() == ref:
        available += to_number(editing_sale.quantity)
    return _as_count(available)


def check_availability(
    stock: StockMap,
    ref: str,
    quantity,
    editing_sale: Optional[Sale] = None,
) -> Optional[str]:
    """Blocking message when `quantity` exceeds what is left; None if it fits or ref is untracked."""
    available = available_quantity(stock, ref, editing_sale)
    if available is None:
        return None
    if to_number(quantity) > available:
        return f"Insufficient stock for {ref.strip()} (available: {available})."
    return None


def stock_status(qty, threshold: int = LOW_STOCK_THRESHOLD) -> str:
    q = to_number(qty)
    if q <= 0:
        return STATUS_OUT
    if q <= threshold:
        return STATUS_LOW
    return STATUS_OK


def stock_rows(
    catalog: Sequence[CatalogProduct],
    stock: StockMap,
    *,
    category: Optional[str] = None,
    only_low: bool = False,
    query: str = "",
    threshold: int = LOW_STOCK_THRESHOLD,
) -> list[dict]:
    """
    Display rows for the stock table, in catalog rank order.

    Each row: ref, category, buy_price_unit, initial_stock, stock, status,
    status_label, datasheet_url. `only_low` keeps out-of-stock and low rows.
    """
    needle = (query or "").strip().casefold()
    rows: list[dict] = []
    for item in sorted(catalog, key=lambda c: c.order):
        if category and item.category != category:
            continue
        if needle and needle not in item.ref.casefold():
            continue
        qty = stock.get(item.ref, item.initial_stock)
        status = stock_status(qty, threshold)
        if only_low and status == STATUS_OK:
            continue
        rows.append(
            {
                "ref": item.ref,
                "category": item.category,
                "buy_price_unit": item.buy_price_unit,
                "initial_stock": item.initial_stock,
                "stock": qty,
                "status": status,
                "status_label": STATUS_LABELS[status],
                "datasheet_url": item.datasheet_url,
            }
        )
    return rows
