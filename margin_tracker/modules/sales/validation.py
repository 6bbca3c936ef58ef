"""
sales/validation.py

validate_sale() returns the first problem as a user-facing message, or None.
Never raises: the form shows the message and keeps the dialog open.
"""
from __future__ import annotations

from typing import Iterable, Mapping, Optional

from ...constants import CATEGORIES, CHANNELS, PAYMENT_METHODS
from ...models import CatalogProduct, Sale, SaleInput, StockMap
from ...utils.helpers import to_number, to_optional_number
from ...utils.validators import is_iso_date, non_empty
from ..inventory.stock import check_availability
from .calculations import is_power_wp_required


def _catalog_refs(catalog) -> set[str]:
    if catalog is None:
        return set()
    if isinstance(catalog, Mapping):
        return set(catalog.keys())
    return {c.ref for c in catalog}


def validate_sale(
    sale_input: SaleInput,
    *,
    catalog: Mapping[str, CatalogProduct] | Iterable[CatalogProduct] | None = None,
    stock: Optional[StockMap] = None,
    editing_sale: Optional[Sale] = None,
) -> Optional[str]:
    if not is_iso_date(sale_input.date):
        return "Date is required (YYYY-MM-DD)."
    if not non_empty(sale_input.client_or_tx):
        return "Client / transaction is required."
    if not non_empty(sale_input.product_ref):
        return "Product is required."
    if to_number(sale_input.quantity) <= 0:
        return "Quantity must be greater than 0."
    if sale_input.channel not in CHANNELS:
        return f"Unknown channel: {sale_input.channel}."
    if sale_input.payment_method not in PAYMENT_METHODS:
        return f"Unknown payment method: {sale_input.payment_method}."
    if sale_input.category not in CATEGORIES:
        return f"Unknown category: {sale_input.category}."

    if is_power_wp_required(sale_input.channel, sale_input.category):
        wp = to_optional_number(sale_input.power_wp)
        if wp is None or wp <= 0:
            return f"power_wp is required for {sale_input.channel} + {sale_input.category}."

    ref = sale_input.product_ref.strip()
    if ref in _catalog_refs(catalog) and stock is not None:
        return check_availability(stock, ref, sale_input.quantity, editing_sale)
    return None
