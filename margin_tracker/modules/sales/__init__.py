# margin_tracker/modules/sales/__init__.py

"""
Sales module package exports.

Only the pure computation surface is exported here so repositories and
headless tests can import it without Qt. Import SalesController / SalesView /
SaleForm from their own modules.
"""

from .allocation import allocate_amount_by_weight, allocate_cents_by_weight, line_weights
from .calculations import (
    build_sale,
    compute_commission,
    compute_payment_fee,
    compute_sale,
    normalize_sale_input,
    round2,
)
from .orders import aggregate_orders, build_order_sales, normalize_order_fees, order_key
from .validation import validate_sale

__all__ = [
    "allocate_amount_by_weight",
    "allocate_cents_by_weight",
    "line_weights",
    "build_sale",
    "compute_commission",
    "compute_payment_fee",
    "compute_sale",
    "normalize_sale_input",
    "round2",
    "aggregate_orders",
    "build_order_sales",
    "normalize_order_fees",
    "order_key",
    "validate_sale",
]
