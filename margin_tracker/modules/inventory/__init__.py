# margin_tracker/modules/inventory/__init__.py

from .stock import (
    STATUS_LABELS,
    STATUS_LOW,
    STATUS_OK,
    STATUS_OUT,
    available_quantity,
    check_availability,
    compute_stock_map,
    stock_rows,
    stock_status,
)

__all__ = [
    "STATUS_LABELS",
    "STATUS_LOW",
    "STATUS_OK",
    "STATUS_OUT",
    "available_quantity",
    "check_availability",
    "compute_stock_map",
    "stock_rows",
    "stock_status",
]
