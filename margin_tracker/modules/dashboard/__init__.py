# margin_tracker/modules/dashboard/__init__.py

"""
Dashboard module package exports. The Qt controller lives in .controller.
"""

from .kpis import ChannelBreakdown, Kpis, compute_kpis, top_products

__all__ = [
    "ChannelBreakdown",
    "Kpis",
    "compute_kpis",
    "top_products",
]
