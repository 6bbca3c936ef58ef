"""
Catalog package exports (no Qt here; the stock screen owns catalog display).
"""

from .catalog import (
    CatalogFetchError,
    catalog_from_records,
    fetch_remote_catalog,
    infer_category,
    normalize_catalog,
    parse_catalog_from_html,
)

__all__ = [
    "CatalogFetchError",
    "catalog_from_records",
    "fetch_remote_catalog",
    "infer_category",
    "normalize_catalog",
    "parse_catalog_from_html",
]
