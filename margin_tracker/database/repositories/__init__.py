# database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from margin_tracker.database.repositories import (
        SalesRepo, DomainError,
        CatalogRepo,
        StateRepo, SyncStateRow,
    )
"""

from .sales_repo import SalesRepo, DomainError
from .catalog_repo import CatalogRepo
from .state_repo import StateRepo, SyncStateRow

__all__ = [
    "SalesRepo",
    "DomainError",
    "CatalogRepo",
    "StateRepo",
    "SyncStateRow",
]
