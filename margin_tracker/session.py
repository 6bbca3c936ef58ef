"""
session.py

Purpose
-------
Single owner of the mutable session data (sales, catalog, derived stock,
snapshot timestamp). Screens call its methods instead of touching lists or
repositories directly; the computation core stays pure and receives plain
values from here.

Every mutation, in order:
  1. persist through the repositories,
  2. recompute stock from catalog + sales and rewrite the cache,
  3. stamp generated_at (local edits only; an adopted snapshot keeps its own),
  4. bump `revision` and emit `changed` (+ `locally_modified` for user edits).
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping, Optional, Sequence

from PySide6.QtCore import QObject, Signal

from .database.repositories.catalog_repo import CatalogRepo
from .database.repositories.sales_repo import DomainError, SalesRepo
from .database.repositories.state_repo import StateRepo
from .models import BackupPayload, CatalogProduct, OrderRow, Sale, SaleInput, StockMap
from .modules.backup_restore.snapshot import build_backup
from .modules.catalog.catalog import normalize_catalog
from .modules.dashboard.kpis import Kpis, compute_kpis
from .modules.inventory.stock import compute_stock_map, stock_rows
from .modules.sales.calculations import build_sale, normalize_sale_input
from .modules.sales.filters import SaleFilters, filter_sales
from .modules.sales.orders import aggregate_orders, build_order_sales
from .modules.sales.validation import validate_sale
from .utils.helpers import now_iso

_log = logging.getLogger(__name__)


@dataclass
class AppState:
    sales: list[Sale] = field(default_factory=list)
    catalog: list[CatalogProduct] = field(default_factory=list)
    stock: StockMap = field(default_factory=dict)
    generated_at: str = ""

    def catalog_map(self) -> dict[str, CatalogProduct]:
        return {c.ref: c for c in self.catalog}

    def find_sale(self, sale_id: str) -> Optional[Sale]:
        return next((s for s in self.sales if s.id == sale_id), None)


class TrackerSession(QObject):
    changed = Signal()
    locally_modified = Signal()

    def __init__(
        self,
        conn: sqlite3.Connection,
        *,
        clock: Callable[[], str] = now_iso,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.conn = conn
        self.sales_repo = SalesRepo(conn)
        self.catalog_repo = CatalogRepo(conn)
        self.state_repo = StateRepo(conn)
        self._clock = clock
        self._new_id = id_factory
        self.revision = 0
        self.state = AppState()
        self.load()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def load(self) -> None:
        """Read sales + catalog; stock is recomputed, never taken from the cache."""
        sales = self.sales_repo.list_sales()
        catalog = self.catalog_repo.list_products()
        stock = compute_stock_map(catalog, sales)
        self.catalog_repo.write_stock_cache(stock)
        generated_at = self.state_repo.get().generated_at or self._clock()
        self.state = AppState(sales=sales, catalog=catalog, stock=stock, generated_at=generated_at)
        self.state_repo.set_generated_at(generated_at)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def preview(self, raw: Mapping | SaleInput, sale_id: Optional[str] = None) -> Sale:
        """Computed view of an unsaved form, for live display."""
        return build_sale(sale_id or "", normalize_sale_input(raw), now=self._clock())

    def validate(self, raw: Mapping | SaleInput, sale_id: Optional[str] = None) -> Optional[str]:
        editing = self.state.find_sale(sale_id) if sale_id else None
        return validate_sale(
            normalize_sale_input(raw),
            catalog=self.state.catalog_map(),
            stock=self.state.stock,
            editing_sale=editing,
        )

    def save_sale(self, raw: Mapping | SaleInput, sale_id: Optional[str] = None) -> tuple[Optional[Sale], Optional[str]]:
        """
        Create (sale_id None) or fully replace a sale line.

        Returns (sale, None) on success or (None, message) when validation fails.
        Raises DomainError when sale_id does not exist.
        """
        sale_input = normalize_sale_input(raw)
        editing = None
        if sale_id:
            editing = self.state.find_sale(sale_id)
            if editing is None:
                raise DomainError(f"Sale {sale_id} not found.")

        error = validate_sale(
            sale_input, catalog=self.state.catalog_map(), stock=self.state.stock, editing_sale=editing
        )
        if error:
            return None, error

        now = self._clock()
        if editing is None:
            sale = build_sale(self._new_id(), sale_input, now=now)
            self.sales_repo.insert(sale)
            sales = [sale, *self.state.sales]
        else:
            sale = build_sale(editing.id, sale_input, created_at=editing.created_at, now=now)
            self.sales_repo.update(sale)
            sales = [sale if s.id == sale.id else s for s in self.state.sales]

        self._commit(sales=sales)
        return sale, None

    def save_order(
        self,
        header: Mapping,
        lines: Sequence[Mapping],
        shipping_charged=0.0,
        shipping_real=0.0,
        shipping_charged_ttc=None,
        shipping_real_ttc=None,
    ) -> tuple[list[Sale], Optional[str]]:
        """
        Add one multi-line order: shipping is split across lines to the cent.
        Nothing is saved if any line fails validation.
        """
        inputs = build_order_sales(header, lines, shipping_charged, shipping_real, shipping_charged_ttc, shipping_real_ttc)
        if not inputs:
            return [], "An order needs at least one product line."

        catalog = self.state.catalog_map()
        running = dict(self.state.stock)
        for idx, item in enumerate(inputs, start=1):
            error = validate_sale(item, catalog=catalog, stock=running)
            if error:
                return [], f"Line {idx}: {error}"
            if item.product_ref in running:
                running[item.product_ref] -= item.quantity

        now = self._clock()
        created = [build_sale(self._new_id(), item, now=now) for item in inputs]
        # keep the order's lines in entry order at the top of the list
        for sale in reversed(created):
            self.sales_repo.insert(sale)
        self._commit(sales=[*created, *self.state.sales])
        return created, None

    def delete_sale(self, sale_id: str) -> None:
        self.sales_repo.delete(sale_id)
        self._commit(sales=[s for s in self.state.sales if s.id != sale_id])

    def replace_catalog(self, products: Iterable[CatalogProduct]) -> None:
        catalog = normalize_catalog(products)
        self.catalog_repo.replace_all(catalog)
        self._commit(catalog=catalog)

    def import_backup(self, payload: BackupPayload) -> None:
        """Replace everything with a backup file's content; counts as a local edit."""
        self._replace_all(payload)
        self._commit(sales=list(payload.sales), catalog=list(payload.catalog))

    def adopt_snapshot(self, payload: BackupPayload) -> None:
        """Replace everything with a remote snapshot, keeping its generated_at."""
        self._replace_all(payload)
        self._commit(
            sales=list(payload.sales),
            catalog=list(payload.catalog),
            generated_at=payload.generated_at,
            local=False,
        )

    def _replace_all(self, payload: BackupPayload) -> None:
        self.catalog_repo.replace_all(payload.catalog)
        self.sales_repo.replace_all(payload.sales)

    def _commit(
        self,
        *,
        sales: Optional[list[Sale]] = None,
        catalog: Optional[list[CatalogProduct]] = None,
        generated_at: Optional[str] = None,
        local: bool = True,
    ) -> None:
        sales = self.state.sales if sales is None else sales
        catalog = self.state.catalog if catalog is None else catalog
        stock = compute_stock_map(catalog, sales)
        self.catalog_repo.write_stock_cache(stock)

        stamp = generated_at or self._clock()
        self.state_repo.set_generated_at(stamp)
        self.state = AppState(sales=sales, catalog=catalog, stock=stock, generated_at=stamp)

        self.revision += 1
        _log.debug("session revision %d (%d sales, %d products)", self.revision, len(sales), len(catalog))
        self.changed.emit()
        if local:
            self.locally_modified.emit()

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------
    def snapshot(self) -> BackupPayload:
        s = self.state
        return build_backup(s.sales, s.catalog, s.stock, generated_at=s.generated_at)

    def filtered_sales(self, filters: Optional[SaleFilters] = None) -> list[Sale]:
        return filter_sales(self.state.sales, filters, self.state.stock)

    def orders(self, filters: Optional[SaleFilters] = None) -> list[OrderRow]:
        return aggregate_orders(self.filtered_sales(filters), self.state.stock)

    def kpis(self, filters: Optional[SaleFilters] = None) -> Kpis:
        return compute_kpis(self.filtered_sales(filters))

    def stock_rows(self, **kwargs) -> list[dict]:
        return stock_rows(self.state.catalog, self.state.stock, **kwargs)
