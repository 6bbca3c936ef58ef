from __future__ import annotations

import sqlite3
from typing import Iterable

from ...models import CatalogProduct, StockMap


class CatalogRepo:
    """Catalog rows plus the stock_cache mirror (never read back as authoritative)."""

    def __init__(self, conn: sqlite3.Connection):
        conn.row_factory = sqlite3.Row
        self.conn = conn

    def list_products(self) -> list[CatalogProduct]:
        rows = self.conn.execute(
            """
            SELECT ref, category, CAST(buy_price_unit AS REAL) AS buy_price_unit,
                   initial_stock, display_order, datasheet_url
              FROM catalog_products
             ORDER BY display_order, ref
            """
        ).fetchall()
        return [
            CatalogProduct(
                ref=r["ref"],
                category=r["category"],
                buy_price_unit=float(r["buy_price_unit"]),
                initial_stock=int(r["initial_stock"]),
                order=int(r["display_order"]),
                datasheet_url=r["datasheet_url"],
            )
            for r in rows
        ]

    def replace_all(self, products: Iterable[CatalogProduct]) -> None:
        with self.conn:
            self.conn.execute("DELETE FROM catalog_products")
            self.conn.executemany(
                """
                INSERT INTO catalog_products(ref, category, buy_price_unit, initial_stock, display_order, datasheet_url)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                [
                    (p.ref, p.category, p.buy_price_unit, p.initial_stock, p.order, p.datasheet_url)
                    for p in products
                ],
            )

    # ---- stock cache ----
    def write_stock_cache(self, stock: StockMap) -> None:
        with self.conn:
            self.conn.execute("DELETE FROM stock_cache")
            self.conn.executemany(
                "INSERT INTO stock_cache(ref, quantity) VALUES (?, ?)",
                list(stock.items()),
            )

    def read_stock_cache(self) -> StockMap:
        rows = self.conn.execute("SELECT ref, quantity FROM stock_cache").fetchall()
        return {r["ref"]: int(r["quantity"]) if float(r["quantity"]).is_integer() else r["quantity"] for r in rows}
