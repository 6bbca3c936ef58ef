from __future__ import annotations

import json
import sqlite3
from typing import Iterable

from ...models import Sale, SaleInput
from ...modules.sales.calculations import build_sale


class DomainError(Exception):
    """Domain-level error suitable for surfacing to the UI."""
    pass


_INPUT_COLUMNS = (
    "date",
    "client_or_tx",
    "transaction_ref",
    "channel",
    "customer_country",
    "product_ref",
    "quantity",
    "sell_price_unit_ht",
    "sell_price_unit_ttc",
    "shipping_charged",
    "shipping_charged_ttc",
    "shipping_real",
    "shipping_real_ttc",
    "payment_method",
    "category",
    "buy_price_unit",
    "power_wp",
    "shipping_provider",
    "shipping_status",
    "invoice_url",
)


class SalesRepo:
    """
    Sale lines.

    Only the inputs are stored. Every read rebuilds the money fields through
    build_sale(), so a change in commission rules applies to old rows on the
    next load. Rows come back newest-entered first (`position` ascending).
    """

    def __init__(self, conn: sqlite3.Connection):
        # ensure rows behave like dicts/tuples
        conn.row_factory = sqlite3.Row
        self.conn = conn

    # ---------------------------------------------------------------------
    # READ
    # ---------------------------------------------------------------------
    def list_sales(self) -> list[Sale]:
        rows = self.conn.execute("SELECT * FROM sales ORDER BY position, created_at DESC, id").fetchall()
        return [self._to_sale(r) for r in rows]

    def get(self, sale_id: str) -> Sale | None:
        row = self.conn.execute("SELECT * FROM sales WHERE id=?", (sale_id,)).fetchone()
        return self._to_sale(row) if row else None

    def count(self) -> int:
        return int(self.conn.execute("SELECT COUNT(*) FROM sales").fetchone()[0])

    # ---------------------------------------------------------------------
    # WRITE
    # ---------------------------------------------------------------------
    def insert(self, sale: Sale) -> None:
        """New lines go to the top of the list."""
        top = self.conn.execute("SELECT COALESCE(MIN(position), 0) FROM sales").fetchone()[0]
        try:
            self._insert_row(sale, int(top) - 1)
        except sqlite3.IntegrityError as e:
            self.conn.rollback()
            raise DomainError(f"Sale {sale.id} could not be saved: {e}") from e
        self.conn.commit()

    def update(self, sale: Sale) -> None:
        assignments = ", ".join(f"{c}=?" for c in _INPUT_COLUMNS)
        cur = self.conn.execute(
            f"""
            UPDATE sales
               SET {assignments}, attachments_json=?, tracking_numbers_json=?, updated_at=?
             WHERE id=?
            """,
            (*self._input_values(sale), *self._json_values(sale), sale.updated_at, sale.id),
        )
        if cur.rowcount == 0:
            self.conn.rollback()
            raise DomainError(f"Sale {sale.id} not found.")
        self.conn.commit()

    def delete(self, sale_id: str) -> None:
        cur = self.conn.execute("DELETE FROM sales WHERE id=?", (sale_id,))
        if cur.rowcount == 0:
            self.conn.rollback()
            raise DomainError(f"Sale {sale_id} not found.")
        self.conn.commit()

    def replace_all(self, sales: Iterable[Sale]) -> None:
        """Swap the whole list in one transaction (backup import, adopted remote snapshot)."""
        with self.conn:
            self.conn.execute("DELETE FROM sales")
            for pos, sale in enumerate(sales):
                self._insert_row(sale, pos)

    # ---------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------
    @staticmethod
    def _input_values(sale: SaleInput) -> tuple:
        return tuple(getattr(sale, c) for c in _INPUT_COLUMNS)

    @staticmethod
    def _json_values(sale: SaleInput) -> tuple:
        return (
            json.dumps(sale.attachments or [], ensure_ascii=False),
            json.dumps(sale.tracking_numbers or [], ensure_ascii=False),
        )

    def _insert_row(self, sale: Sale, position: int) -> None:
        cols = ("id", *_INPUT_COLUMNS, "attachments_json", "tracking_numbers_json", "position", "created_at", "updated_at")
        placeholders = ", ".join("?" for _ in cols)
        self.conn.execute(
            f"INSERT INTO sales({', '.join(cols)}) VALUES ({placeholders})",
            (
                sale.id,
                *self._input_values(sale),
                *self._json_values(sale),
                position,
                sale.created_at,
                sale.updated_at,
            ),
        )

    @staticmethod
    def _to_sale(row: sqlite3.Row) -> Sale:
        data = {c: row[c] for c in _INPUT_COLUMNS}
        data["attachments"] = json.loads(row["attachments_json"] or "[]")
        data["tracking_numbers"] = json.loads(row["tracking_numbers_json"] or "[]")
        return build_sale(row["id"], SaleInput(**data), created_at=row["created_at"], now=row["updated_at"])
