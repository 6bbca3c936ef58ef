"""
sales/exports.py

Semicolon-separated CSV text for the sales list and the catalog/stock table.
Cells are quoted only when they contain '"', ';' or a newline.
"""
from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Iterable, Sequence

from ...models import CatalogProduct, Sale, StockMap
from ..inventory.stock import STATUS_LABELS, stock_status

SALES_CSV_HEADER = [
    "id",
    "date",
    "client_or_tx",
    "transaction_ref",
    "channel",
    "customer_country",
    "product_ref",
    "quantity",
    "sell_price_unit_ht",
    "sell_price_unit_ttc",
    "sell_total_ht",
    "shipping_charged",
    "shipping_real",
    "transaction_value",
    "payment_method",
    "category",
    "buy_price_unit",
    "power_wp",
    "commission_rate_display",
    "commission_eur",
    "payment_fee",
    "net_received",
    "total_cost",
    "gross_margin",
    "net_margin",
    "net_margin_pct",
    "attachments_count",
    "created_at",
    "updated_at",
]

CATALOG_CSV_HEADER = [
    "order",
    "reference",
    "category",
    "buy_price_unit_eur",
    "stock_initial",
    "stock_current",
    "status",
    "datasheet_url",
]


def _cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _to_csv(rows: Iterable[Sequence]) -> str:
    buf = io.StringIO()
    w = csv.writer(buf, delimiter=";", quotechar='"', quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    for row in rows:
        w.writerow([_cell(v) for v in row])
    return buf.getvalue().rstrip("\n")


def sales_to_csv(sales: Iterable[Sale]) -> str:
    rows: list[list] = [SALES_CSV_HEADER]
    for s in sales:
        values = s.to_dict()
        values["attachments_count"] = len(s.attachments or [])
        rows.append([values.get(name) for name in SALES_CSV_HEADER])
    return _to_csv(rows)


def catalog_to_csv(catalog: Iterable[CatalogProduct], stock: StockMap) -> str:
    rows: list[list] = [CATALOG_CSV_HEADER]
    for item in catalog:
        current = stock.get(item.ref, item.initial_stock)
        rows.append(
            [
                item.order,
                item.ref,
                item.category,
                item.buy_price_unit,
                item.initial_stock,
                current,
                STATUS_LABELS[stock_status(current)],
                item.datasheet_url,
            ]
        )
    return _to_csv(rows)


def write_csv(path: str | Path, text: str) -> Path:
    """Write CSV text as UTF-8 with BOM so spreadsheet apps pick the encoding."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w", newline="", encoding="utf-8-sig") as f:
        f.write(text)
        f.write("\n")
    return p
