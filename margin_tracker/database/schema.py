from pathlib import Path
import sqlite3
import sys

from ..constants import SCHEMA_VERSION, TABLE_SCHEMA_VERSION

SQL = f"""
PRAGMA foreign_keys = ON;

/* ======================== CORE TABLES ======================== */

/* -------- sale lines (inputs only; money fields are recomputed on load) -------- */
CREATE TABLE IF NOT EXISTS sales (
    id                    TEXT PRIMARY KEY,
    date                  TEXT NOT NULL,
    client_or_tx          TEXT NOT NULL,
    transaction_ref       TEXT NOT NULL DEFAULT '',
    channel               TEXT NOT NULL
                          CHECK (channel IN ('Sun.store','Solartraders','Direct','Other')),
    customer_country      TEXT NOT NULL DEFAULT '',
    product_ref           TEXT NOT NULL,
    quantity              REAL NOT NULL CHECK (quantity >= 0),
    sell_price_unit_ht    REAL NOT NULL DEFAULT 0,
    sell_price_unit_ttc   REAL,
    shipping_charged      REAL NOT NULL DEFAULT 0,
    shipping_charged_ttc  REAL,
    shipping_real         REAL NOT NULL DEFAULT 0,
    shipping_real_ttc     REAL,
    payment_method        TEXT NOT NULL
                          CHECK (payment_method IN ('Stripe','Wire','PayPal','Cash')),
    category              TEXT NOT NULL
                          CHECK (category IN ('Inverters','Solar Panels','Batteries','Accessories')),
    buy_price_unit        REAL NOT NULL DEFAULT 0,
    power_wp              REAL,
    attachments_json      TEXT NOT NULL DEFAULT '[]',
    tracking_numbers_json TEXT NOT NULL DEFAULT '[]',
    shipping_provider     TEXT,
    shipping_status       TEXT,
    invoice_url           TEXT,
    position              INTEGER NOT NULL DEFAULT 0,
    created_at            TEXT NOT NULL,
    updated_at            TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_sales_date ON sales(date);
CREATE INDEX IF NOT EXISTS idx_sales_product_ref ON sales(product_ref);

/* -------- catalog -------- */
CREATE TABLE IF NOT EXISTS catalog_products (
    ref            TEXT PRIMARY KEY,
    category       TEXT NOT NULL,
    buy_price_unit REAL NOT NULL DEFAULT 0,
    initial_stock  INTEGER NOT NULL DEFAULT 0,
    display_order  INTEGER NOT NULL DEFAULT 0,
    datasheet_url  TEXT
);

/* -------- derived stock, mirror of the last recomputation -------- */
CREATE TABLE IF NOT EXISTS stock_cache (
    ref      TEXT PRIMARY KEY,
    quantity REAL NOT NULL
);

/* -------- singleton sync / snapshot bookkeeping -------- */
CREATE TABLE IF NOT EXISTS sync_state (
    id              INTEGER PRIMARY KEY CHECK (id = 1),
    generated_at    TEXT,
    remote_baseline TEXT,
    auto_sync       INTEGER NOT NULL DEFAULT 0 CHECK (auto_sync IN (0,1)),
    last_status     TEXT
);
INSERT OR IGNORE INTO sync_state(id) VALUES (1);

CREATE TABLE IF NOT EXISTS {TABLE_SCHEMA_VERSION}(
    id INTEGER PRIMARY KEY CHECK (id=1),
    version TEXT NOT NULL
);
INSERT OR IGNORE INTO {TABLE_SCHEMA_VERSION}(id, version) VALUES (1, '{SCHEMA_VERSION}');
"""


def apply_schema(conn: sqlite3.Connection) -> None:
    """Idempotent; safe on every start and on :memory: connections."""
    conn.executescript(SQL)
    conn.commit()


def init_schema(db_path: Path | str) -> None:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.execute("PRAGMA journal_mode=WAL;")
        apply_schema(conn)
    conn.close()


if __name__ == "__main__":
    from ..config import DB_PATH

    target = sys.argv[1] if len(sys.argv) > 1 else DB_PATH
    init_schema(target)
    print(f"Schema applied to {target}")
