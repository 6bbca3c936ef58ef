# margin_tracker/tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - pytest-qt owns QApplication (use qapp/qtbot fixtures)
# - Every test gets its own in-memory SQLite DB with the schema applied
# - conn.row_factory = sqlite3.Row
# - Data/log directory points at a throwaway temp dir
# - Silence benign Qt signal warnings
# ---------------------------------------------------------------------

from __future__ import annotations

import os
import re
import sqlite3
import tempfile
from datetime import datetime, timedelta, timezone
from itertools import count

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
os.environ.setdefault("MARGIN_TRACKER_DATA_DIR", tempfile.mkdtemp(prefix="margin_tracker_tests_"))

import pytest
from PySide6 import QtCore

from margin_tracker.database.schema import apply_schema
from margin_tracker.models import CatalogProduct
from margin_tracker.modules.sync.remote_store import RemoteRecord, RemoteStoreError


# ---------- Qt: let pytest-qt own the app ----------
@pytest.fixture(scope="session")
def app(qapp):  # alias to match code that expects an `app` fixture
    return qapp


# ---------- Silence benign Qt warnings ----------
_BENIGN_QT_PATTERNS = [
    r"^QObject::connect: .* already connected",
    r"^QObject::disconnect: Unexpected null parameter",
    r"^QBasicTimer::stop: Failed\. Platform timer not running\.",
    r"^This plugin does not support propagateSizeHints",
]

@pytest.fixture(autouse=True, scope="session")
def _silence_benign_qt():
    """Filter common harmless Qt messages during tests."""
    original = QtCore.qInstallMessageHandler(None)
    rx = [re.compile(p) for p in _BENIGN_QT_PATTERNS]

    def handler(msg_type, context, message):
        text = str(message)
        for r in rx:
            if r.search(text):
                return  # swallow benign messages
        QtCore.qInstallMessageHandler(None)
        try:
            QtCore.qDebug(message)
        finally:
            QtCore.qInstallMessageHandler(handler)

    QtCore.qInstallMessageHandler(handler)
    try:
        yield
    finally:
        QtCore.qInstallMessageHandler(original)


# ---------- DB ----------
@pytest.fixture()
def conn():
    con = sqlite3.connect(":memory:")
    con.row_factory = sqlite3.Row
    apply_schema(con)
    try:
        yield con
    finally:
        con.close()


# ---------- Deterministic clock + ids ----------
class StepClock:
    """ISO-8601 UTC stamps, one second apart on every call."""

    def __init__(self, start: str = "2026-01-01T00:00:00"):
        self.current = datetime.fromisoformat(start).replace(tzinfo=timezone.utc)

    def __call__(self) -> str:
        stamp = self.current.strftime("%Y-%m-%dT%H:%M:%S.000Z")
        self.current += timedelta(seconds=1)
        return stamp


@pytest.fixture()
def clock():
    return StepClock()


@pytest.fixture()
def ids():
    counter = count(1)
    return lambda: f"sale-{next(counter)}"


# ---------- Sample data ----------
@pytest.fixture()
def catalog():
    return [
        CatalogProduct(ref="SUN2000-10KTL-M1", category="Inverters", buy_price_unit=800.0, initial_stock=10, order=1),
        CatalogProduct(ref="LUNA2000-5-E0", category="Batteries", buy_price_unit=1500.0, initial_stock=6, order=2),
        CatalogProduct(ref="SMARTLOGGER-3000A", category="Accessories", buy_price_unit=20.0, initial_stock=3, order=3),
    ]


@pytest.fixture()
def make_input():
    """Factory for a valid sale payload; keyword overrides win."""
    def _make(**overrides):
        data = {
            "date": "2026-03-10",
            "client_or_tx": "ACME Solar",
            "transaction_ref": "TX-1",
            "channel": "Sun.store",
            "customer_country": "Germany",
            "product_ref": "SUN2000-10KTL-M1",
            "quantity": 1,
            "sell_price_unit_ht": 1000,
            "shipping_charged": 0,
            "shipping_real": 0,
            "payment_method": "Stripe",
            "category": "Inverters",
            "buy_price_unit": 800,
        }
        data.update(overrides)
        return data
    return _make


@pytest.fixture()
def session(conn, catalog, clock, ids):
    from margin_tracker.session import TrackerSession

    s = TrackerSession(conn, clock=clock, id_factory=ids)
    s.replace_catalog(catalog)
    return s


# ---------- Remote store double ----------
class MemoryRemoteStore:
    """In-process RemoteStore: counts calls, can be told to fail, stamps strictly increase."""

    def __init__(self):
        self.record: RemoteRecord | None = None
        self.reads = 0
        self.writes = 0
        self.fail = False
        self.on_read = None
        self._stamps = StepClock("2026-06-01T00:00:00")

    def _check(self):
        if self.fail:
            raise RemoteStoreError("remote unavailable")

    def read(self):
        self._check()
        self.reads += 1
        if self.on_read is not None:
            self.on_read()
        return self.record

    def read_timestamp(self):
        self._check()
        return self.record.updated_at if self.record else None

    def write(self, payload: dict) -> str:
        self._check()
        self.writes += 1
        stamp = self._stamps()
        self.record = RemoteRecord(payload=payload, updated_at=stamp)
        return stamp

    def put(self, payload: dict) -> str:
        """Simulate another device writing, without counting it as ours."""
        stamp = self._stamps()
        self.record = RemoteRecord(payload=payload, updated_at=stamp)
        return stamp


@pytest.fixture()
def remote():
    return MemoryRemoteStore()
