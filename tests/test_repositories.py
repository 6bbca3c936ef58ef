import pytest

from margin_tracker.database import get_connection
from margin_tracker.database.repositories.catalog_repo import CatalogRepo
from margin_tracker.database.repositories.sales_repo import DomainError, SalesRepo
from margin_tracker.database.repositories.state_repo import StateRepo
from margin_tracker.models import SaleInput
from margin_tracker.modules.sales.calculations import build_sale


def _sale(sale_id, **kw):
    base = dict(date="2026-03-10", client_or_tx="ACME", channel="Sun.store", payment_method="Stripe",
                product_ref="SUN2000-10KTL-M1", category="Inverters", quantity=1, sell_price_unit_ht=1000,
                buy_price_unit=800, tracking_numbers=["1Z999"], attachments=[{"name": "invoice.pdf"}])
    base.update(kw)
    return build_sale(sale_id, SaleInput(**base), now="2026-03-10T08:00:00.000Z")


def test_insert_puts_new_sales_on_top(conn):
    repo = SalesRepo(conn)
    repo.insert(_sale("first"))
    repo.insert(_sale("second"))
    assert [s.id for s in repo.list_sales()] == ["second", "first"]
    assert repo.count() == 2


def test_round_trip_rebuilds_money_fields(conn):
    repo = SalesRepo(conn)
    repo.insert(_sale("s1"))
    stored = repo.get("s1")
    assert stored.net_margin == _sale("s1").net_margin
    assert stored.payment_fee == 5.0
    assert stored.tracking_numbers == ["1Z999"]
    assert stored.attachments == [{"name": "invoice.pdf"}]
    assert repo.get("missing") is None


def test_duplicate_id_is_a_domain_error(conn):
    repo = SalesRepo(conn)
    repo.insert(_sale("s1"))
    with pytest.raises(DomainError):
        repo.insert(_sale("s1"))


def test_update_and_delete(conn):
    repo = SalesRepo(conn)
    repo.insert(_sale("s1"))
    repo.update(_sale("s1", quantity=3))
    assert repo.get("s1").quantity == 3
    repo.delete("s1")
    assert repo.count() == 0
    with pytest.raises(DomainError):
        repo.delete("s1")
    with pytest.raises(DomainError):
        repo.update(_sale("s1"))


def test_replace_all_keeps_given_order(conn):
    repo = SalesRepo(conn)
    repo.insert(_sale("old"))
    repo.replace_all([_sale("a"), _sale("b"), _sale("c")])
    assert [s.id for s in repo.list_sales()] == ["a", "b", "c"]


def test_catalog_and_stock_cache(conn, catalog):
    repo = CatalogRepo(conn)
    repo.replace_all(reversed(catalog))
    assert [p.ref for p in repo.list_products()] == [c.ref for c in catalog]

    repo.write_stock_cache({"A": 3, "B": 2.5})
    assert repo.read_stock_cache() == {"A": 3, "B": 2.5}


def test_state_row(conn):
    repo = StateRepo(conn)
    assert repo.get().auto_sync is False
    repo.set_generated_at("2026-03-10T08:00:00.000Z")
    repo.set_remote_baseline("2026-03-10T09:00:00.000Z")
    repo.set_auto_sync(True)
    repo.set_last_status("Already in sync.")
    row = repo.get()
    assert row.generated_at == "2026-03-10T08:00:00.000Z"
    assert row.remote_baseline == "2026-03-10T09:00:00.000Z"
    assert row.auto_sync is True
    assert row.last_status == "Already in sync."


def test_get_connection_creates_file_db(tmp_path):
    con = get_connection(tmp_path / "data" / "tracker.db")
    try:
        tables = {r["name"] for r in con.execute("SELECT name FROM sqlite_master WHERE type='table'")}
        assert {"sales", "catalog_products", "stock_cache", "sync_state", "schema_version"} <= tables
    finally:
        con.close()
