import pytest

from margin_tracker.database.repositories.sales_repo import DomainError
from margin_tracker.models import CatalogProduct
from margin_tracker.modules.backup_restore.snapshot import build_backup
from margin_tracker.modules.sales.filters import SaleFilters
from margin_tracker.session import TrackerSession

REF = "SUN2000-10KTL-M1"


@pytest.fixture()
def emitted(session):
    seen = {"changed": 0, "local": 0}
    session.changed.connect(lambda: seen.__setitem__("changed", seen["changed"] + 1))
    session.locally_modified.connect(lambda: seen.__setitem__("local", seen["local"] + 1))
    return seen


def test_save_sale_creates_line_and_updates_stock(session, make_input, emitted):
    before = session.state.generated_at
    sale, err = session.save_sale(make_input(quantity=3))
    assert err is None
    assert sale.id == "sale-1"
    assert sale.quantity == 3
    assert session.state.sales[0] is sale
    assert session.state.stock[REF] == 7
    assert session.state.generated_at != before
    assert emitted == {"changed": 1, "local": 1}


def test_new_sales_go_on_top(session, make_input):
    first, _ = session.save_sale(make_input(client_or_tx="First"))
    second, _ = session.save_sale(make_input(client_or_tx="Second"))
    assert [s.id for s in session.state.sales] == [second.id, first.id]


def test_invalid_sale_is_not_saved(session, make_input, emitted):
    revision = session.revision
    sale, err = session.save_sale(make_input(client_or_tx=""))
    assert sale is None
    assert err == "Client / transaction is required."
    assert session.state.sales == []
    assert session.revision == revision
    assert emitted == {"changed": 0, "local": 0}


def test_stock_blocks_overselling(session, make_input):
    _sale, err = session.save_sale(make_input(quantity=11))
    assert err == f"Insufficient stock for {REF} (available: 10)."


def test_edit_gives_back_own_quantity(session, make_input):
    sale, _ = session.save_sale(make_input(quantity=10))
    assert session.state.stock[REF] == 0
    edited, err = session.save_sale(make_input(quantity=10, sell_price_unit_ht=1100), sale.id)
    assert err is None
    assert edited.id == sale.id
    assert edited.created_at == sale.created_at
    assert edited.sell_total_ht == 11000.0
    assert len(session.state.sales) == 1


def test_edit_unknown_sale_raises(session, make_input):
    with pytest.raises(DomainError):
        session.save_sale(make_input(), "nope")


def test_delete_sale_restores_stock(session, make_input):
    sale, _ = session.save_sale(make_input(quantity=4))
    session.delete_sale(sale.id)
    assert session.state.sales == []
    assert session.state.stock[REF] == 10


HEADER = {"date": "2026-03-12", "client_or_tx": "Order Co", "transaction_ref": "SO-5",
          "channel": "Sun.store", "payment_method": "Stripe", "customer_country": "Italy"}


def _line(ref=REF, qty=1, price=1000, category="Inverters"):
    return {"product_ref": ref, "quantity": qty, "sell_price_unit_ht": price, "category": category,
            "buy_price_unit": 500}


def test_save_order_splits_shipping_and_keeps_line_order(session):
    lines = [_line(qty=1, price=100), _line("SMARTLOGGER-3000A", qty=2, price=100, category="Accessories")]
    created, err = session.save_order(HEADER, lines, shipping_charged=10, shipping_real=6)
    assert err is None
    assert [s.shipping_charged for s in created] == [3.33, 6.67]
    assert [s.shipping_real for s in created] == [2.0, 4.0]
    assert [s.id for s in session.state.sales[:2]] == [c.id for c in created]
    assert [s.id for s in session.sales_repo.list_sales()] == [c.id for c in created]

    [order] = session.orders()
    assert order.line_count == 2
    assert order.payment_fee == 5.0


def test_save_order_checks_stock_across_lines(session):
    created, err = session.save_order(HEADER, [_line(qty=6), _line(qty=5)])
    assert created == []
    assert err == f"Line 2: Insufficient stock for {REF} (available: 4)."
    assert session.state.sales == []


def test_save_order_needs_lines(session):
    assert session.save_order(HEADER, []) == ([], "An order needs at least one product line.")


def test_import_backup_counts_as_local_edit(session, make_input, emitted):
    session.save_sale(make_input())
    payload = build_backup([], [CatalogProduct(ref="X", initial_stock=2, order=1)], {}, "2026-01-01T00:00:00.000Z")
    session.import_backup(payload)
    assert session.state.sales == []
    assert session.state.stock == {"X": 2}
    assert session.state.generated_at != "2026-01-01T00:00:00.000Z"
    assert emitted["local"] == 2


def test_adopt_snapshot_keeps_remote_stamp_and_stays_quiet(session, make_input, emitted):
    sale, _ = session.save_sale(make_input())
    payload = build_backup([sale], session.state.catalog, {}, "2026-09-01T00:00:00.000Z")
    session.adopt_snapshot(payload)
    assert session.state.generated_at == "2026-09-01T00:00:00.000Z"
    assert session.state.stock[REF] == 9
    assert emitted == {"changed": 2, "local": 1}


def test_reload_from_same_connection(session, make_input, conn):
    session.save_sale(make_input(client_or_tx="A"))
    session.save_sale(make_input(client_or_tx="B"))
    again = TrackerSession(conn)
    assert [s.client_or_tx for s in again.state.sales] == ["B", "A"]
    assert again.state.stock[REF] == 8
    assert again.state.generated_at == session.state.generated_at


def test_derived_views(session, make_input):
    session.save_sale(make_input(channel="Direct", payment_method="Wire"))
    session.save_sale(make_input(transaction_ref="TX-2"))
    assert len(session.filtered_sales(SaleFilters(channel="Direct"))) == 1
    assert session.kpis().sales_count == 2
    assert len(session.orders()) == 2
    snap = session.snapshot()
    assert snap.generated_at == session.state.generated_at
    assert len(snap.sales) == 2
    assert [r["ref"] for r in session.stock_rows(only_low=True)] == ["SMARTLOGGER-3000A"]
