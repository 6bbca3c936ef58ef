from margin_tracker.models import SaleInput
from margin_tracker.modules.sales.calculations import build_sale
from margin_tracker.modules.sales.orders import (
    aggregate_orders,
    build_order_sales,
    group_by_order,
    normalize_order_fees,
    order_key,
)

NOW = "2026-03-10T12:00:00.000Z"


def _sale(sale_id, **kw):
    base = dict(
        date="2026-03-10",
        client_or_tx="ACME",
        transaction_ref="TX-1",
        channel="Sun.store",
        payment_method="Stripe",
        product_ref="SUN2000-10KTL-M1",
        category="Inverters",
        quantity=1,
        sell_price_unit_ht=1000,
        buy_price_unit=800,
    )
    base.update(kw)
    return build_sale(sale_id, SaleInput(**base), now=NOW)


def _sun_store_order():
    a = _sale("a")
    b = _sale("b", product_ref="SMARTLOGGER-3000A", category="Accessories", quantity=2,
              sell_price_unit_ht=50, buy_price_unit=20)
    return a, b


def test_order_key_joins_identity_fields():
    assert order_key(_sale("a")) == "2026-03-10::ACME::TX-1::Sun.store"


def test_group_by_order_splits_on_any_key_field():
    a, b = _sun_store_order()
    c = _sale("c", transaction_ref="TX-2")
    d = _sale("d", channel="Direct")
    groups = group_by_order([a, b, c, d])
    assert [len(v) for v in groups.values()] == [2, 1, 1]


def test_sun_store_order_fee_is_flat():
    a, b = _sun_store_order()
    assert a.payment_fee == 5.0 and b.payment_fee == 5.0

    [row] = aggregate_orders([a, b])
    assert row.line_count == 2
    assert row.product_refs == ["SUN2000-10KTL-M1", "SMARTLOGGER-3000A"]
    assert row.quantity == 3
    assert row.avg_unit_price_ht == 366.67
    assert row.transaction_value == 1100.0
    assert row.commission_eur == 44.78
    assert row.payment_fee_raw == 10.0
    assert row.payment_fee == 5.0
    assert row.net_received == 1050.22
    assert row.net_margin == 210.22
    assert row.net_margin_pct == 19.11


def test_other_channels_keep_summed_fees():
    a = _sale("a", channel="Direct")
    b = _sale("b", channel="Direct", quantity=2)
    [row] = aggregate_orders([a, b])
    assert row.payment_fee == 0.0
    assert row.net_margin == round(a.net_margin + b.net_margin, 2)


def test_normalized_lines_add_up_to_the_order():
    a, b = _sun_store_order()
    lines = normalize_order_fees([a, b])
    assert [s.payment_fee for s in lines] == [5.0, 0.0]
    assert lines[0].net_margin == 155.1
    assert lines[1].net_margin == 55.12
    assert lines[1].net_received == 95.12
    [row] = aggregate_orders([a, b])
    assert round(sum(s.net_margin for s in lines), 2) == row.net_margin


def test_normalize_order_fees_leaves_other_channels_alone():
    a = _sale("a", channel="Solartraders")
    assert normalize_order_fees([a]) == [a]


def test_stock_flags_skip_untracked_refs():
    a = _sale("a", product_ref="OUT")
    b = _sale("b", product_ref="LOW")
    c = _sale("c", product_ref="PLENTY")
    d = _sale("d", product_ref="UNTRACKED")
    [row] = aggregate_orders([a, b, c, d], {"OUT": 0, "LOW": 3, "PLENTY": 50})
    assert row.out_of_stock_refs == ["OUT"]
    assert row.low_stock_refs == ["LOW"]


def test_orders_sorted_newest_first_then_client():
    rows = aggregate_orders([
        _sale("1", date="2026-03-01", client_or_tx="Zeta"),
        _sale("2", date="2026-03-05", client_or_tx="beta"),
        _sale("3", date="2026-03-05", client_or_tx="Alpha"),
    ])
    assert [(r.date, r.client_or_tx) for r in rows] == [
        ("2026-03-05", "Alpha"),
        ("2026-03-05", "beta"),
        ("2026-03-01", "Zeta"),
    ]


def test_build_order_sales_shares_header_and_splits_shipping():
    header = {"date": "2026-04-01", "client_or_tx": "Bob", "transaction_ref": "T9",
              "channel": "Sun.store", "payment_method": "Wire", "customer_country": "FR"}
    lines = [
        {"product_ref": "A", "category": "Inverters", "quantity": 1, "sell_price_unit_ht": 100, "channel": "Direct"},
        {"product_ref": "B", "category": "Accessories", "quantity": 2, "sell_price_unit_ht": 100},
    ]
    out = build_order_sales(header, lines, shipping_charged=10, shipping_real=7.5)
    assert [i.shipping_charged for i in out] == [3.33, 6.67]
    assert round(sum(i.shipping_real for i in out), 2) == 7.5
    assert {i.channel for i in out} == {"Sun.store"}
    assert all(i.client_or_tx == "Bob" and i.date == "2026-04-01" for i in out)
    assert out[0].shipping_charged_ttc is None


def test_build_order_sales_without_lines():
    assert build_order_sales({"date": "2026-04-01"}, []) == []
