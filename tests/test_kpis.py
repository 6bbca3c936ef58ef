from margin_tracker.models import SaleInput
from margin_tracker.modules.dashboard.kpis import compute_kpis, top_products
from margin_tracker.modules.sales.calculations import build_sale


def _sale(sale_id, **kw):
    base = dict(date="2026-03-10", client_or_tx="ACME", transaction_ref="TX-1", channel="Direct",
                product_ref="A", quantity=1, sell_price_unit_ht=100, buy_price_unit=60)
    base.update(kw)
    return build_sale(sale_id, SaleInput(**base), now="2026-03-10T00:00:00Z")


def test_empty_list_gives_zeros():
    k = compute_kpis([])
    assert k.sales_count == 0
    assert k.avg_net_margin_pct == 0.0
    assert k.by_channel == []


def test_totals_and_channel_breakdown():
    sales = [
        _sale("1"),                                         # margin 40, 40%
        _sale("2", product_ref="B", buy_price_unit=90),     # same order, margin 10, 10%
        _sale("3", transaction_ref="TX-2", channel="Sun.store", payment_method="Wire",
              category="Inverters", sell_price_unit_ht=1000, buy_price_unit=900),
    ]
    k = compute_kpis(sales)
    assert k.sales_count == 3
    assert k.orders_count == 2
    assert k.total_revenue == 1200.0
    # sun.store wire tier 0 inverter: 5.19% of 1000
    assert k.total_commissions == 51.9
    assert k.total_net_margin == 98.1
    assert k.avg_net_margin_pct == round((40 + 10 + 4.81) / 3, 2)
    assert [c.channel for c in k.by_channel] == ["Sun.store", "Direct"]
    assert k.by_channel[1].sales_count == 2
    assert k.by_channel[1].net_margin == 50.0


def test_top_products_by_revenue():
    sales = [_sale("1", product_ref="A", quantity=3), _sale("2", product_ref="B", sell_price_unit_ht=500),
             _sale("3", product_ref="A")]
    rows = top_products(sales, limit=1)
    assert rows == [{"product_ref": "B", "quantity": 1, "revenue": 500.0, "net_margin": 440.0}]
    assert [r["product_ref"] for r in top_products(sales)] == ["B", "A"]
