from margin_tracker.models import SaleInput
from margin_tracker.modules.sales.calculations import build_sale
from margin_tracker.modules.sales.filters import SaleFilters, filter_sales


def _sales():
    rows = [
        ("1", "2026-01-05", "ACME", "TX-1", "Sun.store", "Inverters", "SUN2000-10KTL-M1"),
        ("2", "2026-02-10", "Bolt GmbH", "INV-77", "Direct", "Batteries", "LUNA2000-5-E0"),
        ("3", "2026-03-15", "Cielo", "", "Solartraders", "Accessories", "SMARTLOGGER-3000A"),
    ]
    return [
        build_sale(i, SaleInput(date=d, client_or_tx=c, transaction_ref=t, channel=ch, category=cat,
                                product_ref=ref, quantity=1), now="2026-01-01T00:00:00Z")
        for i, d, c, t, ch, cat, ref in rows
    ]


def _ids(rows):
    return [s.id for s in rows]


def test_no_filters_keeps_everything():
    sales = _sales()
    assert _ids(filter_sales(sales)) == ["1", "2", "3"]
    assert SaleFilters().is_empty()
    assert SaleFilters(query="   ").is_empty()


def test_channel_and_category():
    sales = _sales()
    assert _ids(filter_sales(sales, SaleFilters(channel="Direct"))) == ["2"]
    assert _ids(filter_sales(sales, SaleFilters(category="Accessories"))) == ["3"]
    assert _ids(filter_sales(sales, SaleFilters(channel="Direct", category="Inverters"))) == []


def test_date_bounds_are_inclusive():
    sales = _sales()
    f = SaleFilters(date_from="2026-02-10", date_to="2026-03-15")
    assert _ids(filter_sales(sales, f)) == ["2", "3"]


def test_query_matches_client_tx_or_product_case_insensitive():
    sales = _sales()
    assert _ids(filter_sales(sales, SaleFilters(query="bolt"))) == ["2"]
    assert _ids(filter_sales(sales, SaleFilters(query="inv-77"))) == ["2"]
    assert _ids(filter_sales(sales, SaleFilters(query="smartlogger"))) == ["3"]


def test_stock_status_filter_uses_tracked_refs_only():
    sales = _sales()
    stock = {"SUN2000-10KTL-M1": 0, "LUNA2000-5-E0": 4}
    assert _ids(filter_sales(sales, SaleFilters(stock_status="out"), stock)) == ["1"]
    assert _ids(filter_sales(sales, SaleFilters(stock_status="low"), stock)) == ["2"]
