from margin_tracker.models import CatalogProduct, SaleInput
from margin_tracker.modules.sales.calculations import build_sale
from margin_tracker.modules.sales.exports import (
    CATALOG_CSV_HEADER,
    SALES_CSV_HEADER,
    catalog_to_csv,
    sales_to_csv,
    write_csv,
)


def _sale():
    return build_sale(
        "s1",
        SaleInput(date="2026-03-10", client_or_tx="Dupont; fils", channel="Direct", product_ref="REF-1",
                  quantity=2, sell_price_unit_ht=99.5, buy_price_unit=50, attachments=[{"name": "a.pdf"}]),
        now="2026-03-10T08:00:00.000Z",
    )


def test_sales_csv_layout():
    lines = sales_to_csv([_sale()]).split("\n")
    assert lines[0] == ";".join(SALES_CSV_HEADER)
    assert len(lines) == 2
    assert lines[1].startswith('s1;2026-03-10;"Dupont; fils";;Direct;;REF-1;2;99.5;;199;')
    # attachments_count then timestamps at the end
    assert lines[1].endswith(";1;2026-03-10T08:00:00.000Z;2026-03-10T08:00:00.000Z")


def test_catalog_csv_uses_current_stock_and_labels():
    catalog = [
        CatalogProduct(ref="A", category="Inverters", buy_price_unit=800.0, initial_stock=10, order=1),
        CatalogProduct(ref="B", category="Batteries", buy_price_unit=12.34, initial_stock=3, order=2,
                       datasheet_url="https://example.com/b.pdf"),
    ]
    lines = catalog_to_csv(catalog, {"A": 10, "B": 0}).split("\n")
    assert lines[0] == ";".join(CATALOG_CSV_HEADER)
    assert lines[1] == "1;A;Inverters;800;10;10;OK;"
    assert lines[2] == "2;B;Batteries;12.34;3;0;Out of stock;https://example.com/b.pdf"


def test_write_csv_adds_bom_and_trailing_newline(tmp_path):
    out = write_csv(tmp_path / "exports" / "sales.csv", "a;b\n1;2")
    raw = out.read_bytes()
    assert raw.startswith(b"\xef\xbb\xbf")
    assert raw.endswith(b"1;2\n")
