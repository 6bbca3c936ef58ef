from PySide6.QtCore import Qt
from PySide6.QtGui import QColor

from margin_tracker.modules.inventory.model import StockTableModel
from margin_tracker.modules.sales.model import OrdersTableModel, SalesTableModel


def _col(model, attr):
    return [c[1] for c in model.COLUMNS].index(attr)


def test_sales_model_formats_money_and_keeps_raw(session, make_input):
    sale, _ = session.save_sale(make_input(quantity=2, sell_price_unit_ht=1000))
    model = SalesTableModel(session.state.sales)
    assert model.rowCount() == 1
    idx = model.index(0, _col(model, "sell_total_ht"))
    assert model.data(idx) == "2,000.00"
    assert model.data(idx, Qt.UserRole) == 2000.0
    assert model.data(model.index(0, _col(model, "quantity"))) == "2"
    assert model.headerData(0, Qt.Horizontal) == "Date"
    assert model.sale_at(0) is sale


def test_sales_model_colours_margins(session, make_input):
    session.save_sale(make_input(sell_price_unit_ht=400))
    model = SalesTableModel(session.state.sales)
    idx = model.index(0, _col(model, "net_margin"))
    assert model.data(idx, Qt.UserRole) < 0
    assert model.data(idx, Qt.ForegroundRole) == QColor("#c62828")
    # text columns carry no colour
    assert model.data(model.index(0, _col(model, "client_or_tx")), Qt.ForegroundRole) is None


def test_orders_model_flags_stock(session, make_input):
    session.save_sale(make_input(product_ref="SMARTLOGGER-3000A", category="Accessories",
                                 quantity=3, sell_price_unit_ht=50, buy_price_unit=20))
    model = OrdersTableModel(session.orders())
    assert model.rowCount() == 1
    idx = model.index(0, _col(model, "stock_flags"))
    assert model.data(idx) == "Out: SMARTLOGGER-3000A"
    assert model.data(idx, Qt.BackgroundRole) == QColor("#fdecea")
    assert model.data(model.index(0, _col(model, "product_refs"))) == "SMARTLOGGER-3000A"
    assert model.order_at(0).line_count == 1


def test_orders_model_low_stock_background(session, make_input):
    session.save_sale(make_input(quantity=5))
    [order] = session.orders()
    assert order.low_stock_refs == ["SUN2000-10KTL-M1"]
    model = OrdersTableModel([order])
    idx = model.index(0, _col(model, "stock_flags"))
    assert model.data(idx) == "Low: SUN2000-10KTL-M1"
    assert model.data(idx, Qt.BackgroundRole) == QColor("#fff8e1")


def test_stock_model(session):
    model = StockTableModel(session.stock_rows())
    assert model.rowCount() == 3
    assert model.columnCount() == len(StockTableModel.COLUMNS)
    assert model.data(model.index(0, 0)) == "SUN2000-10KTL-M1"
    assert model.data(model.index(0, 2)) == "800.00"
    assert model.data(model.index(2, 5)) == "Low stock"
    assert model.data(model.index(2, 0), Qt.BackgroundRole) == QColor("#fff8e1")
    assert model.data(model.index(0, 0), Qt.BackgroundRole) is None

    model.replace([])
    assert model.rowCount() == 0
