from margin_tracker.modules.sales.form import OrderForm, SaleForm

REF = "SUN2000-10KTL-M1"


def _fill(form, qty="1", price="1000"):
    form.edt_client.setText("ACME Solar")
    form.cmb_product.setCurrentText(REF)
    form.edt_qty.setText(qty)
    form.edt_unit_ht.setText(price)


def test_picking_a_product_prefills_category_and_buy(qtbot, session):
    form = SaleForm(session=session)
    qtbot.addWidget(form)
    form.cmb_product.setCurrentText("LUNA2000-5-E0")
    assert form.cmb_category.currentText() == "Batteries"
    assert form.edt_buy.text() == "1500"
    assert form.lbl_stock.text() == "In stock: 6"


def test_live_preview(qtbot, session):
    form = SaleForm(session=session)
    qtbot.addWidget(form)
    _fill(form)
    assert form._preview_labels["sell_total_ht"].text() == "1,000.00"
    assert form._preview_labels["commission_rate_display"].text() == "3.99%"
    assert form._preview_labels["payment_fee"].text() == "5.00"
    assert form._preview_labels["net_margin"].text() == "155.10"
    assert form.lbl_error.text() == ""
    assert form.lbl_ttc.text() == ""

    form.edt_country.setText("France")
    assert form.lbl_ttc.text() == "Unit TTC (20% VAT): 1,200.00"


def test_error_label_follows_validation(qtbot, session):
    form = SaleForm(session=session)
    qtbot.addWidget(form)
    assert form.lbl_error.text() == "Client / transaction is required."
    _fill(form, qty="11")
    assert form.lbl_error.text() == f"Insufficient stock for {REF} (available: 10)."


def test_power_field_only_for_solartraders_panels(qtbot, session):
    form = SaleForm(session=session)
    qtbot.addWidget(form)
    assert form.edt_power.isHidden()
    form.cmb_channel.setCurrentText("Solartraders")
    form.cmb_category.setCurrentText("Solar Panels")
    assert not form.edt_power.isHidden()
    assert not form.lbl_power.isHidden()


def test_accept_stores_payload(qtbot, session):
    form = SaleForm(session=session)
    qtbot.addWidget(form)
    _fill(form, qty="2")
    form.edt_tracking.setText("1Z1, 1Z2 ,")
    form.accept()
    payload = form.payload()
    assert payload["product_ref"] == REF
    assert payload["quantity"] == "2"
    assert payload["tracking_numbers"] == ["1Z1", "1Z2"]


def test_edit_form_loads_sale(qtbot, session, make_input):
    sale, _ = session.save_sale(make_input(quantity=10))
    form = SaleForm(session=session, initial=sale)
    qtbot.addWidget(form)
    assert form.windowTitle() == "Edit sale"
    assert form.edt_client.text() == "ACME Solar"
    assert form.date.date().toString("yyyy-MM-dd") == "2026-03-10"
    # the line's own quantity is available again while editing
    assert form.lbl_error.text() == ""


def test_order_form_lines_and_payload(qtbot, session):
    form = OrderForm(session=session)
    qtbot.addWidget(form)
    assert form.tbl.rowCount() == 1
    assert form._lines() == []

    form.tbl.cellWidget(0, 0).setCurrentText(REF)
    assert form.tbl.cellWidget(0, 1).currentText() == "Inverters"
    assert form.tbl.cellWidget(0, 4).text() == "800"
    form.tbl.cellWidget(0, 2).setText("2")
    form.tbl.cellWidget(0, 3).setText("100")

    form.btn_add_line.click()
    assert form.tbl.rowCount() == 2
    form.tbl.cellWidget(1, 0).setCurrentText("SMARTLOGGER-3000A")
    form.tbl.cellWidget(1, 2).setText("1")
    form.tbl.cellWidget(1, 3).setText("50")
    assert form.lbl_total.text() == "Lines total HT: 250.00"

    form.edt_client.setText("Order Co")
    form.edt_ship_charged.setText("10")
    form.accept()
    payload = form.payload()
    assert payload["header"]["client_or_tx"] == "Order Co"
    assert [l["product_ref"] for l in payload["lines"]] == [REF, "SMARTLOGGER-3000A"]
    assert payload["shipping_charged"] == 10.0
    assert payload["shipping_real"] == 0.0


def test_order_form_delete_line(qtbot, session):
    form = OrderForm(session=session)
    qtbot.addWidget(form)
    form._add_row()
    form.tbl.cellWidget(1, len(OrderForm.COLS) - 1).click()
    assert form.tbl.rowCount() == 1
