from PySide6.QtWidgets import (
    QDialog, QFormLayout, QDialogButtonBox, QVBoxLayout, QHBoxLayout, QComboBox,
    QDateEdit, QLineEdit, QLabel, QGroupBox, QTableWidget, QPushButton,
    QAbstractItemView, QCompleter, QGridLayout, QHeaderView
)
from PySide6.QtCore import Qt, QDate

from ...constants import CATEGORIES, CHANNELS, PAYMENT_METHODS
from ...models import Sale
from ...utils.helpers import today_str, fmt_money, fmt_pct, to_number
from ...utils.ui_helpers import info
from .calculations import is_france, is_power_wp_required


def _num_text(v) -> str:
    if v is None:
        return ""
    return f"{v:g}" if isinstance(v, float) else str(v)


class SaleForm(QDialog):
    """
    Add / edit one sale line. Computed amounts are previewed live through
    session.preview(); OK is refused while session.validate() returns a message.
    """

    PREVIEW_FIELDS = [
        ("Total HT", "sell_total_ht", "money"),
        ("Transaction value", "transaction_value", "money"),
        ("Commission", "commission_rate_display", "text"),
        ("Commission €", "commission_eur", "money"),
        ("Payment fee", "payment_fee", "money"),
        ("Net received", "net_received", "money"),
        ("Total cost", "total_cost", "money"),
        ("Gross margin", "gross_margin", "money"),
        ("Net margin", "net_margin", "money"),
        ("Margin %", "net_margin_pct", "pct"),
    ]

    def __init__(self, parent=None, *, session, initial: Sale | None = None):
        super().__init__(parent)
        self.setWindowTitle("Edit sale" if initial else "New sale")
        self.setModal(True)
        self.session = session
        self._sale_id = initial.id if initial else None
        self._payload = None
        self._catalog = session.state.catalog_map()

        # --- header widgets ---
        self.date = QDateEdit(); self.date.setCalendarPopup(True)
        self.date.setDisplayFormat("yyyy-MM-dd")
        start = initial.date if initial and initial.date else today_str()
        self.date.setDate(QDate.fromString(start, "yyyy-MM-dd"))

        self.edt_client = QLineEdit(); self.edt_client.setPlaceholderText("Client name or transaction id")
        self.edt_tx = QLineEdit(); self.edt_tx.setPlaceholderText("Marketplace / invoice reference")
        self.edt_country = QLineEdit(); self.edt_country.setPlaceholderText("e.g. France, Germany")

        self.cmb_channel = QComboBox(); self.cmb_channel.addItems(list(CHANNELS))
        self.cmb_payment = QComboBox(); self.cmb_payment.addItems(list(PAYMENT_METHODS))
        self.cmb_category = QComboBox(); self.cmb_category.addItems(list(CATEGORIES))

        self.cmb_product = QComboBox(); self.cmb_product.setEditable(True)
        self.cmb_product.lineEdit().setPlaceholderText("Type product reference…")
        refs = [c.ref for c in sorted(self._catalog.values(), key=lambda c: c.order)]
        self.cmb_product.addItems(refs)
        self.cmb_product.setCurrentIndex(-1)
        self._completer = QCompleter(refs, self)
        self._completer.setCaseSensitivity(Qt.CaseInsensitive)
        self._completer.setFilterMode(Qt.MatchContains)
        self.cmb_product.setCompleter(self._completer)
        self.lbl_stock = QLabel("")

        self.edt_qty = QLineEdit(); self.edt_qty.setPlaceholderText("1")
        self.edt_unit_ht = QLineEdit(); self.edt_unit_ht.setPlaceholderText("0.00")
        self.edt_buy = QLineEdit(); self.edt_buy.setPlaceholderText("0.00")
        self.edt_ship_charged = QLineEdit(); self.edt_ship_charged.setPlaceholderText("0.00")
        self.edt_ship_real = QLineEdit(); self.edt_ship_real.setPlaceholderText("0.00")
        self.edt_power = QLineEdit(); self.edt_power.setPlaceholderText("Total Wp")
        self.lbl_power = QLabel("Power (Wp)")

        self.edt_tracking = QLineEdit(); self.edt_tracking.setPlaceholderText("Comma separated")
        self.edt_provider = QLineEdit()
        self.edt_ship_status = QLineEdit()
        self.edt_invoice = QLineEdit(); self.edt_invoice.setPlaceholderText("https://…")

        form = QFormLayout()
        form.addRow("Date", self.date)
        form.addRow("Client / TX", self.edt_client)
        form.addRow("Transaction ref", self.edt_tx)
        form.addRow("Channel", self.cmb_channel)
        form.addRow("Country", self.edt_country)
        form.addRow("Payment method", self.cmb_payment)
        form.addRow("Product", self.cmb_product)
        form.addRow("", self.lbl_stock)
        form.addRow("Category", self.cmb_category)
        form.addRow("Quantity", self.edt_qty)
        form.addRow("Unit price HT", self.edt_unit_ht)
        form.addRow("Unit buy price", self.edt_buy)
        form.addRow("Shipping charged", self.edt_ship_charged)
        form.addRow("Shipping real", self.edt_ship_real)
        form.addRow(self.lbl_power, self.edt_power)

        ship_box = QGroupBox("Shipping / invoice")
        sf = QFormLayout(ship_box)
        sf.addRow("Tracking numbers", self.edt_tracking)
        sf.addRow("Provider", self.edt_provider)
        sf.addRow("Status", self.edt_ship_status)
        sf.addRow("Invoice URL", self.edt_invoice)

        # --- live preview ---
        prev_box = QGroupBox("Computed")
        grid = QGridLayout(prev_box)
        self._preview_labels: dict[str, QLabel] = {}
        for i, (title, attr, _kind) in enumerate(self.PREVIEW_FIELDS):
            grid.addWidget(QLabel(title), i, 0)
            lbl = QLabel("—")
            lbl.setAlignment(Qt.AlignRight | Qt.AlignVCenter)
            grid.addWidget(lbl, i, 1)
            self._preview_labels[attr] = lbl
        self.lbl_ttc = QLabel("")
        grid.addWidget(self.lbl_ttc, len(self.PREVIEW_FIELDS), 0, 1, 2)
        self.lbl_error = QLabel("")
        self.lbl_error.setStyleSheet("color: #c62828;")
        self.lbl_error.setWordWrap(True)

        cols = QHBoxLayout()
        left = QVBoxLayout(); left.addLayout(form); left.addWidget(ship_box)
        right = QVBoxLayout(); right.addWidget(prev_box); right.addStretch(1)
        cols.addLayout(left, 3); cols.addLayout(right, 2)

        self.buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        self.buttons.accepted.connect(self.accept)
        self.buttons.rejected.connect(self.reject)

        lay = QVBoxLayout(self)
        lay.addLayout(cols)
        lay.addWidget(self.lbl_error)
        lay.addWidget(self.buttons)

        if initial:
            self._load(initial)

        # picking a catalog product pre-fills category + buy price
        self.cmb_product.currentTextChanged.connect(self._on_product_changed)
        for w in (self.edt_client, self.edt_tx, self.edt_country, self.edt_qty, self.edt_unit_ht,
                  self.edt_buy, self.edt_ship_charged, self.edt_ship_real, self.edt_power):
            w.textChanged.connect(lambda _=None: self._refresh_preview())
        for c in (self.cmb_channel, self.cmb_payment, self.cmb_category):
            c.currentIndexChanged.connect(lambda _=None: self._refresh_preview())
        self.date.dateChanged.connect(lambda _=None: self._refresh_preview())
        self._refresh_preview()

    # ------------------------------------------------------------------
    def _load(self, s: Sale):
        self.edt_client.setText(s.client_or_tx)
        self.edt_tx.setText(s.transaction_ref)
        self.edt_country.setText(s.customer_country)
        self.cmb_channel.setCurrentText(s.channel)
        self.cmb_payment.setCurrentText(s.payment_method)
        self.cmb_category.setCurrentText(s.category)
        self.cmb_product.setEditText(s.product_ref)
        self.edt_qty.setText(_num_text(s.quantity))
        self.edt_unit_ht.setText(_num_text(s.sell_price_unit_ht))
        self.edt_buy.setText(_num_text(s.buy_price_unit))
        self.edt_ship_charged.setText(_num_text(s.shipping_charged))
        self.edt_ship_real.setText(_num_text(s.shipping_real))
        self.edt_power.setText(_num_text(s.power_wp))
        self.edt_tracking.setText(", ".join(s.tracking_numbers))
        self.edt_provider.setText(s.shipping_provider or "")
        self.edt_ship_status.setText(s.shipping_status or "")
        self.edt_invoice.setText(s.invoice_url or "")
        self._attachments = list(s.attachments)

    def _on_product_changed(self, text: str):
        item = self._catalog.get((text or "").strip())
        if item is not None:
            self.cmb_category.setCurrentText(item.category)
            self.edt_buy.setText(_num_text(item.buy_price_unit))
        self._refresh_preview()

    def _raw(self) -> dict:
        return {
            "date": self.date.date().toString("yyyy-MM-dd"),
            "client_or_tx": self.edt_client.text(),
            "transaction_ref": self.edt_tx.text(),
            "channel": self.cmb_channel.currentText(),
            "customer_country": self.edt_country.text(),
            "product_ref": self.cmb_product.currentText(),
            "quantity": self.edt_qty.text(),
            "sell_price_unit_ht": self.edt_unit_ht.text(),
            "shipping_charged": self.edt_ship_charged.text(),
            "shipping_real": self.edt_ship_real.text(),
            "payment_method": self.cmb_payment.currentText(),
            "category": self.cmb_category.currentText(),
            "buy_price_unit": self.edt_buy.text(),
            "power_wp": self.edt_power.text(),
            "attachments": getattr(self, "_attachments", []),
            "tracking_numbers": [t.strip() for t in self.edt_tracking.text().split(",") if t.strip()],
            "shipping_provider": self.edt_provider.text(),
            "shipping_status": self.edt_ship_status.text(),
            "invoice_url": self.edt_invoice.text(),
        }

    def _refresh_preview(self):
        needs_power = is_power_wp_required(self.cmb_channel.currentText(), self.cmb_category.currentText())
        self.lbl_power.setVisible(needs_power)
        self.edt_power.setVisible(needs_power)

        ref = (self.cmb_product.currentText() or "").strip()
        qty = self.session.state.stock.get(ref)
        self.lbl_stock.setText("" if qty is None else f"In stock: {_num_text(qty)}")

        raw = self._raw()
        preview = self.session.preview(raw, self._sale_id)
        for _title, attr, kind in self.PREVIEW_FIELDS:
            value = getattr(preview, attr)
            if kind == "money":
                text = fmt_money(value)
            elif kind == "pct":
                text = fmt_pct(value)
            else:
                text = str(value)
            self._preview_labels[attr].setText(text)

        if is_france(raw["customer_country"]) and preview.sell_price_unit_ttc is not None:
            self.lbl_ttc.setText(f"Unit TTC (20% VAT): {fmt_money(preview.sell_price_unit_ttc)}")
        else:
            self.lbl_ttc.setText("")

        err = self.session.validate(raw, self._sale_id)
        self.lbl_error.setText(err or "")

    # ------------------------------------------------------------------
    def accept(self):
        raw = self._raw()
        err = self.session.validate(raw, self._sale_id)
        if err:
            info(self, "Invalid sale", err)
            return
        self._payload = raw
        super().accept()

    def payload(self) -> dict | None:
        return self._payload


class OrderForm(QDialog):
    """
    Several product lines sharing one header (date, client, transaction, channel,
    country, payment method). Order shipping is typed once and split across lines
    by session.save_order().
    """

    COLS = ["Product", "Category", "Qty", "Unit HT", "Unit buy", "Power (Wp)", ""]

    def __init__(self, parent=None, *, session):
        super().__init__(parent)
        self.setWindowTitle("New order")
        self.setModal(True)
        self.session = session
        self._catalog = session.state.catalog_map()
        self._payload = None

        self.date = QDateEdit(); self.date.setCalendarPopup(True)
        self.date.setDisplayFormat("yyyy-MM-dd")
        self.date.setDate(QDate.fromString(today_str(), "yyyy-MM-dd"))
        self.edt_client = QLineEdit()
        self.edt_tx = QLineEdit()
        self.edt_country = QLineEdit()
        self.cmb_channel = QComboBox(); self.cmb_channel.addItems(list(CHANNELS))
        self.cmb_payment = QComboBox(); self.cmb_payment.addItems(list(PAYMENT_METHODS))
        self.edt_ship_charged = QLineEdit(); self.edt_ship_charged.setPlaceholderText("0.00")
        self.edt_ship_real = QLineEdit(); self.edt_ship_real.setPlaceholderText("0.00")

        head = QFormLayout()
        head.addRow("Date", self.date)
        head.addRow("Client / TX", self.edt_client)
        head.addRow("Transaction ref", self.edt_tx)
        head.addRow("Channel", self.cmb_channel)
        head.addRow("Country", self.edt_country)
        head.addRow("Payment method", self.cmb_payment)
        head.addRow("Order shipping charged", self.edt_ship_charged)
        head.addRow("Order shipping real", self.edt_ship_real)

        box = QGroupBox("Lines"); ib = QVBoxLayout(box)
        self.tbl = QTableWidget(0, len(self.COLS))
        self.tbl.setHorizontalHeaderLabels(self.COLS)
        self.tbl.verticalHeader().setVisible(False)
        self.tbl.setSelectionBehavior(QAbstractItemView.SelectRows)
        self.tbl.horizontalHeader().setSectionResizeMode(0, QHeaderView.Stretch)
        ib.addWidget(self.tbl)
        self.btn_add_line = QPushButton("Add line")
        self.btn_add_line.clicked.connect(lambda: self._add_row())
        ib.addWidget(self.btn_add_line, 0, Qt.AlignLeft)

        self.lbl_total = QLabel("")
        self.buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        self.buttons.accepted.connect(self.accept)
        self.buttons.rejected.connect(self.reject)

        lay = QVBoxLayout(self)
        lay.addLayout(head)
        lay.addWidget(box, 1)
        lay.addWidget(self.lbl_total)
        lay.addWidget(self.buttons)

        self._add_row()

    def _add_row(self):
        r = self.tbl.rowCount()
        self.tbl.insertRow(r)

        cmb_prod = QComboBox(); cmb_prod.setEditable(True)
        refs = [c.ref for c in sorted(self._catalog.values(), key=lambda c: c.order)]
        cmb_prod.addItems(refs)
        cmb_prod.setCurrentIndex(-1)
        cmb_cat = QComboBox(); cmb_cat.addItems(list(CATEGORIES))
        edits = [QLineEdit() for _ in range(4)]
        btn_del = QPushButton("✕")

        def on_prod(text: str):
            item = self._catalog.get((text or "").strip())
            if item is not None:
                cmb_cat.setCurrentText(item.category)
                edits[2].setText(_num_text(item.buy_price_unit))
            self._refresh_total()

        cmb_prod.currentTextChanged.connect(on_prod)
        for e in edits:
            e.textChanged.connect(lambda _=None: self._refresh_total())

        def kill():
            for row in range(self.tbl.rowCount()):
                if self.tbl.cellWidget(row, len(self.COLS) - 1) is btn_del:
                    self.tbl.removeRow(row)
                    break
            self._refresh_total()

        btn_del.clicked.connect(kill)

        self.tbl.setCellWidget(r, 0, cmb_prod)
        self.tbl.setCellWidget(r, 1, cmb_cat)
        for i, e in enumerate(edits, start=2):
            self.tbl.setCellWidget(r, i, e)
        self.tbl.setCellWidget(r, len(self.COLS) - 1, btn_del)

    def _lines(self) -> list[dict]:
        out = []
        for r in range(self.tbl.rowCount()):
            ref = self.tbl.cellWidget(r, 0).currentText().strip()
            if not ref:
                continue
            out.append(
                {
                    "product_ref": ref,
                    "category": self.tbl.cellWidget(r, 1).currentText(),
                    "quantity": self.tbl.cellWidget(r, 2).text(),
                    "sell_price_unit_ht": self.tbl.cellWidget(r, 3).text(),
                    "buy_price_unit": self.tbl.cellWidget(r, 4).text(),
                    "power_wp": self.tbl.cellWidget(r, 5).text(),
                }
            )
        return out

    def _refresh_total(self):
        total = sum(to_number(l["quantity"]) * to_number(l["sell_price_unit_ht"]) for l in self._lines())
        self.lbl_total.setText(f"Lines total HT: {fmt_money(total)}")

    def header(self) -> dict:
        return {
            "date": self.date.date().toString("yyyy-MM-dd"),
            "client_or_tx": self.edt_client.text(),
            "transaction_ref": self.edt_tx.text(),
            "channel": self.cmb_channel.currentText(),
            "customer_country": self.edt_country.text(),
            "payment_method": self.cmb_payment.currentText(),
        }

    def accept(self):
        lines = self._lines()
        if not lines:
            info(self, "Order", "Add at least one product line.")
            return
        self._payload = {
            "header": self.header(),
            "lines": lines,
            "shipping_charged": to_number(self.edt_ship_charged.text()),
            "shipping_real": to_number(self.edt_ship_real.text()),
        }
        super().accept()

    def payload(self) -> dict | None:
        return self._payload
