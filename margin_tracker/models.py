"""
Domain records shared by the computation core, the repositories and the UI.

Plain dataclasses only: no Qt, no database access. Money fields are floats that
have already been through calculations.round2().
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Optional

from .constants import DEFAULT_CATEGORY, DEFAULT_CHANNEL, DEFAULT_PAYMENT_METHOD

StockMap = dict[str, int]


@dataclass
class SaleInput:
    """What the user (or an import) provides for one sale line."""
    date: str = ""
    client_or_tx: str = ""
    transaction_ref: str = ""
    channel: str = DEFAULT_CHANNEL
    customer_country: str = ""
    product_ref: str = ""
    quantity: float = 0.0
    sell_price_unit_ht: float = 0.0
    sell_price_unit_ttc: Optional[float] = None
    shipping_charged: float = 0.0
    shipping_charged_ttc: Optional[float] = None
    shipping_real: float = 0.0
    shipping_real_ttc: Optional[float] = None
    payment_method: str = DEFAULT_PAYMENT_METHOD
    category: str = DEFAULT_CATEGORY
    buy_price_unit: float = 0.0
    power_wp: Optional[float] = None
    attachments: list[dict] = field(default_factory=list)
    tracking_numbers: list[str] = field(default_factory=list)
    shipping_provider: Optional[str] = None
    shipping_status: Optional[str] = None
    invoice_url: Optional[str] = None


@dataclass(frozen=True)
class SaleComputed:
    sell_total_ht: float
    transaction_value: float
    commission_rate_display: str
    commission_eur: float
    payment_fee: float
    net_received: float
    total_cost: float
    gross_margin: float
    net_margin: float
    net_margin_pct: float
    sell_price_unit_ttc: Optional[float] = None
    shipping_charged_ttc: Optional[float] = None
    shipping_real_ttc: Optional[float] = None


@dataclass
class Sale(SaleInput):
    id: str = ""
    created_at: str = ""
    updated_at: str = ""
    sell_total_ht: float = 0.0
    transaction_value: float = 0.0
    commission_rate_display: str = "0%"
    commission_eur: float = 0.0
    payment_fee: float = 0.0
    net_received: float = 0.0
    total_cost: float = 0.0
    gross_margin: float = 0.0
    net_margin: float = 0.0
    net_margin_pct: float = 0.0

    def to_input(self) -> SaleInput:
        names = {f.name for f in fields(SaleInput)}
        return SaleInput(**{k: v for k, v in asdict(self).items() if k in names})

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CatalogProduct:
    ref: str
    category: str = DEFAULT_CATEGORY
    buy_price_unit: float = 0.0
    initial_stock: int = 0
    order: int = 0
    datasheet_url: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class BackupPayload:
    generated_at: str
    sales: list[Sale] = field(default_factory=list)
    catalog: list[CatalogProduct] = field(default_factory=list)
    stock: StockMap = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at": self.generated_at,
            "sales": [s.to_dict() for s in self.sales],
            "catalog": [c.to_dict() for c in self.catalog],
            "stock": dict(self.stock),
        }


@dataclass
class OrderRow:
    """One virtual order: every sale line sharing date, client, transaction ref and channel."""
    key: str
    date: str
    client_or_tx: str
    transaction_ref: str
    channel: str
    sale_ids: list[str] = field(default_factory=list)
    product_refs: list[str] = field(default_factory=list)
    line_count: int = 0
    quantity: float = 0.0
    avg_unit_price_ht: float = 0.0
    sell_total_ht: float = 0.0
    shipping_charged: float = 0.0
    shipping_real: float = 0.0
    transaction_value: float = 0.0
    commission_eur: float = 0.0
    payment_fee_raw: float = 0.0
    payment_fee: float = 0.0
    net_received: float = 0.0
    total_cost: float = 0.0
    net_margin: float = 0.0
    net_margin_pct: float = 0.0
    attachments_count: int = 0
    out_of_stock_refs: list[str] = field(default_factory=list)
    low_stock_refs: list[str] = field(default_factory=list)
