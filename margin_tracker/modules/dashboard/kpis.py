# margin_tracker/modules/dashboard/kpis.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from ...models import Sale
from ..sales.calculations import round2
from ..sales.orders import group_by_order


@dataclass
class ChannelBreakdown:
    channel: str
    sales_count: int = 0
    revenue: float = 0.0
    net_margin: float = 0.0


@dataclass
class Kpis:
    sales_count: int = 0
    orders_count: int = 0
    total_revenue: float = 0.0
    total_net_margin: float = 0.0
    total_commissions: float = 0.0
    total_payment_fees: float = 0.0
    avg_net_margin_pct: float = 0.0
    by_channel: list[ChannelBreakdown] = field(default_factory=list)


def compute_kpis(sales: Iterable[Sale]) -> Kpis:
    """
    Dashboard totals over the (already filtered) line list.

    avg_net_margin_pct is the plain mean of line percentages; 0 with no sales.
    """
    sales = list(sales)
    if not sales:
        return Kpis()

    per_channel: dict[str, ChannelBreakdown] = {}
    for s in sales:
        row = per_channel.setdefault(s.channel, ChannelBreakdown(s.channel))
        row.sales_count += 1
        row.revenue += s.transaction_value
        row.net_margin += s.net_margin

    for row in per_channel.values():
        row.revenue = round2(row.revenue)
        row.net_margin = round2(row.net_margin)

    return Kpis(
        sales_count=len(sales),
        orders_count=len(group_by_order(sales)),
        total_revenue=round2(sum(s.transaction_value for s in sales)),
        total_net_margin=round2(sum(s.net_margin for s in sales)),
        total_commissions=round2(sum(s.commission_eur for s in sales)),
        total_payment_fees=round2(sum(s.payment_fee for s in sales)),
        avg_net_margin_pct=round2(sum(s.net_margin_pct for s in sales) / len(sales)),
        by_channel=sorted(per_channel.values(), key=lambda r: r.revenue, reverse=True),
    )


def top_products(sales: Iterable[Sale], limit: int = 5) -> list[dict]:
    """Best sellers by revenue: [{'product_ref', 'quantity', 'revenue', 'net_margin'}]."""
    totals: dict[str, dict] = {}
    for s in sales:
        row = totals.setdefault(
            s.product_ref, {"product_ref": s.product_ref, "quantity": 0.0, "revenue": 0.0, "net_margin": 0.0}
        )
        row["quantity"] += s.quantity
        row["revenue"] += s.sell_total_ht
        row["net_margin"] += s.net_margin
    rows = sorted(totals.values(), key=lambda r: r["revenue"], reverse=True)[: max(0, limit)]
    for r in rows:
        r["revenue"] = round2(r["revenue"])
        r["net_margin"] = round2(r["net_margin"])
    return rows
