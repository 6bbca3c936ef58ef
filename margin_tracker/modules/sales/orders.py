"""
sales/orders.py

Purpose
-------
Virtual orders: every sale line sharing (date, client, transaction ref, channel)
is one order. Orders are never stored; they are rebuilt from the full sale list
on every read.

Public API
----------
- order_key(sale) -> str
- group_by_order(sales) -> dict[str, list]
- normalize_order_fees(lines) -> list[Sale]
- aggregate_orders(sales, stock, low_stock_threshold=5) -> list[OrderRow]
- sort_orders(rows) -> list[OrderRow]
- build_order_sales(header, lines, shipping_charged=0, shipping_real=0, ...) -> list[SaleInput]
"""
from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Mapping, Optional, Sequence

from ...constants import CHANNEL_SUN_STORE, LOW_STOCK_THRESHOLD, SUN_STORE_ORDER_PAYMENT_FEE
from ...models import OrderRow, Sale, SaleInput, StockMap
from ...utils.helpers import to_number, to_optional_number
from .allocation import allocate_amount_by_weight, line_weights
from .calculations import normalize_sale_input, round2

__all__ = [
    "order_key",
    "group_by_order",
    "normalized_order_fee",
    "normalize_order_fees",
    "aggregate_orders",
    "sort_orders",
    "build_order_sales",
]

_KEY_SEP = "::"


def order_key(sale) -> str:
    return _KEY_SEP.join(
        [
            str(sale.date or ""),
            str(sale.client_or_tx or ""),
            str(sale.transaction_ref or ""),
            str(sale.channel or ""),
        ]
    )


def group_by_order(sales: Iterable[Sale]) -> dict[str, list[Sale]]:
    """Lines bucketed by order key; keys and lines keep first-seen order."""
    groups: dict[str, list[Sale]] = {}
    for sale in sales:
        groups.setdefault(order_key(sale), []).append(sale)
    return groups


# ---- fee normalization ----

def normalized_order_fee(channel: str, raw_fee: float) -> float:
    """
    Displayed order fee. Sun.store charges one flat card fee per order however
    many lines were entered; other channels keep the summed line fees.
    """
    if channel == CHANNEL_SUN_STORE:
        return SUN_STORE_ORDER_PAYMENT_FEE if raw_fee > 0 else 0.0
    return round2(raw_fee)


def _pct(margin: float, base: float) -> float:
    return 0.0 if base <= 0 else round2(margin / base * 100)


def normalize_order_fees(lines: Sequence[Sale]) -> list[Sale]:
    """
    Line-level view of the order fee normalization for ONE order.

    For Sun.store orders with a positive raw fee, the first line carries the flat
    fee and the others carry none; net_received and net_margin absorb the
    difference so the lines still add up to the order row. Other orders are
    returned unchanged.
    """
    lines = list(lines)
    if not lines or lines[0].channel != CHANNEL_SUN_STORE:
        return lines

    raw = round2(sum(to_number(s.payment_fee) for s in lines))
    flat = normalized_order_fee(CHANNEL_SUN_STORE, raw)

    out: list[Sale] = []
    for idx, sale in enumerate(lines):
        new_fee = flat if idx == 0 else 0.0
        delta = to_number(sale.payment_fee) - new_fee
        net_received = round2(sale.net_received + delta)
        net_margin = round2(sale.net_margin + delta)
        out.append(
            replace(
                sale,
                payment_fee=new_fee,
                net_received=net_received,
                net_margin=net_margin,
                net_margin_pct=_pct(net_margin, sale.transaction_value),
            )
        )
    return out


# ---- aggregation ----

def _stock_flags(refs: Sequence[str], stock: StockMap, threshold: int) -> tuple[list[str], list[str]]:
    out_refs: list[str] = []
    low_refs: list[str] = []
    for ref in refs:
        if ref not in stock:
            continue  # not tracked
        qty = stock[ref]
        if qty <= 0:
            out_refs.append(ref)
        elif qty <= threshold:
            low_refs.append(ref)
    return out_refs, low_refs


def _aggregate_one(key: str, lines: list[Sale], stock: StockMap, threshold: int) -> OrderRow:
    first = lines[0]
    refs: list[str] = []
    for s in lines:
        if s.product_ref and s.product_ref not in refs:
            refs.append(s.product_ref)

    quantity = sum(to_number(s.quantity) for s in lines)
    price_volume = sum(to_number(s.sell_price_unit_ht) * to_number(s.quantity) for s in lines)
    transaction_value = round2(sum(s.transaction_value for s in lines))

    raw_fee = round2(sum(s.payment_fee for s in lines))
    fee = normalized_order_fee(first.channel, raw_fee)
    delta = raw_fee - fee

    net_received = round2(sum(s.net_received for s in lines) + delta)
    net_margin = round2(sum(s.net_margin for s in lines) + delta)

    out_refs, low_refs = _stock_flags(refs, stock, threshold)

    return OrderRow(
        key=key,
        date=first.date,
        client_or_tx=first.client_or_tx,
        transaction_ref=first.transaction_ref,
        channel=first.channel,
        sale_ids=[s.id for s in lines],
        product_refs=refs,
        line_count=len(lines),
        quantity=quantity,
        avg_unit_price_ht=round2(price_volume / quantity) if quantity > 0 else 0.0,
        sell_total_ht=round2(sum(s.sell_total_ht for s in lines)),
        shipping_charged=round2(sum(to_number(s.shipping_charged) for s in lines)),
        shipping_real=round2(sum(to_number(s.shipping_real) for s in lines)),
        transaction_value=transaction_value,
        commission_eur=round2(sum(s.commission_eur for s in lines)),
        payment_fee_raw=raw_fee,
        payment_fee=fee,
        net_received=net_received,
        total_cost=round2(sum(s.total_cost for s in lines)),
        net_margin=net_margin,
        net_margin_pct=_pct(net_margin, transaction_value),
        attachments_count=sum(len(s.attachments or []) for s in lines),
        out_of_stock_refs=out_refs,
        low_stock_refs=low_refs,
    )


def sort_orders(rows: Iterable[OrderRow]) -> list[OrderRow]:
    """Newest date first, then client and transaction ref A-Z."""
    rows = sorted(rows, key=lambda r: (r.client_or_tx.casefold(), r.transaction_ref.casefold()))
    return sorted(rows, key=lambda r: r.date, reverse=True)


def aggregate_orders(
    sales: Iterable[Sale],
    stock: Optional[StockMap] = None,
    low_stock_threshold: int = LOW_STOCK_THRESHOLD,
) -> list[OrderRow]:
    """
    One OrderRow per order key, sorted for display.

    Refs missing from `stock` are still aggregated but never flagged.
    """
    stock = stock or {}
    rows = [
        _aggregate_one(key, lines, stock, low_stock_threshold)
        for key, lines in group_by_order(sales).items()
    ]
    return sort_orders(rows)


# ---- multi-line order entry ----

_HEADER_FIELDS = ("date", "client_or_tx", "transaction_ref", "channel", "customer_country", "payment_method")


def build_order_sales(
    header: Mapping,
    lines: Sequence[Mapping],
    shipping_charged=0.0,
    shipping_real=0.0,
    shipping_charged_ttc=None,
    shipping_real_ttc=None,
) -> list[SaleInput]:
    """
    Expand one order form (shared header + product lines + order-level shipping)
    into one SaleInput per line.

    Shipping amounts are split by line_weights() so the per-line parts add up to
    the order totals to the cent. TTC shipping is split the same way when given.
    """
    if not lines:
        return []

    shared = {k: header.get(k) for k in _HEADER_FIELDS}
    inputs = [normalize_sale_input({**dict(line), **shared}) for line in lines]
    weights = line_weights(inputs)

    charged = allocate_amount_by_weight(shipping_charged, weights)
    real = allocate_amount_by_weight(shipping_real, weights)

    charged_ttc_total = to_optional_number(shipping_charged_ttc)
    real_ttc_total = to_optional_number(shipping_real_ttc)
    charged_ttc = allocate_amount_by_weight(charged_ttc_total, weights) if charged_ttc_total is not None else None
    real_ttc = allocate_amount_by_weight(real_ttc_total, weights) if real_ttc_total is not None else None

    out: list[SaleInput] = []
    for i, item in enumerate(inputs):
        out.append(
            replace(
                item,
                shipping_charged=charged[i],
                shipping_real=real[i],
                shipping_charged_ttc=charged_ttc[i] if charged_ttc is not None else None,
                shipping_real_ttc=real_ttc[i] if real_ttc is not None else None,
            )
        )
    return out
