"""
sales/calculations.py

Pure money math for one sale line. Mirrors what the sale form previews and what
every reload recomputes (derived fields are never stored).

Do not import repos, Qt or open DB connections here.
Only compute numbers; formatting belongs in the UI.
"""
from __future__ import annotations

import unicodedata
from dataclasses import asdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Mapping, NamedTuple, Optional

from ...constants import (
    CATEGORIES,
    CATEGORY_ACCESSORIES,
    CATEGORY_SOLAR_PANELS,
    CHANNELS,
    CHANNEL_SOLARTRADERS,
    CHANNEL_SUN_STORE,
    DEFAULT_CATEGORY,
    DEFAULT_CHANNEL,
    DEFAULT_PAYMENT_METHOD,
    FRANCE,
    FRANCE_ALIASES,
    FRANCE_VAT_RATE,
    PAYMENT_FEE_RULES,
    PAYMENT_METHODS,
    PAYMENT_WIRE,
    POWER_WP_REQUIRED,
    SOLARTRADERS_CENT_PER_WP,
    SOLARTRADERS_LARGE_CENT_PER_WP,
    SOLARTRADERS_LARGE_PANEL_WP,
    SOLARTRADERS_STANDARD_RATE,
)
from ...models import Sale, SaleComputed, SaleInput
from ...utils.helpers import now_iso, to_number, to_optional_number

__all__ = [
    "round2",
    "resolve_country",
    "is_france",
    "is_power_wp_required",
    "compute_commission",
    "compute_payment_fee",
    "compute_sale",
    "normalize_sale_input",
    "build_sale",
    "recompute_sale",
]

_CENT = Decimal("0.01")


# -----------------------------
# Rounding
# -----------------------------

def round2(value) -> float:
    """
    Round to the cent, half away from zero.

    The value goes through its shortest decimal repr first, so 1.005 -> 1.01
    and 2.675 -> 2.68 (binary floats would round those down).
    Non-finite or non-numeric input -> 0.0.
    """
    x = to_number(value)
    rounded = Decimal(repr(x)).quantize(_CENT, rounding=ROUND_HALF_UP)
    return float(rounded) + 0.0


def _round2_optional(value) -> Optional[float]:
    x = to_optional_number(value)
    return None if x is None else round2(x)


# -----------------------------
# Sun.store commission tiers
# -----------------------------

class RateTier(NamedTuple):
    min_amount: float
    stripe: float
    wire: float


# Tier is the last one whose min_amount <= amount.
_INVERTER_BATTERY_TIERS = (
    RateTier(0, 0.0399, 0.0519),
    RateTier(5_000, 0.0365, 0.0474),
    RateTier(10_000, 0.0314, 0.0393),
    RateTier(25_000, 0.0261, 0.0326),
    RateTier(80_000, 0.0179, 0.0206),
    RateTier(150_000, 0.0103, 0.0118),
)

_SOLAR_PANEL_TIERS = (
    RateTier(0, 0.0299, 0.0389),
    RateTier(5_000, 0.0276, 0.0359),
    RateTier(10_000, 0.0226, 0.0282),
    RateTier(25_000, 0.0181, 0.0226),
    RateTier(80_000, 0.0131, 0.0151),
    RateTier(150_000, 0.0084, 0.0097),
)

_ACCESSORIES_TIERS = (
    RateTier(0, 0.0488, 0.0634),
    RateTier(5_000, 0.0421, 0.0547),
    RateTier(10_000, 0.0363, 0.0454),
    RateTier(25_000, 0.0301, 0.0376),
    RateTier(80_000, 0.0206, 0.0237),
    RateTier(100_000, 0.0119, 0.0137),
)


def _pick_tier(amount: float, tiers: tuple[RateTier, ...]) -> RateTier:
    picked = tiers[0]
    for tier in tiers:
        if amount >= tier.min_amount:
            picked = tier
    return picked


def _sun_store_table(category: str) -> tuple[RateTier, ...]:
    if category == CATEGORY_SOLAR_PANELS:
        return _SOLAR_PANEL_TIERS
    if category == CATEGORY_ACCESSORIES:
        return _ACCESSORIES_TIERS
    return _INVERTER_BATTERY_TIERS


def _format_rate(rate: float) -> str:
    return f"{round2(rate * 100):g}%"


# -----------------------------
# Country / channel rules
# -----------------------------

def resolve_country(label: Optional[str]) -> str:
    """
    Canonical country label: 'France' for any spelling of France
    ('FR', 'fra', 'République française', ...), otherwise the trimmed input.
    """
    text = (label or "").strip()
    folded = unicodedata.normalize("NFKD", text)
    folded = "".join(ch for ch in folded if not unicodedata.combining(ch))
    folded = " ".join(folded.casefold().split())
    if folded in FRANCE_ALIASES:
        return FRANCE
    return text


def is_france(label: Optional[str]) -> bool:
    return resolve_country(label) == FRANCE


def is_power_wp_required(channel: str, category: str) -> bool:
    return (channel, category) in POWER_WP_REQUIRED


class CommissionResult(NamedTuple):
    rate_display: str
    amount: float


def compute_commission(
    channel: str,
    category: str,
    payment_method: str,
    amount: float,
    power_wp: Optional[float] = None,
) -> CommissionResult:
    """
    Platform commission on `amount` (the pre-tax sell total).

    - Sun.store: tiered rate by amount and category; Wire column for wire
      transfers, card column otherwise.
    - Solartraders: 5% except solar panels, which pay per Wp.
    - Direct / Other: nothing.
    """
    amount = to_number(amount)
    if channel == CHANNEL_SUN_STORE:
        tier = _pick_tier(amount, _sun_store_table(category))
        rate = tier.wire if payment_method == PAYMENT_WIRE else tier.stripe
        return CommissionResult(_format_rate(rate), round2(amount * rate))

    if channel == CHANNEL_SOLARTRADERS:
        if category != CATEGORY_SOLAR_PANELS:
            return CommissionResult(
                _format_rate(SOLARTRADERS_STANDARD_RATE),
                round2(amount * SOLARTRADERS_STANDARD_RATE),
            )
        wp = to_number(power_wp)
        if wp >= SOLARTRADERS_LARGE_PANEL_WP:
            return CommissionResult("1 cent/Wp", round2(wp * SOLARTRADERS_LARGE_CENT_PER_WP))
        return CommissionResult("1.5 cent/Wp", round2(wp * SOLARTRADERS_CENT_PER_WP))

    return CommissionResult("0%", 0.0)


def compute_payment_fee(channel: str, payment_method: str, transaction_value: float) -> float:
    """Processor fee on the transacted amount: rate + fixed part, 0 when no rule applies."""
    rule = PAYMENT_FEE_RULES.get((channel, payment_method))
    if rule is None:
        return 0.0
    rate, fixed = rule
    return round2(to_number(transaction_value) * rate + fixed)


# -----------------------------
# Sale computation
# -----------------------------

def _ttc(ht: float) -> float:
    return round2(ht * (1 + FRANCE_VAT_RATE))


def compute_sale(sale_input: SaleInput) -> SaleComputed:
    """
    All derived money fields for one line. Pure and total: bad numbers count as 0.
    """
    quantity = to_number(sale_input.quantity)
    unit_ht = to_number(sale_input.sell_price_unit_ht)
    shipping_charged = to_number(sale_input.shipping_charged)
    shipping_real = to_number(sale_input.shipping_real)
    buy_unit = to_number(sale_input.buy_price_unit)

    sell_total_ht = round2(unit_ht * quantity)
    transaction_value = round2(sell_total_ht + shipping_charged)

    commission = compute_commission(
        sale_input.channel,
        sale_input.category,
        sale_input.payment_method,
        sell_total_ht,
        sale_input.power_wp,
    )
    payment_fee = compute_payment_fee(sale_input.channel, sale_input.payment_method, transaction_value)

    net_received = round2(transaction_value - commission.amount - payment_fee)
    total_cost = round2(buy_unit * quantity + shipping_real)
    gross_margin = round2(sell_total_ht - total_cost)
    net_margin = round2(net_received - total_cost)
    net_margin_pct = 0.0 if transaction_value <= 0 else round2(net_margin / transaction_value * 100)

    if is_france(sale_input.customer_country):
        unit_ttc = _ttc(unit_ht)
        shipping_charged_ttc = _ttc(shipping_charged)
        shipping_real_ttc = _ttc(shipping_real)
    else:
        unit_ttc = _round2_optional(sale_input.sell_price_unit_ttc)
        shipping_charged_ttc = _round2_optional(sale_input.shipping_charged_ttc)
        shipping_real_ttc = _round2_optional(sale_input.shipping_real_ttc)

    return SaleComputed(
        sell_total_ht=sell_total_ht,
        transaction_value=transaction_value,
        commission_rate_display=commission.rate_display,
        commission_eur=commission.amount,
        payment_fee=payment_fee,
        net_received=net_received,
        total_cost=total_cost,
        gross_margin=gross_margin,
        net_margin=net_margin,
        net_margin_pct=net_margin_pct,
        sell_price_unit_ttc=unit_ttc,
        shipping_charged_ttc=shipping_charged_ttc,
        shipping_real_ttc=shipping_real_ttc,
    )


# -----------------------------
# Normalization / assembly
# -----------------------------

def _text(v) -> str:
    return v.strip() if isinstance(v, str) else ("" if v is None else str(v).strip())


def _optional_text(v) -> Optional[str]:
    t = _text(v)
    return t or None


def normalize_sale_input(raw: Mapping[str, Any] | SaleInput) -> SaleInput:
    """
    Coerce a form payload or an imported JSON record into a clean SaleInput.

    Unknown enum values fall back to Other / Wire / Accessories, numbers that do
    not parse become 0, negative quantities are clamped to 0 and power_wp is
    dropped unless the channel + category pair requires it.
    """
    data = asdict(raw) if isinstance(raw, SaleInput) else dict(raw or {})

    channel = _text(data.get("channel"))
    if channel not in CHANNELS:
        channel = DEFAULT_CHANNEL
    category = _text(data.get("category"))
    if category not in CATEGORIES:
        category = DEFAULT_CATEGORY
    payment_method = _text(data.get("payment_method"))
    if payment_method not in PAYMENT_METHODS:
        payment_method = DEFAULT_PAYMENT_METHOD

    power_wp = to_optional_number(data.get("power_wp")) if is_power_wp_required(channel, category) else None

    attachments = data.get("attachments")
    tracking = data.get("tracking_numbers")

    return SaleInput(
        date=_text(data.get("date")),
        client_or_tx=_text(data.get("client_or_tx")),
        transaction_ref=_text(data.get("transaction_ref")),
        channel=channel,
        customer_country=_text(data.get("customer_country")),
        product_ref=_text(data.get("product_ref")),
        quantity=max(0.0, to_number(data.get("quantity"))),
        sell_price_unit_ht=to_number(data.get("sell_price_unit_ht")),
        sell_price_unit_ttc=to_optional_number(data.get("sell_price_unit_ttc")),
        shipping_charged=to_number(data.get("shipping_charged")),
        shipping_charged_ttc=to_optional_number(data.get("shipping_charged_ttc")),
        shipping_real=to_number(data.get("shipping_real")),
        shipping_real_ttc=to_optional_number(data.get("shipping_real_ttc")),
        payment_method=payment_method,
        category=category,
        buy_price_unit=to_number(data.get("buy_price_unit")),
        power_wp=power_wp,
        attachments=[a for a in attachments if isinstance(a, dict)] if isinstance(attachments, list) else [],
        tracking_numbers=[_text(t) for t in tracking if _text(t)] if isinstance(tracking, list) else [],
        shipping_provider=_optional_text(data.get("shipping_provider")),
        shipping_status=_optional_text(data.get("shipping_status")),
        invoice_url=_optional_text(data.get("invoice_url")),
    )


def build_sale(
    sale_id: str,
    sale_input: SaleInput,
    created_at: Optional[str] = None,
    now: Optional[str] = None,
) -> Sale:
    """Assemble a stored Sale: input fields + freshly computed fields + timestamps."""
    stamp = now or now_iso()
    computed = asdict(compute_sale(sale_input))
    data = asdict(sale_input)
    data.update(computed)
    return Sale(id=sale_id, created_at=created_at or stamp, updated_at=stamp, **data)


def recompute_sale(sale: Sale) -> Sale:
    """Same identity and timestamps, derived fields rebuilt from the inputs."""
    return build_sale(sale.id, sale.to_input(), created_at=sale.created_at, now=sale.updated_at)
