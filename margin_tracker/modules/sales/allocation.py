"""
sales/allocation.py

Split one order-level amount (shipping charged, shipping real) across the order's
lines so the parts add up to the total exactly, to the cent.

Largest-remainder apportionment on integer cents, exact rational shares.
"""
from __future__ import annotations

import math
from fractions import Fraction
from typing import Iterable, Sequence

from ...utils.helpers import to_number

__all__ = ["to_cents", "allocate_cents_by_weight", "allocate_amount_by_weight", "line_weights"]


def to_cents(amount) -> int:
    """Integer cents, half away from zero (2.675 -> 268)."""
    x = Fraction(repr(to_number(amount))) * 100
    sign = -1 if x < 0 else 1
    return sign * math.floor(abs(x) + Fraction(1, 2))


def _clean_weights(weights: Iterable) -> list[Fraction]:
    cleaned = []
    for w in weights:
        x = to_number(w)
        cleaned.append(Fraction(repr(x)) if x > 0 else Fraction(0))
    if cleaned and not any(cleaned):
        # nothing to weigh by: equal split
        cleaned = [Fraction(1)] * len(cleaned)
    return cleaned


def allocate_cents_by_weight(total_cents: int, weights: Sequence) -> list[int]:
    """
    Apportion `total_cents` across `weights`.

    Negative weights count as 0, all-zero weights mean an equal split. Leftover
    cents go to the largest fractional remainders; on ties the earlier line wins.
    A negative total is apportioned by magnitude and negated.
    """
    cleaned = _clean_weights(weights)
    if not cleaned:
        return []
    total_cents = int(total_cents)
    if total_cents == 0:
        return [0] * len(cleaned)
    if total_cents < 0:
        return [-c for c in allocate_cents_by_weight(-total_cents, cleaned)]

    weight_sum = sum(cleaned)
    shares = [total_cents * w / weight_sum for w in cleaned]
    floors = [math.floor(s) for s in shares]
    leftover = total_cents - sum(floors)

    # sort is stable, so equal remainders keep line order
    by_remainder = sorted(range(len(shares)), key=lambda i: shares[i] - floors[i], reverse=True)
    for i in by_remainder[:leftover]:
        floors[i] += 1
    return floors


def allocate_amount_by_weight(total, weights: Sequence) -> list[float]:
    """
    Money version of allocate_cents_by_weight().

    >>> allocate_amount_by_weight(10, [1, 1, 1])
    [3.34, 3.33, 3.33]
    """
    return [c / 100 for c in allocate_cents_by_weight(to_cents(total), weights)]


def line_weights(lines: Sequence) -> list[float]:
    """
    Economic weight of each order line: quantity x unit HT price, or the bare
    quantity when every such product is zero (e.g. free items only).

    Accepts SaleInput-like objects or mappings.
    """
    def _get(line, name):
        if isinstance(line, dict):
            return line.get(name)
        return getattr(line, name, None)

    quantities = [max(0.0, to_number(_get(line, "quantity"))) for line in lines]
    values = [
        q * max(0.0, to_number(_get(line, "sell_price_unit_ht")))
        for q, line in zip(quantities, lines)
    ]
    if any(v > 0 for v in values):
        return values
    return quantities
