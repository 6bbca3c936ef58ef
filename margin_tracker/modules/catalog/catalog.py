"""
catalog/catalog.py

Purpose
-------
Product catalog helpers: clean up display ranks, guess a category from the
reference, and read the supplier pricing page into CatalogProduct rows.

Public API
----------
- normalize_catalog(items) -> list[CatalogProduct]
- catalog_from_records(records) -> list[CatalogProduct]
- infer_category(ref) -> str
- parse_catalog_from_html(html) -> list[CatalogProduct]
- fetch_remote_catalog(url=None, session=None) -> list[CatalogProduct]

Buy prices from the pricing page are landed costs in EUR: the USD unit price
converted at the page's exchange rate, plus the container transport cost
(freight + customs + included local charges) spread evenly per unit shipped.
"""
from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Iterable, Mapping, Optional

import requests

from ...constants import (
    AED_PER_USD,
    CATEGORIES,
    CATEGORY_ACCESSORIES,
    CATEGORY_BATTERIES,
    CATEGORY_INVERTERS,
    CATEGORY_SOLAR_PANELS,
    HTTP_TIMEOUT_SECONDS,
)
from ...models import CatalogProduct
from ...utils.helpers import to_number, to_optional_number
from ...utils.http import build_session, describe_http_error
from ..sales.calculations import round2

_log = logging.getLogger(__name__)

__all__ = [
    "CatalogFetchError",
    "normalize_catalog",
    "catalog_from_records",
    "infer_category",
    "parse_catalog_from_html",
    "fetch_remote_catalog",
]


class CatalogFetchError(Exception):
    """Remote catalog could not be downloaded."""


def infer_category(ref: str) -> str:
    value = (ref or "").lower()
    if "luna" in value or "battery" in value:
        return CATEGORY_BATTERIES
    if "panel" in value or "pv module" in value:
        return CATEGORY_SOLAR_PANELS
    if "sun2000" in value:
        return CATEGORY_INVERTERS
    return CATEGORY_ACCESSORIES


def normalize_catalog(items: Iterable[CatalogProduct]) -> list[CatalogProduct]:
    """Missing or non-positive display ranks become the 1-based position."""
    out = []
    for idx, item in enumerate(items):
        order = item.order if isinstance(item.order, int) and item.order > 0 else idx + 1
        out.append(replace(item, order=order))
    return out


def catalog_from_records(records: Iterable[Mapping]) -> list[CatalogProduct]:
    """
    Catalog rows from loose dicts (backup files, remote snapshots).

    Records without a ref are dropped; duplicate refs keep the first record.
    """
    seen: set[str] = set()
    out: list[CatalogProduct] = []
    for rec in records:
        if not isinstance(rec, Mapping):
            continue
        ref = " ".join(str(rec.get("ref") or "").split())
        if not ref or ref in seen:
            continue
        seen.add(ref)
        category = rec.get("category")
        order = to_optional_number(rec.get("order"))
        out.append(
            CatalogProduct(
                ref=ref,
                category=category if category in CATEGORIES else infer_category(ref),
                buy_price_unit=round2(rec.get("buy_price_unit")),
                initial_stock=int(to_number(rec.get("initial_stock"))),
                order=int(order) if order is not None else 0,
                datasheet_url=(str(rec.get("datasheet_url")).strip() or None) if rec.get("datasheet_url") else None,
            )
        )
    return normalize_catalog(out)


# ---- pricing page parsing ----

_SEED_BLOCK_RX = re.compile(r"const\s+shippingProductsSeed\s*=\s*\[([\s\S]*?)\];")
_SEED_ENTRY_RX = re.compile(
    r"\{\s*no:\s*(\d+),\s*description:\s*'([^']+)',\s*qty:\s*(\d+),\s*unitPriceUSD:\s*([0-9.]+)"
)
_LOCAL_CHARGES_BLOCK_RX = re.compile(r"const\s+defaultLocalCharges\s*=\s*\[([\s\S]*?)\];")
_LOCAL_CHARGE_RX = re.compile(r"\{[\s\S]*?amountAED:\s*([0-9.]+)[\s\S]*?included:\s*(true|false)[\s\S]*?\}")


def _number_field(html: str, name: str, fallback: float) -> float:
    m = re.search(rf"{name}:\s*([0-9]+(?:\.[0-9]+)?)", html)
    return float(m.group(1)) if m else fallback


def _included_local_charges_aed(html: str) -> float:
    block = _LOCAL_CHARGES_BLOCK_RX.search(html)
    if not block:
        return 0.0
    return sum(float(amount) for amount, included in _LOCAL_CHARGE_RX.findall(block.group(1)) if included == "true")


def parse_catalog_from_html(html: str) -> list[CatalogProduct]:
    """Catalog rows found in the pricing page source; [] when the seed block is absent."""
    block = _SEED_BLOCK_RX.search(html or "")
    if not block:
        return []

    entries = []
    total_qty = 0
    for no, description, qty, unit_usd in _SEED_ENTRY_RX.findall(block.group(1)):
        ref = " ".join(description.split())
        entries.append((int(no), ref, int(qty), float(unit_usd)))
        total_qty += int(qty)

    exchange_rate = _number_field(html, "exchangeRate", 1.0)
    freight_eur = _number_field(html, "freightQuoteEUR", 0.0)
    customs_eur = _number_field(html, "customsCostsEUR", 0.0)
    containers = _number_field(html, "containerCount", 1.0)
    aed_per_usd = _number_field(html, "aedToUsdRate", AED_PER_USD)

    local_aed = _included_local_charges_aed(html)
    local_eur = (local_aed / aed_per_usd) * exchange_rate if aed_per_usd > 0 else 0.0
    transport_total = (freight_eur + customs_eur + local_eur) * containers
    transport_per_unit = transport_total / total_qty if total_qty > 0 else 0.0

    products: list[CatalogProduct] = []
    seen: set[str] = set()
    for order, ref, qty, unit_usd in entries:
        if ref in seen:
            continue
        seen.add(ref)
        products.append(
            CatalogProduct(
                ref=ref,
                category=infer_category(ref),
                buy_price_unit=round2(unit_usd * exchange_rate + transport_per_unit),
                initial_stock=qty,
                order=order,
            )
        )
    return products


def fetch_remote_catalog(url: Optional[str] = None, session: Optional[requests.Session] = None) -> list[CatalogProduct]:
    """
    Download and parse the pricing page.

    Raises:
        CatalogFetchError: network failure or non-2xx response.
    """
    if url is None:
        from ...config import CATALOG_URL
        url = CATALOG_URL
    http = session or build_session({"Accept": "text/html"})
    try:
        response = http.get(url, timeout=HTTP_TIMEOUT_SECONDS, headers={"Cache-Control": "no-store"})
        response.raise_for_status()
    except requests.RequestException as e:
        raise CatalogFetchError(f"Catalog fetch failed ({describe_http_error(e)})") from e
    products = parse_catalog_from_html(response.text)
    _log.info("Fetched %d catalog products from %s", len(products), url)
    return products
