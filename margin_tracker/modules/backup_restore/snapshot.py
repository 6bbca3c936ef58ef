"""
modules/backup_restore/snapshot.py

Purpose
-------
The backup snapshot format shared by file export/import and cloud sync:
    {"generated_at": ISO-8601, "sales": [...], "catalog": [...], "stock": {ref: int}}

Public API
----------
- BackupFormatError
- build_backup(sales, catalog, stock, generated_at=None) -> BackupPayload
- is_backup_payload(obj) -> bool
- parse_backup_payload(obj) -> BackupPayload          (raises BackupFormatError)
- loads_backup(text) / dumps_backup(payload)
- payload_fingerprint(payload) -> str                  (content hash, generated_at excluded)
"""

from __future__ import annotations

import hashlib
import json
import uuid
from typing import Any, Iterable, Mapping, Optional

from ...models import BackupPayload, CatalogProduct, Sale, StockMap
from ...utils.helpers import now_iso, parse_iso_timestamp, to_number
from ..catalog.catalog import catalog_from_records
from ..sales.calculations import build_sale, normalize_sale_input


class BackupFormatError(ValueError):
    """The data is not a usable backup snapshot."""


def build_backup(
    sales: Iterable[Sale],
    catalog: Iterable[CatalogProduct],
    stock: StockMap,
    generated_at: Optional[str] = None,
) -> BackupPayload:
    return BackupPayload(
        generated_at=generated_at or now_iso(),
        sales=list(sales),
        catalog=list(catalog),
        stock=dict(stock),
    )


def is_backup_payload(obj: Any) -> bool:
    """Shape check only: the four keys with the right container types."""
    return (
        isinstance(obj, Mapping)
        and isinstance(obj.get("generated_at"), str)
        and isinstance(obj.get("sales"), list)
        and isinstance(obj.get("catalog"), list)
        and isinstance(obj.get("stock"), Mapping)
    )


def _parse_sale(record: Any, index: int) -> Sale:
    if not isinstance(record, Mapping):
        raise BackupFormatError(f"Sale #{index + 1} is not an object.")
    sale_id = str(record.get("id") or "").strip() or uuid.uuid4().hex
    created_at = record.get("created_at") if isinstance(record.get("created_at"), str) else None
    updated_at = record.get("updated_at") if isinstance(record.get("updated_at"), str) else None
    # derived fields in the file are ignored and rebuilt
    return build_sale(sale_id, normalize_sale_input(record), created_at=created_at, now=updated_at or created_at)


def parse_backup_payload(obj: Any) -> BackupPayload:
    """
    Validate and convert a decoded snapshot.

    Raises:
        BackupFormatError: wrong shape, bad timestamp, or unusable rows.
    """
    if not is_backup_payload(obj):
        raise BackupFormatError("Invalid backup: expected generated_at, sales, catalog and stock.")
    generated_at = obj["generated_at"]
    if parse_iso_timestamp(generated_at) is None:
        raise BackupFormatError(f"Invalid backup timestamp: {generated_at!r}")

    sales = [_parse_sale(rec, i) for i, rec in enumerate(obj["sales"])]
    seen: set[str] = set()
    for s in sales:
        if s.id in seen:
            raise BackupFormatError(f"Duplicate sale id in backup: {s.id}")
        seen.add(s.id)

    catalog = catalog_from_records(obj["catalog"])
    stock = {str(ref): int(to_number(qty)) for ref, qty in obj["stock"].items()}
    return BackupPayload(generated_at=generated_at, sales=sales, catalog=catalog, stock=stock)


def loads_backup(text: str) -> BackupPayload:
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise BackupFormatError(f"Backup is not valid JSON: {e}") from e
    return parse_backup_payload(data)


def dumps_backup(payload: BackupPayload) -> str:
    return json.dumps(payload.to_dict(), ensure_ascii=False, indent=2)


def payload_fingerprint(payload: BackupPayload | Mapping) -> str:
    """sha256 over sales + catalog + stock in canonical JSON; generated_at is left out."""
    data = payload.to_dict() if isinstance(payload, BackupPayload) else dict(payload)
    body = {k: data.get(k) for k in ("sales", "catalog", "stock")}
    canonical = json.dumps(body, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
