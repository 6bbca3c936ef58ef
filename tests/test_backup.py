import json

import pytest

from margin_tracker.models import CatalogProduct, SaleInput
from margin_tracker.modules.backup_restore.service import ExportJob, ImportJob, export_backup, read_backup_file
from margin_tracker.modules.backup_restore.snapshot import (
    BackupFormatError,
    build_backup,
    dumps_backup,
    is_backup_payload,
    loads_backup,
    parse_backup_payload,
    payload_fingerprint,
)
from margin_tracker.modules.backup_restore.validators import validate_export_destination
from margin_tracker.modules.sales.calculations import build_sale


def _payload(generated_at="2026-03-01T10:00:00.000Z"):
    sale = build_sale(
        "s1",
        SaleInput(date="2026-02-20", client_or_tx="ACME", channel="Direct", product_ref="A",
                  quantity=2, sell_price_unit_ht=100, buy_price_unit=60),
        created_at="2026-02-20T09:00:00.000Z",
        now="2026-02-21T09:00:00.000Z",
    )
    catalog = [CatalogProduct(ref="A", category="Inverters", buy_price_unit=60.0, initial_stock=5, order=1)]
    return build_backup([sale], catalog, {"A": 3}, generated_at=generated_at)


def test_dump_then_load_keeps_content():
    original = _payload()
    loaded = loads_backup(dumps_backup(original))
    assert loaded.generated_at == original.generated_at
    assert loaded.sales == original.sales
    assert loaded.catalog == original.catalog
    assert loaded.stock == {"A": 3}


def test_shape_check():
    assert is_backup_payload(_payload().to_dict())
    assert not is_backup_payload({"generated_at": "x", "sales": [], "catalog": []})
    assert not is_backup_payload([])


@pytest.mark.parametrize(
    "mutate, message",
    [
        (lambda d: d.pop("stock"), "expected generated_at"),
        (lambda d: d.update(generated_at="yesterday"), "Invalid backup timestamp"),
        (lambda d: d["sales"].append(dict(d["sales"][0])), "Duplicate sale id"),
        (lambda d: d["sales"].append(42), "Sale #2 is not an object"),
    ],
)
def test_invalid_payloads_are_rejected(mutate, message):
    data = _payload().to_dict()
    mutate(data)
    with pytest.raises(BackupFormatError, match=message):
        parse_backup_payload(data)


def test_bad_json_is_a_format_error():
    with pytest.raises(BackupFormatError):
        loads_backup("{not json")


def test_derived_fields_in_file_are_rebuilt():
    data = _payload().to_dict()
    data["sales"][0]["net_margin"] = 9999
    data["sales"][0]["id"] = ""
    parsed = parse_backup_payload(data)
    assert parsed.sales[0].net_margin == 80.0
    assert parsed.sales[0].id  # a fresh id was assigned


def test_fingerprint_ignores_generated_at_only():
    a = _payload("2026-03-01T10:00:00.000Z")
    b = _payload("2026-04-01T10:00:00.000Z")
    assert payload_fingerprint(a) == payload_fingerprint(b)
    assert payload_fingerprint(a) == payload_fingerprint(a.to_dict())
    b.stock["A"] = 2
    assert payload_fingerprint(a) != payload_fingerprint(b)


def test_export_and_read_backup_file(tmp_path):
    out = export_backup(_payload(), tmp_path / "backup")
    assert out.suffix == ".json"
    assert json.loads(out.read_text(encoding="utf-8"))["generated_at"] == "2026-03-01T10:00:00.000Z"
    assert [p.name for p in tmp_path.iterdir()] == ["backup.json"]

    payload = read_backup_file(out)
    assert [s.id for s in payload.sales] == ["s1"]


def test_read_backup_file_errors(tmp_path):
    with pytest.raises(RuntimeError, match="not found"):
        read_backup_file(tmp_path / "missing.json")
    empty = tmp_path / "empty.json"
    empty.write_text("", encoding="utf-8")
    with pytest.raises(RuntimeError, match="empty"):
        read_backup_file(empty)
    wrong = tmp_path / "wrong.json"
    wrong.write_text('{"hello": 1}', encoding="utf-8")
    with pytest.raises(BackupFormatError):
        read_backup_file(wrong)


def test_export_job_reports_path(qtbot, tmp_path):
    job = ExportJob()
    with qtbot.waitSignal(job.finished, timeout=5000) as blocker:
        job.run_async(_payload(), str(tmp_path / "async.json"))
    ok, _message, path = blocker.args
    assert ok
    assert path.endswith("async.json")


def test_import_job_reports_failure(qtbot, tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("[]", encoding="utf-8")
    job = ImportJob()
    with qtbot.waitSignal(job.finished, timeout=5000) as blocker:
        job.run_async(str(bad))
    ok, message, payload = blocker.args
    assert not ok
    assert message.startswith("Import failed.")
    assert payload is None


def test_export_destination_checks(tmp_path):
    validate_export_destination(str(tmp_path / "ok.json"), 10, 100)
    with pytest.raises(RuntimeError, match="does not exist"):
        validate_export_destination(str(tmp_path / "missing" / "b.json"), 10, 100)
    with pytest.raises(RuntimeError, match="directory"):
        validate_export_destination(str(tmp_path), 10, 100)
    with pytest.raises(RuntimeError, match="Not enough free space"):
        validate_export_destination(str(tmp_path / "big.json"), 2048, 1024)
