import threading

from margin_tracker.constants import SYNC_STATE_SYNCED
from margin_tracker.models import SaleInput
from margin_tracker.modules.backup_restore.snapshot import build_backup
from margin_tracker.modules.sales.calculations import build_sale
from margin_tracker.modules.sync.reconciler import KEEP_LOCAL, SyncReconciler
from margin_tracker.modules.sync.service import AutoSyncService


def _snapshot(generated_at, qty=1):
    sale = build_sale("s1", SaleInput(date="2026-01-10", client_or_tx="ACME", channel="Direct",
                                      product_ref="A", quantity=qty, sell_price_unit_ht=100),
                      created_at="2026-01-10T08:00:00.000Z", now="2026-01-10T08:00:00.000Z")
    return build_backup([sale], [], {}, generated_at=generated_at)


LOCAL = _snapshot("2026-02-01T00:00:00.000Z")


def _service(remote, reconciler=None, revision=lambda: 0):
    return AutoSyncService(reconciler or SyncReconciler(remote), lambda: LOCAL, revision, debounce_ms=30)


def test_enable_publishes_in_background(qtbot, remote):
    svc = _service(remote)
    with qtbot.waitSignal(svc.state_changed, timeout=5000) as blocker:
        svc.enable()
    assert blocker.args == [SYNC_STATE_SYNCED]
    assert remote.writes == 1
    assert not svc.busy
    assert svc.last_status


def test_pushes_are_debounced(qtbot, remote):
    svc = _service(remote)
    with qtbot.waitSignal(svc.state_changed, timeout=5000):
        svc.enable()

    for _ in range(3):
        svc.schedule_push()
    qtbot.waitUntil(lambda: remote.writes == 2, timeout=5000)
    qtbot.wait(200)
    assert remote.writes == 2


def test_adopted_snapshot_is_dropped_when_local_data_moved(qtbot, remote):
    remote.put(_snapshot("2026-05-01T00:00:00.000Z", qty=4).to_dict())
    revision = {"n": 0}

    def local_edit_during_first_read():
        if remote.reads == 1:
            revision["n"] += 1

    remote.on_read = local_edit_during_first_read
    svc = _service(remote, revision=lambda: revision["n"])
    with qtbot.waitSignal(svc.snapshot_adopted, timeout=5000) as blocker:
        svc.enable()
    assert blocker.args[0].sales[0].quantity == 4
    assert remote.reads == 2


def test_conflict_then_keep_local(qtbot, remote):
    remote.put(_snapshot("2026-01-01T00:00:00.000Z", qty=3).to_dict())
    reconciler = SyncReconciler(remote, baseline="2026-05-01T00:00:00.000Z", state=SYNC_STATE_SYNCED)
    svc = _service(remote, reconciler)

    with qtbot.waitSignal(svc.conflict_detected, timeout=5000) as blocker:
        svc.reconcile_now()
    assert blocker.args[0].remote.lines == 1
    assert svc.state == "conflict"

    svc.schedule_push()
    qtbot.wait(100)
    assert remote.writes == 0

    with qtbot.waitSignal(svc.state_changed, timeout=5000) as blocker:
        svc.resolve(KEEP_LOCAL)
    assert blocker.args == [SYNC_STATE_SYNCED]
    assert remote.writes == 1


def test_errors_are_reported_not_raised(qtbot, remote):
    remote.fail = True
    svc = _service(remote)
    with qtbot.waitSignal(svc.status_changed, timeout=5000) as blocker:
        svc.enable()
    assert "remote unavailable" in blocker.args[0]


def test_disable_is_immediate(qtbot, remote):
    svc = _service(remote)
    with qtbot.waitSignal(svc.state_changed, timeout=1000) as blocker:
        svc.disable()
    assert blocker.args == ["disabled"]


def test_teardown_stops_new_jobs(qtbot, remote):
    svc = _service(remote)
    svc.teardown()
    svc.enable()
    qtbot.wait(100)
    assert remote.reads == 0


def test_dropped_adoption_keeps_baseline_so_peer_edits_conflict(qtbot, remote):
    base = remote.put(_snapshot("2026-01-01T00:00:00.000Z").to_dict())
    # a peer publishes newer data after our last sync
    remote.put(_snapshot("2026-05-01T00:00:00.000Z", qty=4).to_dict())

    local = {"snap": _snapshot("2026-02-01T00:00:00.000Z"), "revision": 0}

    def local_edit_during_first_read():
        if remote.reads == 1:
            local["snap"] = _snapshot("2026-07-01T00:00:00.000Z", qty=2)
            local["revision"] += 1

    remote.on_read = local_edit_during_first_read
    reconciler = SyncReconciler(remote, baseline=base, state=SYNC_STATE_SYNCED)
    svc = AutoSyncService(reconciler, lambda: local["snap"], lambda: local["revision"], debounce_ms=30)
    adopted = []
    svc.snapshot_adopted.connect(adopted.append)

    with qtbot.waitSignal(svc.conflict_detected, timeout=5000) as blocker:
        svc.reconcile_now()
    assert blocker.args[0].remote.lines == 1
    assert svc.state == "conflict"
    assert reconciler.baseline == base
    assert adopted == []
    assert remote.writes == 0
    assert remote.record.payload["sales"][0]["quantity"] == 4


def test_disable_during_running_job_sticks(qtbot, remote):
    gate = threading.Event()
    remote.on_read = lambda: gate.wait(5)
    svc = _service(remote)
    states = []
    svc.state_changed.connect(states.append)

    svc.enable()
    assert svc.busy
    svc.disable()
    assert svc.state == "disabled"
    gate.set()

    qtbot.waitUntil(lambda: not svc.busy, timeout=5000)
    assert svc.state == "disabled"
    assert "synced" not in states

    svc.schedule_push()
    qtbot.wait(100)
    assert remote.writes == 1


def test_enable_again_after_disable_during_job(qtbot, remote):
    gate = threading.Event()
    remote.on_read = lambda: gate.wait(5)
    svc = _service(remote)

    svc.enable()
    svc.disable()
    svc.enable()
    gate.set()
    qtbot.waitUntil(lambda: svc.state == SYNC_STATE_SYNCED and not svc.busy, timeout=5000)
    assert remote.reads == 2
