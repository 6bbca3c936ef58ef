from PySide6.QtCore import QSettings

from margin_tracker.main import MainWindow
from margin_tracker.models import CatalogProduct
from margin_tracker.modules.backup_restore.controller import BackupRestoreController
from margin_tracker.modules.dashboard.controller import DashboardController
from margin_tracker.modules.inventory.controller import InventoryController
from margin_tracker.modules.sales.controller import SalesController
from margin_tracker.modules.sync.controller import SyncController


def test_main_window_builds_every_screen(qtbot, session):
    win = MainWindow(session, auto_refresh_catalog=False)
    qtbot.addWidget(win)
    titles = [win.nav.item(i).text() for i in range(win.nav.count())]
    assert titles == ["Dashboard", "Sales", "Stock", "Sync", "Backup & Restore"]
    assert all(m is not None for _t, m in win.modules)

    win.show_module("Sales")
    assert win.stack.currentIndex() == 1
    win.module("Dashboard").navigate_to_stock.emit()
    assert win.nav.currentRow() == 2
    win.close()


def test_sales_controller_follows_session(qtbot, session, make_input):
    ctl = SalesController(session)
    qtbot.addWidget(ctl.view)
    assert ctl.model.rowCount() == 0

    session.save_sale(make_input(quantity=2))
    session.save_sale(make_input(transaction_ref="TX-2"))
    assert ctl.model.rowCount() == 2
    assert ctl.view.lbl_summary.text().startswith("2 lines")

    ctl.view.set_mode("orders")
    assert ctl.view.current_mode() == "orders"
    assert ctl.orders_model.rowCount() == 2
    assert ctl.view.lbl_summary.text() == "2 orders"


def test_dashboard_shows_kpis(qtbot, session, make_input):
    ctl = DashboardController(session)
    qtbot.addWidget(ctl.view)
    assert ctl.view.kpi_text("revenue") == "0.00"

    session.save_sale(make_input())
    assert ctl.view.kpi_text("revenue") == "1,000.00"
    assert ctl.view.kpi_text("net_margin") == "155.10"
    assert ctl.view.kpi_text("sales_count") == "1"
    assert ctl.view.kpi_text("low_stock") == "1"
    assert ctl.view.model_channels.rowCount() == 1


def test_inventory_controller_applies_fetched_catalog(qtbot, session):
    ctl = InventoryController(session, auto_refresh=False)
    qtbot.addWidget(ctl.view)
    assert ctl.model.rowCount() == 3

    ctl._on_catalog_fetched(False, "HTTP 503: down", None)
    assert "keeping current catalog" in ctl.view.lbl_status.text()
    assert len(session.state.catalog) == 3

    ctl._on_catalog_fetched(True, "Catalog refreshed (1 products).",
                            [CatalogProduct(ref="NEW-1", category="Accessories", initial_stock=9, order=1)])
    assert [p.ref for p in session.state.catalog] == ["NEW-1"]
    assert ctl.model.rowCount() == 1
    assert ctl.view.lbl_summary.text() == "1 of 1 products"
    assert ctl.view.btn_refresh_catalog.isEnabled()
    ctl.teardown()


def test_inventory_filters(qtbot, session):
    ctl = InventoryController(session, auto_refresh=False)
    qtbot.addWidget(ctl.view)
    ctl.view.chk_low.setChecked(True)
    assert ctl.model.rowCount() == 1
    ctl.view.chk_low.setChecked(False)
    ctl.view.txt_search.setText("luna")
    assert ctl.model.rowCount() == 1
    assert ctl.model.at(0)["ref"] == "LUNA2000-5-E0"


def test_sync_controller_without_remote(qtbot, session):
    ctl = SyncController(session, None)
    qtbot.addWidget(ctl.view)
    assert ctl.service is None
    assert not ctl.view.chk_auto.isEnabled()
    assert ctl.view.lbl_remote.text() == "not configured"


def test_sync_controller_enables_and_pushes_edits(qtbot, session, make_input, remote):
    ctl = SyncController(session, remote, debounce_ms=30, ask_on_conflict=False)
    qtbot.addWidget(ctl.view)

    with qtbot.waitSignal(ctl.service.state_changed, timeout=5000):
        ctl.view.chk_auto.setChecked(True)
    assert ctl.view.lbl_state.text() == "Synced"
    assert remote.writes == 1
    assert session.state_repo.get().auto_sync is True
    assert session.state_repo.get().remote_baseline == remote.record.updated_at

    session.save_sale(make_input())
    qtbot.waitUntil(lambda: remote.writes == 2, timeout=5000)
    assert len(remote.record.payload["sales"]) == 1

    ctl.view.chk_auto.setChecked(False)
    assert ctl.view.lbl_state.text() == "Disabled"
    ctl.teardown()


def test_sync_controller_adopts_remote(qtbot, session, make_input, remote):
    other = session.snapshot().to_dict()
    other["generated_at"] = "2027-01-01T00:00:00.000Z"
    remote.put(other)
    session.save_sale(make_input())

    ctl = SyncController(session, remote, debounce_ms=30, ask_on_conflict=False)
    qtbot.addWidget(ctl.view)
    with qtbot.waitSignal(ctl.service.snapshot_adopted, timeout=5000):
        ctl.view.chk_auto.setChecked(True)
    assert session.state.sales == []
    assert session.state.generated_at == "2027-01-01T00:00:00.000Z"
    ctl.teardown()


def _backup_controller(session, tmp_path):
    settings = QSettings(str(tmp_path / "settings.ini"), QSettings.IniFormat)
    ctl = BackupRestoreController(session, settings=settings, confirm_import=False)
    return ctl


def test_backup_export_then_import(qtbot, session, make_input, tmp_path):
    ctl = _backup_controller(session, tmp_path)
    widget = ctl.get_widget()
    qtbot.addWidget(widget)
    session.save_sale(make_input())

    dest = (tmp_path / "backup.json").resolve()
    with qtbot.waitSignal(ctl.backup_completed, timeout=5000) as blocker:
        ctl.start_export(str(dest))
    assert blocker.args == [str(dest)]
    assert dest.exists()
    assert "Last backup" in ctl._last_label.text()

    session.delete_sale(session.state.sales[0].id)
    assert session.state.sales == []

    with qtbot.waitSignal(ctl.restore_completed, timeout=5000):
        ctl.start_import(str(dest))
    assert len(session.state.sales) == 1
    assert ctl.lbl_status.text().startswith("Imported 1 sales")

    # remembered across controller instances
    again = _backup_controller(session, tmp_path)
    assert again._last_backup_path == dest
