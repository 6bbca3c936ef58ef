"""
modules/backup_restore/service.py

Purpose
-------
Write and read JSON backup files. The synchronous functions do the work; the
Job classes run them on the global QThreadPool and report back through Qt
signals (delivered on the UI thread).

Public interface
----------------
- export_backup(payload, dest_file) -> Path
- read_backup_file(src_file) -> BackupPayload          (raises BackupFormatError / RuntimeError)
- ExportJob.run_async(payload, dest_file)   -> finished(ok: bool, message: str, path: str)
- ImportJob.run_async(src_file)             -> finished(ok: bool, message: str, payload: object)

Import never touches local data: the controller hands the parsed payload to
TrackerSession.import_backup() only when parsing succeeded.
"""

from __future__ import annotations

import logging
import traceback
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QObject, QThreadPool, Signal

from ...models import BackupPayload
from ...utils.jobs import JobRunnable
from ...utils.loggers import get_event_logger, log_event
from . import fsops
from .snapshot import BackupFormatError, dumps_backup, loads_backup
from .validators import BACKUP_SUFFIX, validate_export_destination, validate_import_source


def _fmt_err(msg: str, exc: BaseException | None = None) -> str:
    if exc is None:
        return msg
    return f"{msg}\n\n{exc.__class__.__name__}: {exc}"


# ----------------------------
# Synchronous operations
# ----------------------------

def export_backup(payload: BackupPayload, dest_file: str | Path, *, logger: Optional[logging.Logger] = None) -> Path:
    dest = Path(dest_file)
    if dest.suffix.lower() != BACKUP_SUFFIX:
        dest = dest.with_suffix(BACKUP_SUFFIX)
    text = dumps_backup(payload)
    parent = dest.parent if dest.parent != Path("") else Path.cwd()
    validate_export_destination(str(dest), len(text.encode("utf-8")), fsops.get_free_space_bytes(str(parent)))
    out = fsops.atomic_write_text(dest, text)
    log_event(
        logger or get_event_logger(),
        "backup",
        "export",
        "Backup written.",
        {"path": str(out), "sales": len(payload.sales), "catalog": len(payload.catalog)},
    )
    return out


def read_backup_file(src_file: str | Path, *, logger: Optional[logging.Logger] = None) -> BackupPayload:
    validate_import_source(str(src_file))
    with open(src_file, "r", encoding="utf-8-sig") as f:
        text = f.read()
    payload = loads_backup(text)
    log_event(
        logger or get_event_logger(),
        "backup",
        "import",
        "Backup parsed.",
        {"path": str(src_file), "sales": len(payload.sales), "generated_at": payload.generated_at},
    )
    return payload


# ----------------------------
# Async jobs
# ----------------------------

class ExportJob(QObject):
    finished = Signal(bool, str, str)

    def __init__(self, logger: Optional[logging.Logger] = None, pool: Optional[QThreadPool] = None) -> None:
        super().__init__()
        self._pool = pool or QThreadPool.globalInstance()
        self._log = logger or logging.getLogger(__name__)

    def run_async(self, payload: BackupPayload, dest_file: str) -> None:
        self._pool.start(JobRunnable(lambda: self._run(payload, dest_file)))

    def _run(self, payload: BackupPayload, dest_file: str) -> None:
        try:
            out = export_backup(payload, dest_file)
        except (OSError, RuntimeError) as exc:
            self._log.debug("Export failed:\n%s", traceback.format_exc())
            self.finished.emit(False, _fmt_err("Export failed.", exc), "")
            return
        self.finished.emit(True, "Backup exported successfully.", str(out))


class ImportJob(QObject):
    finished = Signal(bool, str, object)

    def __init__(self, logger: Optional[logging.Logger] = None, pool: Optional[QThreadPool] = None) -> None:
        super().__init__()
        self._pool = pool or QThreadPool.globalInstance()
        self._log = logger or logging.getLogger(__name__)

    def run_async(self, src_file: str) -> None:
        self._pool.start(JobRunnable(lambda: self._run(src_file)))

    def _run(self, src_file: str) -> None:
        try:
            payload = read_backup_file(src_file)
        except (OSError, RuntimeError, BackupFormatError) as exc:
            self._log.debug("Import failed:\n%s", traceback.format_exc())
            self.finished.emit(False, _fmt_err("Import failed.", exc), None)
            return
        self.finished.emit(True, f"Backup loaded ({len(payload.sales)} sales).", payload)
