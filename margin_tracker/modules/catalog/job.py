"""
Background catalog refresh: fetch + parse off the UI thread, report through
`finished(ok, message, products)`. Applying the result is the caller's job
(TrackerSession.replace_catalog).
"""
from __future__ import annotations

import logging
import traceback
from typing import Optional

from PySide6.QtCore import QObject, QThreadPool, Signal

from ...utils.jobs import JobRunnable
from .catalog import CatalogFetchError, fetch_remote_catalog


class CatalogRefreshJob(QObject):
    finished = Signal(bool, str, object)

    def __init__(self, url: Optional[str] = None, pool: Optional[QThreadPool] = None) -> None:
        super().__init__()
        self._url = url
        self._pool = pool or QThreadPool.globalInstance()
        self._log = logging.getLogger(__name__)

    def run_async(self) -> None:
        self._pool.start(JobRunnable(self._run))

    def _run(self) -> None:
        try:
            products = fetch_remote_catalog(self._url)
        except CatalogFetchError as exc:
            self._log.debug("Catalog refresh failed:\n%s", traceback.format_exc())
            self.finished.emit(False, str(exc), None)
            return
        if not products:
            self.finished.emit(False, "The pricing page contained no products.", None)
            return
        self.finished.emit(True, f"Catalog refreshed ({len(products)} products).", products)
