from typing import Callable

from PySide6.QtCore import QRunnable, Slot


class JobRunnable(QRunnable):
    """
    Thin QRunnable wrapper that executes a callable on the thread pool.
    Results travel back through the caller's own Qt signals.
    """
    def __init__(self, work: Callable[[], None]) -> None:
        super().__init__()
        self.setAutoDelete(True)
        self._work = work

    @Slot()
    def run(self) -> None:  # type: ignore[override]
        self._work()
