from PySide6.QtCore import QObject
from PySide6.QtWidgets import QWidget


class BaseModule(QObject):
    """Contract between a screen controller and the app shell."""

    TITLE = ""

    def get_widget(self) -> QWidget:
        raise NotImplementedError

    def get_title(self) -> str:
        return self.TITLE

    def refresh(self) -> None:
        """Reload from the session; called when the screen becomes visible."""

    def teardown(self) -> None:
        """Stop timers / drop pending work before the window closes."""
