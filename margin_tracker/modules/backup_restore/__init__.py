"""
Backup & Restore module package.

- Keeps imports light by deferring controller import until create_module() is called.
- Exposes MODULE_TITLE and create_module() for the app shell.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

MODULE_TITLE: str = "Backup & Restore"
__all__ = ["MODULE_TITLE", "create_module"]


if TYPE_CHECKING:
    from .controller import BackupRestoreController  # pragma: no cover


def create_module(session) -> "BackupRestoreController":
    """Factory: returns the module controller bound to `session`."""
    from .controller import BackupRestoreController
    return BackupRestoreController(session)
