"""
Cloud sync package.

- reconciler.py: pure state machine over whole snapshots (no Qt).
- remote_store.py: HTTP and shared-SQLite stores.
- service.py / controller.py / views.py: Qt wiring, imported by the app shell.
"""

from .reconciler import (
    KEEP_LOCAL,
    KEEP_REMOTE,
    ConflictSummary,
    SnapshotSummary,
    SyncOutcome,
    SyncReconciler,
)
from .remote_store import HttpRemoteStore, RemoteRecord, RemoteStoreError, SqliteRemoteStore

__all__ = [
    "KEEP_LOCAL",
    "KEEP_REMOTE",
    "ConflictSummary",
    "SnapshotSummary",
    "SyncOutcome",
    "SyncReconciler",
    "HttpRemoteStore",
    "RemoteRecord",
    "RemoteStoreError",
    "SqliteRemoteStore",
]
