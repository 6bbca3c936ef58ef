import os
from pathlib import Path

from .constants import (
    DATA_DIR,
    DB_FILE_NAME,
    LOG_DIR,
    DEFAULT_REMOTE_TABLE,
    DEFAULT_STORE_ID,
    DEFAULT_CATALOG_URL,
)

BASE_DIR = Path(__file__).resolve().parent
DATA_PATH = Path(os.environ.get("MARGIN_TRACKER_DATA_DIR") or (BASE_DIR / DATA_DIR))
DB_PATH = DATA_PATH / DB_FILE_NAME
LOG_PATH = DATA_PATH / LOG_DIR

# ensure data dir exists early
DATA_PATH.mkdir(parents=True, exist_ok=True)

REMOTE_URL = (os.environ.get("MARGIN_TRACKER_REMOTE_URL") or "").strip()
REMOTE_KEY = (os.environ.get("MARGIN_TRACKER_REMOTE_KEY") or "").strip()
REMOTE_TABLE = (os.environ.get("MARGIN_TRACKER_REMOTE_TABLE") or "").strip() or DEFAULT_REMOTE_TABLE
STORE_ID = (os.environ.get("MARGIN_TRACKER_STORE_ID") or "").strip() or DEFAULT_STORE_ID
SHARED_DB = (os.environ.get("MARGIN_TRACKER_SHARED_DB") or "").strip()
CATALOG_URL = (os.environ.get("MARGIN_TRACKER_CATALOG_URL") or "").strip() or DEFAULT_CATALOG_URL


def remote_store_from_config():
    """
    Build the remote store described by the environment, or None when sync is not configured.

    An HTTP endpoint wins over a shared SQLite file when both are set.
    """
    from .modules.sync.remote_store import HttpRemoteStore, SqliteRemoteStore

    if REMOTE_URL and REMOTE_KEY:
        return HttpRemoteStore(REMOTE_URL, REMOTE_KEY, table=REMOTE_TABLE, store_id=STORE_ID)
    if SHARED_DB:
        return SqliteRemoteStore(SHARED_DB, store_id=STORE_ID)
    return None
