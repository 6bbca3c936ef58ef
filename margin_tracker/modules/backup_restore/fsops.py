"""
modules/backup_restore/fsops.py

Purpose
-------
File-system helpers for backup files: a crash never leaves a half-written
backup behind.

Public interface
----------------
- get_free_space_bytes(path: str) -> int
- atomic_write_text(dest: str, text: str, *, logger=None) -> Path
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

__all__ = [
    "get_free_space_bytes",
    "atomic_write_text",
]


def _fsync_dir(path: Path) -> None:
    """fsync a directory after rename; not supported on every platform (Windows)."""
    try:
        fd = os.open(str(path), os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


def get_free_space_bytes(path: str) -> int:
    """
    Return available free space in bytes for the filesystem that contains `path`.
    """
    probe = Path(path)
    if not probe.exists():
        probe = probe.parent if probe.parent.exists() else Path.home()
    return int(shutil.disk_usage(str(probe)).free)


def atomic_write_text(dest: str | Path, text: str, *, logger: Optional[logging.Logger] = None) -> Path:
    """
    Write `text` to a temp file next to `dest`, fsync it, then os.replace() it
    over `dest`. The temp file is removed if anything fails.
    """
    dest_p = Path(dest).resolve()
    dest_p.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{dest_p.name}.", suffix=".part", dir=str(dest_p.parent))
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(str(tmp), str(dest_p))
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    _fsync_dir(dest_p.parent)

    if logger is not None:
        logger.info("atomic_write_text: %s (%d bytes)", dest_p, dest_p.stat().st_size)
    return dest_p
