"""
Preflight checks for backup files. Failures raise RuntimeError with a message
that is shown to the user as-is.
"""

from __future__ import annotations

import os
from pathlib import Path

BACKUP_SUFFIX = ".json"
MAX_IMPORT_BYTES = 200 * 1024 * 1024


def _human_size(num: int) -> str:
    size = float(max(0, int(num)))
    for unit in ("B", "KB", "MB"):
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} GB"


def validate_export_destination(dest_file: str, payload_size: int, free_space: int) -> None:
    """
    The parent folder must exist and be writable, the target must not be a
    folder, and there must be room for the temp file plus the final file.
    """
    path = Path(dest_file)
    folder = path.parent if path.parent != Path("") else Path.cwd()

    if not folder.is_dir():
        raise RuntimeError(f"Destination folder does not exist: {folder}")
    if not os.access(str(folder), os.W_OK | os.X_OK):
        raise RuntimeError(f"Destination folder is not writable: {folder}")
    if not path.name.strip():
        raise RuntimeError("Please provide a file name for the backup.")
    if path.is_dir():
        raise RuntimeError("Destination path points to a directory, not a file.")

    needed = 2 * max(0, payload_size)
    if free_space < needed:
        raise RuntimeError(
            f"Not enough free space for the backup: {_human_size(needed)} needed, "
            f"{_human_size(free_space)} available."
        )


def validate_import_source(src_file: str) -> None:
    p = Path(src_file)
    if not p.is_file():
        raise RuntimeError(f"Backup file not found: {p}")
    if not os.access(str(p), os.R_OK):
        raise RuntimeError(f"Backup file is not readable: {p}")
    size = p.stat().st_size
    if size == 0:
        raise RuntimeError("The backup file is empty.")
    if size > MAX_IMPORT_BYTES:
        raise RuntimeError(f"The backup file is too large ({_human_size(size)}).")
