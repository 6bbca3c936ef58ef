"""
utils/loggers.py

Purpose
-------
Console logger for the app shell plus a uniform, append-only JSON-lines event log
for long-running operations (cloud sync, backup import/export).

Public API
----------
- get_logger(name) -> logging.Logger
- get_event_logger(file_path=None) -> logging.Logger
- log_event(logger, op, phase, message, extra=None, level=logging.INFO)
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

__all__ = ["get_logger", "get_event_logger", "log_event"]

_EVENT_LOGGER_NAME = "margin_tracker.events"


def get_logger(name="margin_tracker"):
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(logging.INFO)
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(ch)
    return logger


def _default_log_file() -> Path:
    from ..config import LOG_PATH
    from ..constants import EVENT_LOG_FILE
    return LOG_PATH / EVENT_LOG_FILE


def get_event_logger(file_path: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Return a logger that writes JSON lines to logs/margin_tracker.log by default.
    Reuses the same logger (no duplicate handlers) across calls.
    """
    logger = logging.getLogger(_EVENT_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    if logger.handlers:
        return logger

    log_file = Path(file_path) if file_path else _default_log_file()
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_file), mode="a", encoding="utf-8", delay=True)
    except OSError:
        # No writable log dir: stderr only
        sh = logging.StreamHandler()
        sh.setLevel(level)
        sh.setFormatter(_JsonLineFormatter())
        logger.addHandler(sh)
        return logger

    fh.setLevel(level)
    fh.setFormatter(_JsonLineFormatter())
    logger.addHandler(fh)

    # Mirror problems to stderr (useful when running tests/CI)
    sh = logging.StreamHandler()
    sh.setLevel(logging.WARNING)
    sh.setFormatter(_JsonLineFormatter())
    logger.addHandler(sh)

    return logger


class _JsonLineFormatter(logging.Formatter):
    """
    Minimal JSON-lines formatter:
      {"ts":"2026-10-17T12:00:01.123Z","level":"INFO","name":"...","msg":"...","extra":{...}}
    """
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        ts = datetime.now(timezone.utc).replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"
        payload = {
            "ts": ts,
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if hasattr(record, "extra_payload") and isinstance(record.extra_payload, dict):
            payload["extra"] = record.extra_payload
        return json.dumps(payload, ensure_ascii=False, default=str)


def log_event(
    logger: logging.Logger,
    op: str,
    phase: str,
    message: str,
    extra: Dict[str, object] | None = None,
    level: int = logging.INFO,
) -> None:
    """
    Log a structured event line.

    Args:
        logger: Obtained from get_event_logger().
        op: Operation name, e.g. "sync" or "backup".
        phase: Phase within the operation, e.g. "pull", "push", "conflict", "import".
        message: Human-readable short message.
        extra: Optional additional key/values (timestamps, counts, paths).
        level: Logging level (default INFO).
    """
    extra_payload = {"op": op, "phase": phase}
    if extra:
        for k, v in extra.items():
            if k not in extra_payload:
                extra_payload[k] = v
    logger.log(level, message, extra={"extra_payload": extra_payload})
