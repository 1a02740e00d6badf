"""Logging helpers for the preservation core.

Console output carries every record at the configured level. When
``PRESERVATION_LOG_PATH`` is set, a second file handler keeps a short
narrative of the run: warnings and above, plus records logged with
``extra={"narrative": True}`` (bag built, bag valid).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class NarrativeFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        return record.levelno >= logging.WARNING or bool(getattr(record, "narrative", False))


def preservation_log_paths() -> list[str]:
    log_path = (os.getenv("PRESERVATION_LOG_PATH") or "").strip()
    return [log_path] if log_path else []


def configure_logging(level: int = logging.INFO, log_paths: list[str] | None = None) -> bool:
    """Install console and narrative handlers on the root logger.

    ``log_paths`` defaults to the environment. Returns False and leaves the
    root logger alone when it already has handlers.
    """
    root = logging.getLogger()
    if root.handlers:
        return False
    if log_paths is None:
        log_paths = preservation_log_paths()
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    handlers.extend(_narrative_handler(path) for path in log_paths)
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT, handlers=handlers)
    return True


def _narrative_handler(log_path: str) -> logging.Handler:
    path = Path(log_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.addFilter(NarrativeFilter())
    return handler
