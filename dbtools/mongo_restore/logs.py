"""
Logging helpers for restore sessions.

Each session gets its own logger, a child of SESSION_LOGGER_NAME, which is
passed to the dispatcher, writer and dropper. When a log file is
configured, a daily-rotated file handler is attached to that child for the
lifetime of the session and removed when the session closes, so sessions
running side by side never write into each other's files.
"""

from __future__ import annotations

import itertools
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional, Tuple

SESSION_LOGGER_NAME = "dbtools.mongo_restore.session"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_session_ids = itertools.count(1)


def session_logger_name() -> str:
    """Return a logger name unique to one session."""
    return f"{SESSION_LOGGER_NAME}.{next(_session_ids)}"


def open_session_log(
    name: str, log_file: Optional[str] = None
) -> Tuple[logging.Logger, Optional[logging.Handler]]:
    """Return the session logger and the file handler attached to it, if any.

    Args:
        name: Session logger name from session_logger_name()
        log_file: Path of the log file; rotated at midnight

    Returns:
        (logger, handler); handler is None when no file is configured
    """
    log = logging.getLogger(name)
    if not log_file:
        return log, None

    path = Path(log_file).resolve()
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = TimedRotatingFileHandler(path, when="midnight", backupCount=7, encoding="utf-8")
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    log.addHandler(handler)
    if log.getEffectiveLevel() > logging.INFO:
        log.setLevel(logging.INFO)
    return log, handler


def close_session_log(log: logging.Logger, handler: Optional[logging.Handler]) -> None:
    """Detach and close a handler returned by open_session_log()."""
    if handler is None:
        return
    log.removeHandler(handler)
    handler.close()
    log.setLevel(logging.NOTSET)


def setup_logging(verbose: bool = False) -> None:
    """Configure console logging for command line use."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    # Reduce noise from the driver
    logging.getLogger("pymongo").setLevel(logging.WARNING)
