"""
Logging setup for applications embedding the sync client.

Only the ``sessionsync`` logger is configured; the root logger and other
libraries' loggers are left to the application. Output goes to the console
and, when a directory is given, to a daily CSV file with one row per record
keyed by sync session.
"""

import csv
import io
import logging
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional, Union

PACKAGE_LOGGER = "sessionsync"

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(session)s%(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

CSV_FIELDS = ("timestamp", "level", "logger", "session_id", "message", "error")


def _error_name(record: logging.LogRecord) -> str:
    error = getattr(record, "error", "")
    if not error and record.exc_info and record.exc_info[1] is not None:
        error = type(record.exc_info[1]).__name__
    return error


class SessionConsoleFormatter(logging.Formatter):
    """Prefixes the message with ``[session_id]`` when the record has one."""

    def format(self, record):
        session_id = getattr(record, "session_id", "")
        record.session = f"[{session_id}] " if session_id else ""
        return super().format(record)


class SessionCsvFormatter(logging.Formatter):
    """
    One CSV row per record, in ``CSV_FIELDS`` order.

    ``session_id`` and ``error`` come from ``extra``; a record logged with
    ``exc_info`` and no explicit error gets the exception class name.
    """

    def format(self, record):
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=CSV_FIELDS, lineterminator="")
        writer.writerow({
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "session_id": getattr(record, "session_id", ""),
            "message": record.getMessage(),
            "error": _error_name(record),
        })
        return buffer.getvalue()


class SessionCsvHandler(TimedRotatingFileHandler):
    """Daily rotating CSV file; every file opened at offset 0 gets the header row."""

    def __init__(self, log_dir: Path, backup_count: int = 30):
        today = datetime.now().strftime("%Y_%m_%d")
        super().__init__(
            filename=log_dir / f"sessionsync_{today}.csv",
            when="midnight",
            backupCount=backup_count,
            encoding="utf-8",
        )
        self.setFormatter(SessionCsvFormatter(datefmt=DATE_FORMAT))

    def _open(self):
        stream = super()._open()
        if stream.tell() == 0:
            stream.write(",".join(CSV_FIELDS) + "\n")
            stream.flush()
        return stream


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[Union[str, Path]] = None,
    *,
    console: bool = True,
) -> logging.Logger:
    """
    Attach console and CSV handlers to the ``sessionsync`` logger.

    Idempotent: a second call only updates the level.

    Args:
        level: Level for the ``sessionsync`` logger
        log_dir: Directory for CSV logs; no file output when omitted
        console: Whether to log to stderr

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    if any(getattr(h, "_sessionsync", False) for h in logger.handlers):
        return logger

    handlers: list[logging.Handler] = []
    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(SessionConsoleFormatter(CONSOLE_FORMAT, DATE_FORMAT))
        handlers.append(console_handler)
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(SessionCsvHandler(log_dir))

    for handler in handlers:
        handler._sessionsync = True
        logger.addHandler(handler)
    return logger
