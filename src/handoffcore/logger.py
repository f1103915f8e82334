"""
Append-only log sink for contract validation events.

Every entry is written as one line::

    [2026-10-18T09:12:44.120512+00:00] TestContractValidator: <message>

One dedicated logger is configured per log file path, so several
validators pointed at the same file share a single append-mode handler.
When debug is enabled, entries are mirrored to stdout as well. Records
still propagate to the root logger.

Usage:
    from handoffcore.logger import get_validation_logger

    log = get_validation_logger("/tmp/contract-validation.log", debug=False)
    log.info("Starting handoff validation")
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional

VALIDATION_LOGGER_NAME = "handoffcore.validation"
VALIDATION_LOG_FORMAT = "[%(asctime)s] TestContractValidator: %(message)s"


class IsoTimestampFormatter(logging.Formatter):
    """Formatter that renders ``%(asctime)s`` as an ISO-8601 UTC timestamp."""

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        return datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()


def _logger_name(log_file: str) -> str:
    # Dots in the path would otherwise nest loggers
    return f"{VALIDATION_LOGGER_NAME}.{os.path.abspath(log_file).replace('.', '_')}"


def get_validation_logger(log_file: str, debug: bool = False) -> logging.Logger:
    """Return the logger that appends to ``log_file``.

    Handlers are attached only once per path. A stdout mirror is added the
    first time the logger is requested with ``debug=True``.
    """
    logger = logging.getLogger(_logger_name(log_file))
    logger.setLevel(logging.INFO)

    has_file = any(isinstance(h, logging.FileHandler) for h in logger.handlers)
    if not has_file:
        directory = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(directory, exist_ok=True)
        handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        handler.setFormatter(IsoTimestampFormatter(VALIDATION_LOG_FORMAT))
        logger.addHandler(handler)

    if debug:
        has_stdout = any(
            type(h) is logging.StreamHandler and h.stream is sys.stdout
            for h in logger.handlers
        )
        if not has_stdout:
            echo = logging.StreamHandler(sys.stdout)
            echo.setFormatter(IsoTimestampFormatter(VALIDATION_LOG_FORMAT))
            logger.addHandler(echo)

    return logger


def close_validation_logger(log_file: str) -> None:
    """Detach and close every handler of the logger for ``log_file``."""
    logger = logging.getLogger(_logger_name(log_file))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
