"""
statement_utils/logging_utils.py

Shared logging and audit helpers for the statement ingestion utilities.

Every module in the package obtains its logger through ``get_logger`` so
that handlers are attached exactly once, to the ``statement_utils``
package logger.  Console output is always enabled; file output goes to
``$LOG_DIR/statement_utils.log`` (default ``logs``).  On a fresh run an
existing log file is archived with a timestamp so each run starts with a
clean log.  Logging verbosity follows the ``DEBUG`` environment variable.

Audit events are kept in an in-memory list of ``(timestamp, message)``
tuples and mirrored to the log at INFO level.  Set ``AUDIT=false`` to
disable auditing.
"""

###############################################################################
# Metadata
#
# @file        logging_utils.py
# @brief       Logging configuration and audit trail for statement ingestion
# @created     2026-10-17
# @modified    2026-10-17
###############################################################################

from __future__ import annotations

import datetime as _dt
import logging
import os
from typing import List, Tuple

PACKAGE_LOGGER = "statement_utils"
_FORMAT = "[%(asctime)s] %(levelname)s %(name)s - %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

_audit_log: List[Tuple[str, str]] = []


def _debug_enabled() -> bool:
    return os.getenv("DEBUG", "false").lower() == "true"


def _setup_file_logging(logger: logging.Logger, formatter: logging.Formatter) -> None:
    """Attach a file handler under ``LOG_DIR``, archiving any previous log.

    Failures are ignored so that console logging keeps working on
    read-only filesystems.
    """
    log_dir = os.getenv("LOG_DIR", "logs")
    try:
        os.makedirs(log_dir, exist_ok=True)
    except OSError:
        return
    log_file = os.path.join(log_dir, "statement_utils.log")
    try:
        if os.path.exists(log_file):
            ts = _dt.datetime.now().strftime("%Y%m%d_%H%M%S")
            os.rename(log_file, os.path.join(log_dir, f"statement_utils_{ts}.log"))
    except OSError:
        pass
    try:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    except OSError:
        return
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)


def configure_logging(debug: bool | None = None) -> logging.Logger:
    """Configure the package logger once and return it.

    Calling again only adjusts the level, so reloading modules in an
    interactive session does not duplicate handlers.

    Args:
        debug: Force DEBUG (True) or INFO (False).  ``None`` reads the
            ``DEBUG`` environment variable.
    """
    if debug is None:
        debug = _debug_enabled()
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    if not logger.handlers:
        formatter = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)
        if os.getenv("LOG_TO_FILE", "true").lower() == "true":
            _setup_file_logging(logger, formatter)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a module logger that inherits the package handlers."""
    configure_logging()
    return logging.getLogger(name)


logger = get_logger(__name__)


def _audit(message: str) -> None:
    """Record an audit event with the current timestamp.

    Args:
        message: Human-readable description of the event to record.
    """
    if os.getenv("AUDIT", "true").lower() == "true":
        timestamp = _dt.datetime.now().isoformat(timespec="seconds")
        _audit_log.append((timestamp, message))
        logger.info(f"AUDIT: {message}")


def get_audit_log() -> List[Tuple[str, str]]:
    """Return a copy of the audit log as ``(timestamp, message)`` tuples."""
    return list(_audit_log)


def clear_audit_log() -> None:
    _audit_log.clear()


__all__ = [
    "configure_logging",
    "get_logger",
    "get_audit_log",
    "clear_audit_log",
]
