from __future__ import annotations

import logging
import sys

from ..models.results import RunStatus

"""Labeled console logging for the checker.

Every line starts with ``INFO``, ``WARN``, ``ERROR`` or ``SUMMARY`` (``DEBUG``
with ``--debug``). Module loggers created with ``logging.getLogger(__name__)``
inside ``cbd_check`` propagate to the ``cbd_check`` logger configured here.

The level of a per-file result line follows the file's RunStatus: passed
files log at INFO, failed files at WARN and unreadable files at ERROR, so a
``grep ^WARN`` over the output lists every file that needs attention.
"""

__all__ = [
    "setup_logging",
    "get_logger",
    "log_file_result",
    "log_summary",
    "enable_debug",
    "reset_logging",
]

SUMMARY_LEVEL = 25  # between INFO and WARNING
SUMMARY_LABEL = "SUMMARY"

LOGGER_NAME = "cbd_check"

STATUS_LEVELS = {
    RunStatus.PASSED: logging.INFO,
    RunStatus.FAILED: logging.WARNING,
    RunStatus.ERROR: logging.ERROR,
}

_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """Formatter producing ``LABEL message`` lines."""

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
        SUMMARY_LEVEL: SUMMARY_LABEL,
    }

    def format(self, record: logging.LogRecord) -> str:
        level_label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        return f"{level_label} {record.getMessage()}"


def setup_logging() -> logging.Logger:
    """Configure the ``cbd_check`` logger (stdout, labeled). Idempotent."""
    global _logger

    if _logger is not None:
        return _logger

    logging.addLevelName(SUMMARY_LEVEL, SUMMARY_LABEL)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)

    # handlers left over from an earlier CLI run in the same process
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.INFO)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)

    # stdout is the CLI contract; the root logger must not echo it to stderr
    logger.propagate = False

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """Return the application logger, configuring it on first use."""
    if _logger is None:
        return setup_logging()
    return _logger


def enable_debug() -> None:
    """Lower the application logger and its handlers to DEBUG (``--debug``)."""
    logger = get_logger()
    for handler in logger.handlers:
        handler.setLevel(logging.DEBUG)
    logger.setLevel(logging.DEBUG)
    logger.debug("debug mode enabled")


def log_file_result(status: RunStatus, line: str) -> None:
    """Log one file's result line at the level its status maps to."""
    get_logger().log(STATUS_LEVELS[status], line)


def log_summary(message: str) -> None:
    """Log the batch summary at SUMMARY level.

    ``message`` may already carry the ``SUMMARY`` label (as rendered by
    ``services.summary``); the label is not repeated.
    """
    get_logger().log(SUMMARY_LEVEL, message.removeprefix(f"{SUMMARY_LABEL} "))


def reset_logging() -> None:
    """Forget the configured logger so the next ``setup_logging`` rebuilds it.

    Each CLI invocation in a test process starts from a clean logger.
    """
    global _logger
    _logger = None
