from __future__ import annotations

import logging
import sys

"""Logging initialization with labeled prefixes.

Every line is written to stdout as `LABEL message` with one of the labels
INFO|WARN|ERROR|SUMMARY (DEBUG when --debug is given). Module loggers obtained
with logging.getLogger(__name__) under the `lead_import` namespace propagate
into the handler configured here.
"""

__all__ = [
    "setup_logging",
    "get_logger",
    "log_summary",
    "reset_logging",
    "LOGGER_NAME",
    "SUMMARY_LEVEL",
]

LOGGER_NAME = "lead_import"

# Custom SUMMARY level (between INFO=20 and WARNING=30)
SUMMARY_LEVEL = 25

_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """Formatter that prefixes each message with its level label."""

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
        SUMMARY_LEVEL: "SUMMARY",
    }

    def format(self, record: logging.LogRecord) -> str:
        level_label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        return f"{level_label} {record.getMessage()}"


def setup_logging(debug: bool = False) -> logging.Logger:
    """Setup the application logger (idempotent).

    Args:
        debug: lower logger and handler level to DEBUG

    Returns:
        Configured logger instance for the application
    """
    global _logger

    if _logger is not None:
        if debug:
            _set_level(_logger, logging.DEBUG)
        return _logger

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")

    logger = logging.getLogger(LOGGER_NAME)

    # Clear any existing handlers to avoid duplication
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    _set_level(logger, logging.DEBUG if debug else logging.INFO)

    # Prevent propagation to root logger to avoid duplicate output
    logger.propagate = False

    _logger = logger
    return logger


def _set_level(logger: logging.Logger, level: int) -> None:
    logger.setLevel(level)
    for h in logger.handlers:
        h.setLevel(level)


def get_logger() -> logging.Logger:
    """Get the configured application logger, configuring it on first use."""
    if _logger is None:
        return setup_logging()
    return _logger


def log_summary(message: str) -> None:
    """Log a message at SUMMARY level."""
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Reset the global logger state. Mainly for testing purposes."""
    global _logger
    _logger = None
