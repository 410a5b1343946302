"""
Logging configuration for rtlgen.

Log records are rendered as JSON lines so that a single request can be
followed across the gateway and the services by its correlation id.
"""

import json
import logging
from logging.handlers import TimedRotatingFileHandler
from typing import Any

ROOT_LOGGER = "rtlgen"

# Extra attributes copied onto the JSON entry when present on the record
_CONTEXT_FIELDS = (
    "correlation_id",
    "service",
    "component",
    "event",
)
_DETAIL_FIELDS = (
    "attempt",
    "code",
    "status_code",
    "complexity",
    "hooks",
    "props",
    "issues",
    "latency_ms",
    "method",
    "path",
    "state",
    "error",
)


class StructuredFormatter(logging.Formatter):
    """Formatter producing one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in _CONTEXT_FIELDS + _DETAIL_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def configure_logging(
    log_level: str = "INFO",
    log_file: str | None = None,
    enable_console: bool = True,
) -> logging.Logger:
    """
    Configure the ``rtlgen`` logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Path to a log file (optional), rotated daily
        enable_console: Whether to also log to stderr

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    logger.propagate = False

    logger.handlers.clear()
    formatter = StructuredFormatter()

    if log_file:
        file_handler = TimedRotatingFileHandler(
            log_file,
            when="D",
            interval=1,
            backupCount=7,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if enable_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger
