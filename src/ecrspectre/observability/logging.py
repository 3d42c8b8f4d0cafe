"""
Logging configuration for ecrspectre.

Logs go to stderr so reports written to stdout stay machine readable.
Two formats are available: human readable lines for terminals and one
JSON object per line for log aggregation.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

ROOT_LOGGER_NAME = "ecrspectre"

LOG_LEVEL_ENV = "ECRSPECTRE_LOG_LEVEL"
LOG_FORMAT_ENV = "ECRSPECTRE_LOG_FORMAT"

DEFAULT_LOG_LEVEL = "WARNING"

# LogRecord attributes that are not user supplied extras.
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs structured JSON logs.

    Useful for log aggregation systems like CloudWatch or Cloud Logging.
    """

    def __init__(
        self,
        include_timestamp: bool = True,
        extra_fields: dict[str, Any] | None = None,
    ):
        """
        Initialize structured formatter.

        Args:
            include_timestamp: Include timestamp in output
            extra_fields: Additional fields to include in every log
        """
        super().__init__()
        self.include_timestamp = include_timestamp
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {}

        if self.include_timestamp:
            log_data["timestamp"] = datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat()

        log_data["level"] = record.levelname.lower()
        log_data["logger"] = record.name
        log_data["message"] = record.getMessage()

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        log_data.update(self.extra_fields)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Formatter that outputs human-readable logs.

    Useful for local development and CLI usage.
    """

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(
        self,
        use_colors: bool = True,
        include_timestamp: bool = True,
    ):
        """
        Initialize human-readable formatter.

        Args:
            use_colors: Use ANSI colors when stderr is a terminal
            include_timestamp: Include timestamp in output
        """
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as human-readable text."""
        parts = []

        if self.include_timestamp:
            timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
            parts.append(f"[{timestamp.strftime('%Y-%m-%d %H:%M:%S')}]")

        level = record.levelname
        if self.use_colors and level in self.COLORS:
            level = f"{self.COLORS[level]}{level}{self.RESET}"
        parts.append(f"{level:>8}")

        parts.append(f"{record.name}:")
        parts.append(record.getMessage())

        output = " ".join(parts)

        if record.exc_info:
            output += "\n" + self.formatException(record.exc_info)

        return output


def configure_logging(
    level: str = DEFAULT_LOG_LEVEL,
    format: str = "human",
    output: str = "stderr",
    extra_fields: dict[str, Any] | None = None,
) -> logging.Logger:
    """
    Configure logging for ecrspectre.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Output format (human, json)
        output: Output destination (stderr, stdout)
        extra_fields: Extra fields to include in structured logs

    Returns:
        The configured package logger
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
    root_logger.propagate = False

    root_logger.handlers.clear()

    if output == "stdout":
        handler = logging.StreamHandler(sys.stdout)
    else:
        handler = logging.StreamHandler(sys.stderr)

    if format == "json":
        formatter: logging.Formatter = StructuredFormatter(extra_fields=extra_fields)
    else:
        formatter = HumanReadableFormatter()

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    return root_logger


def configure_from_env(verbose: bool = False) -> logging.Logger:
    """
    Configure logging from ECRSPECTRE_LOG_LEVEL / ECRSPECTRE_LOG_FORMAT.

    Args:
        verbose: Force DEBUG level

    Returns:
        The configured package logger
    """
    level = "DEBUG" if verbose else os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL)
    log_format = os.getenv(LOG_FORMAT_ENV, "human")
    return configure_logging(level=level, format=log_format)
