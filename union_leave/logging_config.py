"""
Centralized logging configuration for the leave import tooling.

Format: 2026-01-06T14:05:52Z [source] LEVEL message

Environment Variables:
    LOG_LEVEL: Set to "DEBUG", "TRACE", or "INFO" (default)
               - INFO: Normal operation logs
               - DEBUG: Per-item parse and match diagnostics
               - TRACE: Raw store filters and payloads

Usage:
    from union_leave.logging_config import configure_logging, get_logger

    configure_logging(source="ical-import")
    logger = get_logger(__name__)
    logger.info("Import started")
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import UTC, datetime

# Custom TRACE level for very verbose diagnostics
TRACE = 5
logging.addLevelName(TRACE, "TRACE")


def _trace(self: logging.Logger, message: object, *args: object, **kw: object) -> None:
    """Log a message at TRACE level (5)."""
    if self.isEnabledFor(TRACE):
        self._log(TRACE, message, args, **kw)  # type: ignore[arg-type]


logging.Logger.trace = _trace  # type: ignore[attr-defined]


class ISO8601Formatter(logging.Formatter):
    """Formatter producing ISO8601 UTC timestamps.

    Output format: 2026-01-06T14:05:52Z [source] LEVEL message
    """

    def __init__(self, source: str = "app"):
        self.source = source
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
        message = record.getMessage()

        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        return f"{timestamp} [{self.source}] {record.levelname} {message}"


def resolve_level(level_name: str | None = None, debug: bool | None = None) -> int:
    """Map a LOG_LEVEL style name to a numeric level.

    Args:
        level_name: "TRACE", "DEBUG", "INFO", "WARNING"... (defaults to LOG_LEVEL env var)
        debug: Force DEBUG when True

    Returns:
        Numeric logging level
    """
    name = (level_name if level_name is not None else os.getenv("LOG_LEVEL", "")).upper()
    if name == "TRACE":
        return TRACE
    if name == "DEBUG" or debug:
        return logging.DEBUG
    if name in ("WARNING", "ERROR", "CRITICAL"):
        return getattr(logging, name)
    return logging.INFO


def configure_logging(
    source: str = "ical-import",
    level: int | None = None,
    debug: bool | None = None,
) -> logging.Logger:
    """Configure logging for a pipeline entry point.

    Args:
        source: Source identifier for log messages (e.g., "ical-import", "commit")
        level: Logging level (defaults to INFO, or DEBUG/TRACE from LOG_LEVEL env var)
        debug: Enable debug mode (overrides level to DEBUG)

    Returns:
        Configured root logger
    """
    if level is None:
        level = resolve_level(debug=debug)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ISO8601Formatter(source=source))
    root_logger.addHandler(handler)

    # PocketBase SDK transport chatter
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for the given module name."""
    return logging.getLogger(name)
