"""Tests for the import log format.

Target format: 2026-01-06T14:05:52Z [source] LEVEL message
"""

from __future__ import annotations

import io
import logging
import re
import sys
from datetime import datetime
from unittest.mock import patch

from union_leave.logging_config import (
    TRACE,
    ISO8601Formatter,
    configure_logging,
    get_logger,
    resolve_level,
)


def make_record(level: int = logging.INFO, msg: str = "Test message", args: tuple = ()) -> logging.LogRecord:
    return logging.LogRecord(name="test", level=level, pathname="", lineno=0, msg=msg, args=args, exc_info=None)


class TestISO8601Formatter:
    """Test the custom ISO8601 formatter produces correct output."""

    def test_format(self):
        output = ISO8601Formatter(source="ical-import").format(make_record())

        pattern = r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z \[ical-import\] INFO Test message$"
        assert re.match(pattern, output), f"Output '{output}' doesn't match expected format"

    def test_timestamp_is_utc(self):
        output = ISO8601Formatter(source="commit").format(make_record())
        timestamp_str = output.split(" ")[0]

        assert timestamp_str.endswith("Z")
        assert datetime.fromisoformat(timestamp_str.replace("Z", "+00:00")) is not None

    def test_trace_level_name(self):
        output = ISO8601Formatter(source="test").format(make_record(level=TRACE))

        assert "] TRACE " in output

    def test_message_args(self):
        output = ISO8601Formatter(source="test").format(
            make_record(msg="Imported %d rows into %s", args=(3, "cal1"))
        )

        assert "Imported 3 rows into cal1" in output

    def test_exception_appended(self):
        try:
            raise ValueError("bad row")
        except ValueError:
            record = make_record(level=logging.ERROR, msg="Insert failed")
            record.exc_info = sys.exc_info()

        output = ISO8601Formatter(source="test").format(record)

        assert "Insert failed\nTraceback" in output
        assert "ValueError: bad row" in output


class TestResolveLevel:
    def test_names(self):
        assert resolve_level("TRACE") == TRACE
        assert resolve_level("debug") == logging.DEBUG
        assert resolve_level("WARNING") == logging.WARNING
        assert resolve_level("INFO") == logging.INFO

    def test_debug_flag(self):
        assert resolve_level("INFO", debug=True) == logging.DEBUG

    def test_trace_wins_over_debug_flag(self):
        assert resolve_level("TRACE", debug=True) == TRACE

    def test_env_fallback(self):
        with patch.dict("os.environ", {"LOG_LEVEL": "DEBUG"}):
            assert resolve_level() == logging.DEBUG

    def test_unknown_is_info(self):
        assert resolve_level("LOUD") == logging.INFO


class TestConfigureLogging:
    def test_debug_flag(self):
        logger = configure_logging(source="test", debug=True)

        assert logger.level == logging.DEBUG

    def test_default_level_is_info(self):
        with patch.dict("os.environ", {"LOG_LEVEL": ""}):
            logger = configure_logging(source="test", debug=False)

        assert logger.level == logging.INFO

    def test_single_handler(self):
        configure_logging(source="test")
        logger = configure_logging(source="test")

        assert len(logger.handlers) == 1

    def test_get_logger(self):
        assert get_logger("union_leave.test").name == "union_leave.test"

    def test_trace_method(self):
        stream = io.StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(ISO8601Formatter(source="trace-test"))
        logger = logging.getLogger("union_leave.trace_test")
        logger.addHandler(handler)
        logger.setLevel(TRACE)
        logger.propagate = False
        try:
            logger.trace("raw filter")  # type: ignore[attr-defined]
        finally:
            logger.removeHandler(handler)

        assert "[trace-test] TRACE raw filter" in stream.getvalue()
