"""
Tests for logging setup and structured log formatting.
"""

import io
import json
import logging

from layover.observability import (
    CorrelationFilter,
    HumanReadableFormatter,
    StructuredFormatter,
    add_correlation_id,
    get_correlation_id,
    setup_structured_logging,
)
from layover.utils.logging import get_logger, parse_level, setup_logging


def make_record(msg="http response", **extra):
    record = logging.LogRecord("layover.http", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestCorrelationID:
    """Tests for correlation ID context management."""

    def test_context_manager(self):
        assert get_correlation_id() is None
        with add_correlation_id("batch-1") as cid:
            assert cid == "batch-1"
            assert get_correlation_id() == "batch-1"
        assert get_correlation_id() is None

    def test_generated(self):
        with add_correlation_id() as cid:
            assert len(cid) == 8


class TestFormatters:
    """Tests for StructuredFormatter and HumanReadableFormatter."""

    def test_structured_includes_extra_fields(self):
        """Test extra fields and static fields become JSON keys."""
        formatter = StructuredFormatter(extra_fields={"service": "billing"})
        record = make_record(request_id="abc123", status=200, duration=0.25)

        with add_correlation_id("batch-1"):
            data = json.loads(formatter.format(record))

        assert data["message"] == "http response"
        assert data["level"] == "INFO"
        assert data["logger"] == "layover.http"
        assert data["request_id"] == "abc123"
        assert data["status"] == 200
        assert data["duration"] == 0.25
        assert data["service"] == "billing"
        assert data["correlation_id"] == "batch-1"
        assert "msg" not in data

    def test_structured_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            import sys

            record = logging.LogRecord("layover", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())

        data = json.loads(StructuredFormatter().format(record))
        assert data["exception"]["type"] == "RuntimeError"
        assert data["exception"]["message"] == "boom"

    def test_human_readable(self):
        line = HumanReadableFormatter().format(make_record(request_id="abc123", status=200))
        assert "[layover.http]" in line
        assert line.endswith("http response request_id=abc123 status=200")

    def test_human_readable_duration(self):
        """Test durations are rendered in milliseconds."""
        line = HumanReadableFormatter().format(make_record(duration=0.0123))
        assert line.endswith("duration=12.3ms")

    def test_correlation_filter(self):
        """Test the filter stamps the active correlation ID on records."""
        record = make_record()
        with add_correlation_id("batch-9"):
            assert CorrelationFilter().filter(record) is True
        assert record.correlation_id == "batch-9"
        assert json.loads(StructuredFormatter().format(record))["correlation_id"] == "batch-9"


class TestSetup:
    """Tests for logging setup helpers."""

    def test_parse_level(self):
        assert parse_level("debug") == logging.DEBUG
        assert parse_level(logging.ERROR) == logging.ERROR
        assert parse_level("nonsense") == logging.INFO

    def test_setup_logging_file(self, tmp_path):
        """Test a log file receives records from child loggers."""
        log_file = tmp_path / "logs" / "layover.log"
        logger = setup_logging(level="DEBUG", log_file=log_file, console_enabled=False)
        try:
            get_logger("layover.retry").debug("retrying")
            for handler in logger.handlers:
                handler.flush()
            assert "layover.retry: retrying" in log_file.read_text()
        finally:
            for handler in logger.handlers:
                handler.close()
            logger.handlers.clear()

    def test_setup_structured_logging(self):
        """Test structured logging writes JSON lines to the given stream."""
        stream = io.StringIO()
        handler = setup_structured_logging(level="INFO", json_format=True, stream=stream)
        try:
            get_logger("layover.http").info("http request", extra={"request_id": "r1"})
            data = json.loads(stream.getvalue().strip().splitlines()[-1])
            assert data["request_id"] == "r1"
        finally:
            logging.getLogger("layover").removeHandler(handler)
