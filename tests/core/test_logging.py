"""
Tests for logging helpers.
"""

import json
import logging

import pytest

from shotkeeper.core.logging import OperationTimer, StructuredLogFormatter, log_exception


class TestStructuredLogFormatter:
    """Test JSON log output."""

    def test_formats_record_with_extra_fields(self):
        """Test that extra fields appear in the JSON document."""
        record = logging.LogRecord("shotkeeper.test", logging.INFO, __file__, 1, "hello", None, None)
        record.items = 3

        data = json.loads(StructuredLogFormatter().format(record))

        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["extra"] == {"items": 3}


class TestOperationTimer:
    """Test timing of operations."""

    def test_records_duration_and_logs(self, caplog: pytest.LogCaptureFixture):
        """Test that a completed operation is logged with its duration."""
        logger = logging.getLogger("shotkeeper.test")

        with caplog.at_level(logging.DEBUG, logger="shotkeeper.test"):
            with OperationTimer(logger, "classify", items=2) as timer:
                pass

        assert timer.duration is not None
        assert "classify completed in" in caplog.text

    def test_logs_failure(self, caplog: pytest.LogCaptureFixture):
        """Test that an exception inside the block is logged and re-raised."""
        logger = logging.getLogger("shotkeeper.test")

        with caplog.at_level(logging.DEBUG, logger="shotkeeper.test"):
            with pytest.raises(RuntimeError):
                with OperationTimer(logger, "classify"):
                    raise RuntimeError("boom")

        assert "classify failed after" in caplog.text


class TestLogException:
    """Test exception logging."""

    def test_includes_type_and_message(self, caplog: pytest.LogCaptureFixture):
        """Test the exception summary in the log message."""
        logger = logging.getLogger("shotkeeper.test")

        with caplog.at_level(logging.ERROR, logger="shotkeeper.test"):
            log_exception(logger, "Store failed", ValueError("bad row"), table="screenshots")

        assert "Store failed: ValueError: bad row" in caplog.text
