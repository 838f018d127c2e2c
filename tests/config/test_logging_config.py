"""
Tests for logging configuration
"""

import json
import logging
import sys

from chatgate.config.logging_config import StructuredFormatter, configure_logging


def _record(msg="hello", exc_info=None, **extra):
    record = logging.LogRecord("chatgate.test", logging.INFO, __file__, 10, msg, None, exc_info)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_basic_fields(self):
        data = json.loads(StructuredFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "chatgate.test"
        assert data["message"] == "hello"
        assert "timestamp" in data

    def test_extra_fields_are_merged(self):
        data = json.loads(StructuredFormatter().format(_record(request_id="req-1", user_id="user-1")))

        assert data["request_id"] == "req-1"
        assert data["user_id"] == "user-1"
        assert "args" not in data

    def test_exception_is_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record(exc_info=sys.exc_info())

        data = json.loads(StructuredFormatter().format(record))

        assert "ValueError: boom" in data["exception"]

    def test_non_serializable_extra_is_stringified(self):
        data = json.loads(StructuredFormatter().format(_record(payload=object())))

        assert data["payload"].startswith("<object object")


def test_configure_logging_installs_single_handler():
    configure_logging("DEBUG")
    configure_logging("INFO")

    root = logging.getLogger()
    assert len(root.handlers) == 1
    assert root.level == logging.INFO
    assert logging.getLogger("botocore").level == logging.WARNING
