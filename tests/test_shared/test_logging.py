"""Tests for structured JSON logging."""
from __future__ import annotations

import json
import logging
import sys

from src.shared.logging import (
    JSONFormatter,
    bind_session_key,
    session_key_var,
    setup_logging,
)


def _record(msg: str = "hello %s", args: tuple = ("world",)) -> logging.LogRecord:
    return logging.LogRecord(
        name="src.test", level=logging.INFO, pathname=__file__, lineno=1,
        msg=msg, args=args, exc_info=None,
    )


class TestJSONFormatter:
    def test_fields(self):
        token = session_key_var.set("")
        try:
            entry = json.loads(JSONFormatter("svc").format(_record()))
        finally:
            session_key_var.reset(token)
        assert entry["level"] == "INFO"
        assert entry["service_name"] == "svc"
        assert entry["logger"] == "src.test"
        assert entry["message"] == "hello world"
        assert entry["session_key"] == ""
        assert "timestamp" in entry

    def test_session_key_bound(self):
        token = session_key_var.set("")
        try:
            bind_session_key("SESSION_DEV_x_1")
            entry = json.loads(JSONFormatter("svc").format(_record()))
        finally:
            session_key_var.reset(token)
        assert entry["session_key"] == "SESSION_DEV_x_1"

    def test_exception_included(self):
        try:
            raise ValueError("bad value")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()
        entry = json.loads(JSONFormatter("svc").format(record))
        assert entry["exception"] == "bad value"


class TestSetupLogging:
    def test_configures_named_logger(self):
        logger = setup_logging("punchout-test", "debug", logger_name="punchout-test.x")
        assert logger.name == "punchout-test.x"
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_repeated_setup_does_not_duplicate_handlers(self):
        setup_logging("punchout-test")
        logger = setup_logging("punchout-test")
        assert len(logger.handlers) == 1

    def test_unknown_level_falls_back_to_info(self):
        logger = setup_logging("punchout-test-lvl", "verbose")
        assert logger.level == logging.INFO


def test_bind_none_clears():
    token = session_key_var.set("x")
    try:
        bind_session_key(None)
        assert session_key_var.get() == ""
    finally:
        session_key_var.reset(token)
