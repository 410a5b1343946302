"""Tests for structured logging setup."""

import json
import logging
import sys
from logging.handlers import TimedRotatingFileHandler

import pytest

from rtlgen.core.logging_config import ROOT_LOGGER, StructuredFormatter, configure_logging


@pytest.fixture
def restore_logger():
    logger = logging.getLogger(ROOT_LOGGER)
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield logger
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


def make_record(**extra):
    record = logging.LogRecord("rtlgen.test", logging.WARNING, __file__, 1, "hello %s", ("world",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_basic_fields(self):
        entry = json.loads(StructuredFormatter().format(make_record()))
        assert entry["level"] == "WARNING"
        assert entry["logger"] == "rtlgen.test"
        assert entry["message"] == "hello world"
        assert "timestamp" in entry
        assert "correlation_id" not in entry

    def test_known_extras(self):
        record = make_record(correlation_id="cid", service="llm-service", attempt=2, secret="x")
        entry = json.loads(StructuredFormatter().format(record))
        assert entry["correlation_id"] == "cid"
        assert entry["service"] == "llm-service"
        assert entry["attempt"] == 2
        assert "secret" not in entry

    def test_exception_info(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = make_record()
            record.exc_info = sys.exc_info()
        entry = json.loads(StructuredFormatter().format(record))
        assert "ValueError: boom" in entry["exception"]


class TestConfigureLogging:
    def test_console_only(self, restore_logger):
        logger = configure_logging("debug")
        assert logger is restore_logger
        assert logger.level == logging.DEBUG
        assert logger.propagate is False
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, StructuredFormatter)

    def test_file_handler(self, restore_logger, tmp_path):
        log_file = tmp_path / "rtlgen.log"
        logger = configure_logging("INFO", str(log_file), enable_console=False)

        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], TimedRotatingFileHandler)

        logging.getLogger("rtlgen.orchestration").info("routed", extra={"correlation_id": "c"})
        logger.handlers[0].flush()
        entry = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert entry["message"] == "routed"
        assert entry["correlation_id"] == "c"

    def test_reconfigure_replaces_handlers(self, restore_logger):
        configure_logging()
        logger = configure_logging()
        assert len(logger.handlers) == 1
