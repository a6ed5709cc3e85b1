import json
import logging
import sys
import unittest

import pytest

from rit_backend.assessments.base.exceptions import InvalidPeriodError
from rit_backend.common.exceptions import DatabaseError
from rit_backend.common.logger import (
    JsonFormatter,
    LoggerAdapter,
    app_logger,
    configure_logger,
    log_execution_time,
    with_context,
)


class TestJsonFormatter(unittest.TestCase):
    """Test JSON rendering of log records."""

    def test_format_merges_context(self):
        record = logging.LogRecord("rit.test", logging.INFO, __file__, 10, "started %s", ("a1",), None)
        record.data = {"assessment_id": 7}

        payload = json.loads(JsonFormatter().format(record))
        self.assertEqual(payload["message"], "started a1")
        self.assertEqual(payload["level"], "INFO")
        self.assertEqual(payload["assessment_id"], 7)

    def test_format_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord("rit.test", logging.ERROR, __file__, 10, "failed", (), sys.exc_info())

        payload = json.loads(JsonFormatter().format(record))
        self.assertEqual(payload["exception"]["type"], "ValueError")
        self.assertEqual(payload["exception"]["message"], "boom")


class TestLoggerAdapter(unittest.TestCase):
    """Test contextual logger adapters."""

    def test_context_is_attached(self):
        adapter = LoggerAdapter(app_logger, {"student_id": "s1"}).with_context(assessment_id=3)
        _, kwargs = adapter.process("msg", {})
        self.assertEqual(kwargs["extra"]["data"], {"student_id": "s1", "assessment_id": 3})

    def test_with_context_defaults_to_app_logger(self):
        adapter = with_context(student_id="s1")
        self.assertIs(adapter.logger, app_logger)
        self.assertEqual(adapter.extra, {"student_id": "s1"})

    def test_configure_logger_replaces_handlers(self):
        logger = configure_logger("rit.tests.configured", level="debug", use_json=True)
        configure_logger("rit.tests.configured", level="debug", use_json=True)
        self.assertEqual(len(logger.handlers), 1)
        self.assertIsInstance(logger.handlers[0].formatter, JsonFormatter)
        self.assertEqual(logger.level, logging.DEBUG)


@pytest.mark.asyncio
async def test_log_execution_time_wraps_coroutines():
    logger = logging.getLogger("rit.tests.timing")

    @log_execution_time(logger)
    async def double(value):
        return value * 2

    @log_execution_time(logger)
    async def fail():
        raise RuntimeError("nope")

    assert await double(21) == 42
    with pytest.raises(RuntimeError):
        await fail()


def test_log_execution_time_wraps_functions():
    @log_execution_time()
    def add(a, b):
        return a + b

    assert add(1, 2) == 3
    assert add.__name__ == "add"


@pytest.mark.asyncio
async def test_expected_errors_logged_below_error(caplog):
    logger = logging.getLogger("timing_levels")
    caplog.set_level(logging.DEBUG, logger="timing_levels")

    @log_execution_time(logger)
    async def reject_period():
        raise InvalidPeriodError("Summer")

    @log_execution_time(logger)
    async def lose_connection():
        raise DatabaseError("connection lost")

    with pytest.raises(InvalidPeriodError):
        await reject_period()
    with pytest.raises(DatabaseError):
        await lose_connection()

    levels = {record.getMessage().split()[0]: record.levelno for record in caplog.records}
    assert levels["reject_period"] == logging.INFO
    assert levels["lose_connection"] == logging.ERROR
