"""
Tests for the loguru-backed logger wrapper.
"""

import pytest
from loguru import logger as _logger

from logger import logger


@pytest.fixture
def records():
    messages = []
    handler = _logger.add(messages.append, format="{function}|{message}", level="DEBUG")
    yield messages
    _logger.remove(handler)
    logger.setup(False)


def fail(message: str) -> ValueError:
    try:
        raise ValueError(message)
    except ValueError as e:
        return e


class TestLogger:
    """Test cases for Logger."""

    def test_records_name_the_caller(self, records):
        logger.warning("Accept error:", "boom")

        message, = records
        assert message.startswith("test_records_name_the_caller|Accept error: boom")

    def test_traceback_inside_except(self, records):
        try:
            raise RuntimeError("broken")
        except RuntimeError:
            logger.traceback("Unexpected error")

        message, = records
        assert message.startswith("test_traceback_inside_except|Unexpected error")
        assert "RuntimeError: broken" in message

    def test_traceback_of_stored_exception(self, records):
        logger.traceback("stored", exc=fail("kept"))

        message, = records
        assert message.startswith("test_traceback_of_stored_exception|stored")
        assert "ValueError: kept" in message

    def test_debug_traceback_is_silent_without_debug(self, records):
        logger.setup(False)

        logger.debug_traceback("quiet", exc=fail("hidden"))

        assert records == []

    def test_debug_traceback_names_the_caller(self, records):
        logger.setup(True)

        logger.debug_traceback("loud", exc=fail("shown"))

        message, = records
        assert message.startswith("test_debug_traceback_names_the_caller|loud")
        assert "ValueError: shown" in message
