"""Tests for correlation-aware logging."""

import io
import logging

import pytest

from currentcost_bridge.shared.config import LoggingConfig
from currentcost_bridge.shared.logging import CorrelationLogger, configure_logging, get_logger


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)


class TestCorrelationLogger:
    """Test the CorrelationLogger wrapper."""

    def test_component_defaults_to_last_name_segment(self):
        logger = CorrelationLogger("currentcost_bridge.api.session")
        assert logger.component == "session"
        assert logger.correlation_id is None

    def test_extra_carries_correlation_fields(self, caplog):
        logger = get_logger("currentcost_bridge.test", "session-7", "session")

        with caplog.at_level(logging.INFO, logger="currentcost_bridge.test"):
            logger.info("hello", extra={"record": {"total": "1"}})

        record = caplog.records[-1]
        assert record.component == "session"
        assert record.correlation_id == "session-7"
        assert record.record == {"total": "1"}

    def test_bind_replaces_correlation_id(self):
        base = get_logger("currentcost_bridge.test", None, "supervisor")

        bound = base.bind(correlation_id="session-2")

        assert bound.correlation_id == "session-2"
        assert bound.component == "supervisor"
        assert bound.logger is base.logger
        assert base.correlation_id is None

    def test_error_includes_traceback_by_default(self, caplog):
        logger = get_logger("currentcost_bridge.test")

        with caplog.at_level(logging.ERROR, logger="currentcost_bridge.test"):
            try:
                raise RuntimeError("boom")
            except RuntimeError:
                logger.error("failed")

        assert caplog.records[-1].exc_info is not None


class TestConfigureLogging:
    """Test root handler installation."""

    def test_formats_correlation_fields(self, restore_root_logger):
        stream = io.StringIO()
        configure_logging(LoggingConfig(level="INFO"), stream=stream)

        get_logger("currentcost_bridge.test", "session-1", "session").info("hello")

        assert "[session:session-1] hello" in stream.getvalue()

    def test_plain_loggers_still_format(self, restore_root_logger):
        """Test that records without correlation fields do not break the formatter."""
        stream = io.StringIO()
        configure_logging(LoggingConfig(level="INFO"), stream=stream)

        logging.getLogger("urllib3.connectionpool").warning("retrying")

        assert "[connectionpool:None] retrying" in stream.getvalue()

    def test_repeated_calls_replace_handler(self, restore_root_logger):
        first = configure_logging(LoggingConfig(), stream=io.StringIO())
        second = configure_logging(LoggingConfig(), stream=io.StringIO())

        assert first not in restore_root_logger.handlers
        assert second in restore_root_logger.handlers

    def test_sets_root_level(self, restore_root_logger):
        configure_logging(LoggingConfig(level="DEBUG"), stream=io.StringIO())
        assert restore_root_logger.level == logging.DEBUG
