"""Tests for logging_config.py."""

import logging
import sys

import pytest

from tunesearch.logging_config import QUIET_LOGGERS, configure_logging, get_logger, log_event, sanitize_request


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    package_level = logging.getLogger("tunesearch").level
    library_levels = {name: logging.getLogger(name).level for name in QUIET_LOGGERS}
    yield
    for name, library_level in library_levels.items():
        logging.getLogger(name).setLevel(library_level)
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("tunesearch").setLevel(package_level)


class TestConfigureLogging:
    def test_logs_to_stderr(self):
        configure_logging("DEBUG")

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert handlers[0].stream is sys.stderr
        assert logging.getLogger("tunesearch").level == logging.DEBUG

    def test_env_level(self, monkeypatch):
        monkeypatch.setenv("TUNESEARCH_LOG_LEVEL", "error")

        logger = configure_logging()

        assert logger.level == logging.ERROR

    def test_unknown_level_falls_back_to_warning(self):
        assert configure_logging("LOUD").level == logging.WARNING

    def test_library_loggers_stay_at_warning(self):
        configure_logging("DEBUG")

        assert logging.getLogger("mcp").level == logging.WARNING
        assert logging.getLogger("asyncio").level == logging.WARNING

    def test_library_loggers_follow_stricter_levels(self):
        configure_logging("ERROR")

        assert logging.getLogger("aiofiles").level == logging.ERROR


class TestHelpers:
    def test_get_logger_namespaces(self):
        assert get_logger("cache").name == "tunesearch.cache"
        assert get_logger("tunesearch.cache").name == "tunesearch.cache"
        assert get_logger("tunesearchx").name == "tunesearch.tunesearchx"

    def test_log_event_formats_context(self, caplog):
        logger = get_logger("events")
        caplog.set_level(logging.INFO, logger="tunesearch.events")

        log_event(logger, logging.INFO, "search.start", query="rock and roll", limit=20)

        record = caplog.records[-1]
        assert record.getMessage() == "search.start query='rock and roll' limit=20"
        assert record.event == "search.start"
        assert record.context == {"query": "rock and roll", "limit": 20}

    def test_log_event_skipped_below_level(self, caplog):
        logger = get_logger("quiet")
        caplog.set_level(logging.WARNING, logger="tunesearch.quiet")

        log_event(logger, logging.DEBUG, "noise")

        assert caplog.records == []

    def test_sanitize_request(self):
        payload = {"auth_token": "secret", "query": "rock", "nested": [{"Token": "x"}]}

        assert sanitize_request(payload) == {
            "auth_token": "[REDACTED]",
            "query": "rock",
            "nested": [{"Token": "[REDACTED]"}],
        }
