"""
Tests for the process-wide logging setup.
"""

import logging

import pytest

from algoedge.shared.logging import QUIET_LOGGERS, configure_logging


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    quiet = {name: logging.getLogger(name).level for name in QUIET_LOGGERS}
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, previous in quiet.items():
        logging.getLogger(name).setLevel(previous)


class TestConfigureLogging:
    def test_level_name_is_case_insensitive(self):
        assert configure_logging("debug") == logging.DEBUG
        assert logging.getLogger().level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        assert configure_logging("chatty") == logging.INFO

    def test_http_client_stays_at_warning_in_debug(self):
        configure_logging("DEBUG")

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_quiet_loggers_follow_a_stricter_root(self):
        configure_logging("ERROR")

        assert logging.getLogger("httpx").level == logging.ERROR
