"""Logging system: sanitization and format validation."""

import logging

from collectordao.constants import LOG_DATE_FORMAT, LOG_FORMAT
from collectordao.logger import LogManager, TerminalSafeFormatter, get_logger


class TestTerminalSafeFormatter:

    def test_strips_ansi_sequences(self):
        text = "Proposal \x1b[31mred\x1b[0m description"
        assert TerminalSafeFormatter.sanitize(text) == "Proposal red description"

    def test_strips_control_characters(self):
        assert TerminalSafeFormatter.sanitize("a\rb\x07c\td\ne") == "abc\td\ne"

    def test_format_sanitizes_message(self):
        formatter = TerminalSafeFormatter(fmt="%(message)s")
        record = logging.LogRecord(
            name="collectordao", level=logging.INFO, pathname="", lineno=0,
            msg="desc: \x1b[2Jwiped", args=(), exc_info=None,
        )
        assert formatter.format(record) == "desc: wiped"


class TestLogManager:

    def test_singleton(self):
        assert LogManager() is LogManager()
        assert LogManager().is_configured

    def test_invalid_log_format_falls_back(self):
        assert LogManager.validate_log_format("(message)s") == str(LOG_FORMAT.default())

    def test_valid_log_format_kept(self):
        assert LogManager.validate_log_format("%(levelname)s %(message)s") == "%(levelname)s %(message)s"

    def test_invalid_date_format_falls_back(self):
        assert LogManager.validate_date_format("yesterday") == str(LOG_DATE_FORMAT.default())

    def test_get_logger_name(self):
        assert get_logger("collectordao.governance").name == "collectordao.governance"
