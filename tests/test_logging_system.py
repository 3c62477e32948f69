"""
Unit tests for logging system.

Tests logging configuration, formatters, handlers, and audit logging.
"""

import gzip
import json
import logging
import os
from pathlib import Path

import pytest

from logging_config.logger import TicketBotLogger, AuditLogger
from logging_config.formatters import TicketBotFormatter, AuditFormatter
from logging_config.handlers import RotatingFileHandler, AuditFileHandler


@pytest.fixture
def restore_root_logger():
    """TicketBotLogger reconfigures the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


def read_audit_events(log_dir: Path):
    for handler in logging.getLogger("audit").handlers:
        handler.flush()
    with open(log_dir / "audit.log", encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


def make_record(message="hello", level=logging.INFO, **extra):
    record = logging.LogRecord("tests", level, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.usefixtures("restore_root_logger")
class TestTicketBotLogger:
    """Test the main TicketBotLogger class."""

    def test_logger_initialization(self, tmp_path):
        logger = TicketBotLogger(log_dir=str(tmp_path / "logs"), log_level="DEBUG")

        assert logger.log_dir == tmp_path / "logs"
        assert logger.log_level == logging.DEBUG
        assert (tmp_path / "logs" / "bot.log").exists()
        assert (tmp_path / "logs" / "error.log").exists()

    def test_unknown_level_falls_back_to_info(self, tmp_path):
        logger = TicketBotLogger(log_dir=str(tmp_path), log_level="LOUD")

        assert logger.log_level == logging.INFO

    def test_error_log_only_gets_errors(self, tmp_path):
        TicketBotLogger(log_dir=str(tmp_path), log_level="INFO")
        test_logger = logging.getLogger("tests.error_split")

        test_logger.info("routine message")
        test_logger.error("broken message")
        for handler in logging.getLogger().handlers:
            handler.flush()

        error_log = (tmp_path / "error.log").read_text(encoding="utf-8")
        bot_log = (tmp_path / "bot.log").read_text(encoding="utf-8")
        assert "broken message" in error_log
        assert "routine message" not in error_log
        assert "routine message" in bot_log

    def test_get_logger_cached(self, tmp_path):
        logger = TicketBotLogger(log_dir=str(tmp_path))

        assert logger.get_logger("core.ticket_manager") is logger.get_logger("core.ticket_manager")

    def test_setup_audit_logging(self, tmp_path):
        logger = TicketBotLogger(log_dir=str(tmp_path))

        audit_logger = logger.setup_audit_logging()

        assert isinstance(audit_logger, AuditLogger)
        assert audit_logger.log_dir == tmp_path


class TestAuditLogger:
    """Test the AuditLogger class."""

    def test_audit_logger_initialization(self, tmp_path):
        audit_logger = AuditLogger(tmp_path)

        assert audit_logger.logger.name == "audit"
        assert audit_logger.logger.propagate is False
        assert (tmp_path / "audit.log").exists()

    def test_log_ticket_opened(self, tmp_path):
        audit_logger = AuditLogger(tmp_path)

        audit_logger.log_ticket_opened(ticket_id=1, user_id=111, channel_id=999, related_users=[222])

        event = read_audit_events(tmp_path)[-1]
        assert event['event_type'] == "TICKET_OPENED"
        assert event['ticket_id'] == 1
        assert event['user_id'] == 111
        assert event['channel_id'] == 999
        assert event['related_users'] == [222]
        assert 'guild_id' not in event

    def test_log_ticket_closed(self, tmp_path):
        audit_logger = AuditLogger(tmp_path)

        audit_logger.log_ticket_closed(ticket_id=4, user_id=333, outcome="already_closed")

        event = read_audit_events(tmp_path)[-1]
        assert event['event_type'] == "TICKET_CLOSED"
        assert event['outcome'] == "already_closed"

    def test_log_command_and_denial(self, tmp_path):
        audit_logger = AuditLogger(tmp_path)

        audit_logger.log_command_used("ticket list", user_id=333, guild_id=1000, additional_info={'count': 2})
        audit_logger.log_permission_denied("ticket close", user_id=111, required_permission="moderator")

        used, denied = read_audit_events(tmp_path)[-2:]
        assert used['event_type'] == "COMMAND_USED"
        assert used['command_name'] == "ticket list"
        assert used['success'] is True
        assert used['count'] == 2
        assert denied['event_type'] == "PERMISSION_DENIED"
        assert denied['required_permission'] == "moderator"

    def test_log_error_occurred(self, tmp_path):
        audit_logger = AuditLogger(tmp_path)

        audit_logger.log_error_occurred("ProvisionError", "edit failed", user_id=333, ticket_id=5, channel_id=9)

        event = read_audit_events(tmp_path)[-1]
        assert event['event_type'] == "ERROR_OCCURRED"
        assert event['error_type'] == "ProvisionError"
        assert event['ticket_id'] == 5

    def test_audit_file_is_owner_only(self, tmp_path):
        AuditLogger(tmp_path)

        mode = os.stat(tmp_path / "audit.log").st_mode & 0o777
        assert mode == 0o600


class TestFormatters:
    """Test the log formatters."""

    def test_plain_format(self):
        formatter = TicketBotFormatter(use_colors=False)

        output = formatter.format(make_record("hello world"))

        assert "tests - INFO - hello world" in output
        assert "\033[" not in output

    def test_colored_format(self):
        formatter = TicketBotFormatter(use_colors=True)

        output = formatter.format(make_record("hello", level=logging.ERROR))

        assert "\033[31mERROR\033[0m" in output

    def test_extra_fields(self):
        formatter = TicketBotFormatter(use_colors=False, include_extra=True)

        output = formatter.format(make_record("hello", ticket_id=5, details={'a': 1}))

        assert "ticket_id=5" in output
        assert 'details={"a": 1}' in output

    def test_audit_formatter(self):
        formatter = AuditFormatter()

        output = formatter.format(make_record("Audit event", audit_data={'event_type': "X", 'ticket_id': 3}))

        data = json.loads(output)
        assert data['message'] == "Audit event"
        assert data['event_type'] == "X"
        assert data['ticket_id'] == 3
        assert data['level'] == "INFO"


class TestHandlers:
    """Test the rotating file handlers."""

    def test_rotation_compresses(self, tmp_path):
        handler = RotatingFileHandler(str(tmp_path / "bot.log"), max_bytes=200, backup_count=2)
        handler.setFormatter(logging.Formatter("%(message)s"))

        try:
            for _ in range(10):
                handler.emit(make_record("x" * 60))
        finally:
            handler.close()

        rotated = tmp_path / "bot.log.1.gz"
        assert rotated.exists()
        with gzip.open(rotated, "rt", encoding="utf-8") as f:
            assert "x" * 60 in f.read()
        assert not (tmp_path / "bot.log.3.gz").exists()

    def test_rotation_uncompressed(self, tmp_path):
        handler = RotatingFileHandler(str(tmp_path / "bot.log"), max_bytes=100, backup_count=1,
                                      compress_rotated=False)
        handler.setFormatter(logging.Formatter("%(message)s"))

        try:
            for _ in range(5):
                handler.emit(make_record("y" * 60))
        finally:
            handler.close()

        assert (tmp_path / "bot.log.1").exists()

    def test_audit_handler_secures_after_rollover(self, tmp_path):
        handler = AuditFileHandler(str(tmp_path / "audit.log"), max_bytes=100, backup_count=1)
        handler.setFormatter(logging.Formatter("%(message)s"))

        try:
            for _ in range(5):
                handler.emit(make_record("z" * 60))
        finally:
            handler.close()

        assert os.stat(tmp_path / "audit.log").st_mode & 0o777 == 0o600
