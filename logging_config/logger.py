"""
Logging setup for the ticket bot.

``setup_logging`` configures the root logger (console, ``bot.log`` and
``error.log``) and a separate JSON audit trail in ``audit.log`` that records
every ticket state change and moderator action.
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from .formatters import TicketBotFormatter, AuditFormatter
from .handlers import RotatingFileHandler, AuditFileHandler

MB = 1024 * 1024


class TicketBotLogger:
    """
    Owns the root logger configuration.

    Creating an instance replaces whatever handlers the root logger had, so
    calling ``setup_logging`` twice does not duplicate output.
    """

    def __init__(self, log_dir: str = "logs", log_level: str = "INFO"):
        """
        Args:
            log_dir: Directory for bot.log, error.log and audit.log
            log_level: Level name; unknown names fall back to INFO
        """
        self.log_dir = Path(log_dir)
        self.log_level = getattr(logging, str(log_level).upper(), logging.INFO)
        if not isinstance(self.log_level, int):
            self.log_level = logging.INFO
        self.loggers: Dict[str, logging.Logger] = {}

        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._configure_root()

    def _file_handler(self, name: str, max_bytes: int, backup_count: int, level: int) -> logging.Handler:
        handler = RotatingFileHandler(
            filename=str(self.log_dir / name),
            max_bytes=max_bytes,
            backup_count=backup_count,
            encoding='utf-8'
        )
        handler.setLevel(level)
        handler.setFormatter(TicketBotFormatter(use_colors=False, include_extra=True))
        return handler

    def _configure_root(self):
        root = logging.getLogger()
        root.setLevel(self.log_level)

        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()

        console = logging.StreamHandler(sys.stdout)
        console.setLevel(self.log_level)
        console.setFormatter(TicketBotFormatter(use_colors=sys.stdout.isatty()))
        root.addHandler(console)

        root.addHandler(self._file_handler("bot.log", 10 * MB, 5, self.log_level))
        root.addHandler(self._file_handler("error.log", 5 * MB, 3, logging.ERROR))

        # discord.py logs every gateway event at DEBUG
        logging.getLogger("discord").setLevel(max(self.log_level, logging.INFO))

    def get_logger(self, name: str) -> logging.Logger:
        """Logger for a module, cached by name."""
        if name not in self.loggers:
            self.loggers[name] = logging.getLogger(name)
        return self.loggers[name]

    def setup_audit_logging(self) -> 'AuditLogger':
        return AuditLogger(self.log_dir)


class AuditLogger:
    """
    Structured audit trail of ticket operations and command usage.

    Each event is one JSON line in ``audit.log``. Fields that are None are
    left out. Audit records do not propagate to the root logger.
    """

    def __init__(self, log_dir: Path):
        self.log_dir = Path(log_dir)
        self.logger = logging.getLogger("audit")
        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False

        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        handler = AuditFileHandler(
            filename=str(self.log_dir / "audit.log"),
            max_bytes=20 * MB,
            backup_count=10,
            encoding='utf-8'
        )
        handler.setLevel(logging.INFO)
        handler.setFormatter(AuditFormatter())
        self.logger.addHandler(handler)

    def log_ticket_opened(self, ticket_id: int, user_id: int, channel_id: int,
                          related_users: Optional[Iterable[int]] = None,
                          additional_info: Optional[Dict[str, Any]] = None):
        """
        Record a successful open.

        Args:
            ticket_id: Store-assigned ticket id
            user_id: Author of the ticket
            channel_id: Channel provisioned for it
            related_users: Users enrolled at creation
            additional_info: Extra fields merged into the event
        """
        self._log_audit_event(
            "TICKET_OPENED",
            ticket_id=ticket_id,
            user_id=user_id,
            channel_id=channel_id,
            related_users=list(related_users) if related_users else None,
            **(additional_info or {})
        )

    def log_ticket_closed(self, ticket_id: int, user_id: int, outcome: str,
                          additional_info: Optional[Dict[str, Any]] = None):
        """Record a close request and its outcome (success, already_closed, not_found)."""
        self._log_audit_event(
            "TICKET_CLOSED",
            ticket_id=ticket_id,
            user_id=user_id,
            outcome=outcome,
            **(additional_info or {})
        )

    def log_command_used(self, command_name: str, user_id: int, guild_id: Optional[int] = None,
                         channel_id: Optional[int] = None, success: bool = True,
                         additional_info: Optional[Dict[str, Any]] = None):
        self._log_audit_event(
            "COMMAND_USED",
            user_id=user_id,
            guild_id=guild_id,
            channel_id=channel_id,
            command_name=command_name,
            success=success,
            **(additional_info or {})
        )

    def log_permission_denied(self, command_name: str, user_id: int, required_permission: str,
                              guild_id: Optional[int] = None,
                              additional_info: Optional[Dict[str, Any]] = None):
        self._log_audit_event(
            "PERMISSION_DENIED",
            user_id=user_id,
            guild_id=guild_id,
            command_name=command_name,
            required_permission=required_permission,
            **(additional_info or {})
        )

    def log_error_occurred(self, error_type: str, error_message: str,
                           user_id: Optional[int] = None, ticket_id: Optional[int] = None,
                           channel_id: Optional[int] = None,
                           additional_info: Optional[Dict[str, Any]] = None):
        """Record a failure that left a ticket needing operator attention."""
        self._log_audit_event(
            "ERROR_OCCURRED",
            user_id=user_id,
            ticket_id=ticket_id,
            channel_id=channel_id,
            error_type=error_type,
            error_message=error_message,
            **(additional_info or {})
        )

    def _log_audit_event(self, event_type: str, **fields: Any):
        event = {
            'event_type': event_type,
            'timestamp': datetime.now(timezone.utc).isoformat()
        }
        event.update((key, value) for key, value in fields.items() if value is not None)

        self.logger.info("Audit event", extra={'audit_data': event})


_logger_instance: Optional[TicketBotLogger] = None
_audit_logger_instance: Optional[AuditLogger] = None


def setup_logging(log_dir: str = "logs", log_level: str = "INFO") -> TicketBotLogger:
    """
    Configure process-wide logging and the audit trail.

    Returns:
        TicketBotLogger: The active configuration
    """
    global _logger_instance, _audit_logger_instance

    _logger_instance = TicketBotLogger(log_dir, log_level)
    _audit_logger_instance = _logger_instance.setup_audit_logging()

    return _logger_instance


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, configuring logging with defaults on first use."""
    if _logger_instance is None:
        setup_logging()

    return _logger_instance.get_logger(name)


def get_audit_logger() -> AuditLogger:
    """The process-wide audit logger, configuring logging with defaults on first use."""
    if _audit_logger_instance is None:
        setup_logging()

    return _audit_logger_instance
