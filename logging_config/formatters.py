"""
Custom log formatters for the ticket bot.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Dict, Any

# LogRecord attributes that are never treated as "extra" fields
STANDARD_FIELDS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'asctime', 'message', 'taskName'
}


class TicketBotFormatter(logging.Formatter):
    """
    Formatter for the console and the plain-text log files.

    Colors the level name for terminals and can append record extras.
    """

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'
    }

    def __init__(self, use_colors: bool = True, include_extra: bool = False):
        """
        Initialize the formatter.

        Args:
            use_colors: Whether to use colors in output (for console)
            include_extra: Whether to include extra fields in output
        """
        self.use_colors = use_colors
        self.include_extra = include_extra
        super().__init__("%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                         datefmt='%Y-%m-%d %H:%M:%S')

    def format(self, record: logging.LogRecord) -> str:
        record_copy = logging.makeLogRecord(record.__dict__)

        if self.use_colors:
            color = self.COLORS.get(record_copy.levelname, '')
            record_copy.levelname = f"{color}{record_copy.levelname}{self.COLORS['RESET']}"

        formatted = super().format(record_copy)

        if self.include_extra:
            extra_info = self._extract_extra_info(record)
            if extra_info:
                formatted += " | " + " | ".join(f"{k}={v}" for k, v in extra_info.items())

        return formatted

    def _extract_extra_info(self, record: logging.LogRecord) -> Dict[str, Any]:
        extra = {}
        for key, value in record.__dict__.items():
            if key in STANDARD_FIELDS or key.startswith('_'):
                continue
            if isinstance(value, (dict, list, tuple)):
                extra[key] = json.dumps(value, default=str)
            else:
                extra[key] = value
        return extra


class AuditFormatter(logging.Formatter):
    """
    Formatter for the audit trail.

    Emits one compact JSON object per record, merging the ``audit_data``
    extra into the top level.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format an audit log record as JSON.

        Args:
            record: Log record to format

        Returns:
            str: JSON-formatted audit log entry
        """
        audit_entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage()
        }

        audit_data = getattr(record, 'audit_data', None)
        if audit_data:
            audit_entry.update(audit_data)

        if record.exc_info:
            audit_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(audit_entry, default=self._json_serializer, separators=(',', ':'))

    @staticmethod
    def _json_serializer(obj: Any) -> str:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if hasattr(obj, 'value'):
            return str(obj.value)
        return str(obj)
