"""
Logging configuration module for the ticket bot.

This module provides logging setup including file rotation,
audit logging, and structured logging for all bot operations.
"""

from .logger import setup_logging, get_logger, get_audit_logger, AuditLogger, TicketBotLogger
from .formatters import TicketBotFormatter, AuditFormatter
from .handlers import RotatingFileHandler, AuditFileHandler

__all__ = [
    'setup_logging',
    'get_logger',
    'get_audit_logger',
    'AuditLogger',
    'TicketBotLogger',
    'TicketBotFormatter',
    'AuditFormatter',
    'RotatingFileHandler',
    'AuditFileHandler'
]
