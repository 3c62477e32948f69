"""
Error handling module for the ticket bot.

This module provides custom exception classes and error handling utilities
for consistent error management across the bot.
"""

from .exceptions import (
    TicketBotError,
    ValidationError,
    ParseError,
    UnauthorizedError,
    ForbiddenError,
    TicketNotFoundError,
    DatabaseError,
    ConnectionError,
    ProvisionError,
    InconsistentStateError,
    ConfigurationError
)

from .handlers import (
    handle_errors,
    send_error_embed,
    format_error_message,
    log_error
)

__all__ = [
    # Exception classes
    'TicketBotError',
    'ValidationError',
    'ParseError',
    'UnauthorizedError',
    'ForbiddenError',
    'TicketNotFoundError',
    'DatabaseError',
    'ConnectionError',
    'ProvisionError',
    'InconsistentStateError',
    'ConfigurationError',

    # Handler functions
    'handle_errors',
    'send_error_embed',
    'format_error_message',
    'log_error'
]
