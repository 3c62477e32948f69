"""
Custom exception classes for the ticket lifecycle bot.

Every operation of the ticket manager either returns a structured result or
raises exactly one of these errors, so callers always get a definitive outcome.
"""

from typing import Optional, Dict, Any


class TicketBotError(Exception):
    """
    Base exception for all ticket bot errors.

    All custom exceptions in the bot inherit from this class to provide
    consistent error handling and logging.
    """

    def __init__(self, message: str, user_message: Optional[str] = None,
                 error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """
        Initialize TicketBotError.

        Args:
            message: Technical error message for logging
            user_message: User-friendly error message for display
            error_code: Optional error code for categorization
            details: Optional additional error details
        """
        super().__init__(message)
        self.user_message = user_message or message
        self.error_code = error_code
        self.details = details or {}


class ValidationError(TicketBotError):
    """
    Exception raised for input validation errors.

    Raised before any mutation takes place, so it is always safe to retry
    once the input has been fixed.
    """

    def __init__(self, message: str, field: Optional[str] = None,
                 value: Optional[Any] = None, user_message: Optional[str] = None,
                 error_code: str = "VALIDATION_ERROR", **kwargs):
        """
        Initialize ValidationError.

        Args:
            message: Technical error message
            field: The field that failed validation
            value: The invalid value
            user_message: User-friendly error message
        """
        if not user_message:
            user_message = "Invalid input provided. Please check your input and try again."

        super().__init__(message, user_message, error_code=error_code, **kwargs)
        self.field = field
        self.value = value


class ParseError(ValidationError):
    """Raised when a mention has the right shape but an unusable payload."""

    def __init__(self, message: str, token: Optional[str] = None,
                 user_message: Optional[str] = None, **kwargs):
        if not user_message:
            user_message = f"Could not read the user mention `{token}`." if token else \
                "Could not read one of the user mentions."

        super().__init__(message, field="related_users", value=token,
                         user_message=user_message, error_code="PARSE_ERROR", **kwargs)
        self.token = token


class UnauthorizedError(TicketBotError):
    """
    Exception raised when the actor lacks moderator capability.

    No state change has been attempted when this is raised.
    """

    def __init__(self, message: str, required_permission: Optional[str] = "moderator",
                 user_message: Optional[str] = None, error_code: str = "UNAUTHORIZED", **kwargs):
        """
        Initialize UnauthorizedError.

        Args:
            message: Technical error message
            required_permission: The capability that was required
            user_message: User-friendly error message
        """
        if not user_message:
            user_message = "You don't have permission to perform this action."

        super().__init__(message, user_message, error_code=error_code, **kwargs)
        self.required_permission = required_permission


class ForbiddenError(UnauthorizedError):
    """Raised when a requester may not see a ticket they did not author."""

    def __init__(self, message: str, ticket_id: Optional[int] = None,
                 user_message: Optional[str] = None, **kwargs):
        if not user_message:
            user_message = "You can only view tickets you opened yourself."

        super().__init__(message, required_permission="ticket_author",
                         user_message=user_message, error_code="FORBIDDEN", **kwargs)
        self.ticket_id = ticket_id


class TicketNotFoundError(TicketBotError):
    """Exception raised when a ticket id does not match any visible ticket."""

    def __init__(self, message: str, ticket_id: Optional[int] = None,
                 user_message: Optional[str] = None, **kwargs):
        if not user_message:
            user_message = "Invalid ticket ID."

        super().__init__(message, user_message, error_code="TICKET_NOT_FOUND", **kwargs)
        self.ticket_id = ticket_id


class DatabaseError(TicketBotError):
    """
    Exception raised for ticket store failures.

    Surfaced verbatim and never retried automatically. ``ticket_id`` is set
    when the failure left a ticket record behind (e.g. the channel id could
    not be persisted).
    """

    def __init__(self, message: str, operation: Optional[str] = None,
                 ticket_id: Optional[int] = None, user_message: Optional[str] = None, **kwargs):
        """
        Initialize DatabaseError.

        Args:
            message: Technical error message
            operation: Store operation that failed (e.g. 'insert_ticket')
            ticket_id: Ticket affected by a partial failure, if any
            user_message: User-friendly error message
        """
        if not user_message:
            user_message = "A database error occurred. Please try again later."

        super().__init__(message, user_message, error_code="DB_ERROR", **kwargs)
        self.operation = operation
        self.ticket_id = ticket_id


class ConnectionError(DatabaseError):
    """Exception raised when the database cannot be reached."""
    pass


class ProvisionError(TicketBotError):
    """
    Exception raised when a chat-platform channel call fails or times out.

    ``partial`` is True when the ticket record already exists, so the caller
    knows an operator has to re-provision the channel by hand.
    """

    def __init__(self, message: str, ticket_id: Optional[int] = None,
                 channel_id: Optional[int] = None, partial: bool = False,
                 user_message: Optional[str] = None, **kwargs):
        if not user_message:
            if partial and ticket_id is not None:
                user_message = (f"Ticket #{ticket_id} was recorded but its channel could not be set up. "
                                f"A moderator has to finish it manually.")
            else:
                user_message = "Failed to update the ticket channel. Please contact a moderator."

        super().__init__(message, user_message, error_code="PROVISION_ERROR", **kwargs)
        self.ticket_id = ticket_id
        self.channel_id = channel_id
        self.partial = partial


class InconsistentStateError(TicketBotError):
    """Raised when a ticket record and its channel disagree. Never repaired silently."""

    def __init__(self, message: str, ticket_id: Optional[int] = None,
                 user_message: Optional[str] = None, **kwargs):
        if not user_message:
            user_message = (f"Ticket #{ticket_id} has no channel attached. Please contact a moderator."
                            if ticket_id is not None else
                            "Ticket data is inconsistent. Please contact a moderator.")

        super().__init__(message, user_message, error_code="INCONSISTENT_STATE", **kwargs)
        self.ticket_id = ticket_id


class ConfigurationError(TicketBotError):
    """
    Exception raised for configuration-related errors.

    This includes missing category or role identifiers and invalid values.
    """

    def __init__(self, message: str, config_key: Optional[str] = None,
                 user_message: Optional[str] = None, **kwargs):
        """
        Initialize ConfigurationError.

        Args:
            message: Technical error message
            config_key: The configuration key that caused the error
            user_message: User-friendly error message
        """
        if not user_message:
            user_message = "Bot configuration error. Please contact an administrator."

        super().__init__(message, user_message, error_code="CONFIG_ERROR", **kwargs)
        self.config_key = config_key
