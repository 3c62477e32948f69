"""
Error reporting for slash commands.

Logs each escaped error once, at a level matching its kind, and turns it
into a single ephemeral embed for the user who ran the command.
"""

import functools
import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import discord

from .exceptions import TicketBotError, UnauthorizedError

logger = logging.getLogger(__name__)

# Expected outcomes of bad input or missing rights, not faults
_WARNING_CODES = {'UNAUTHORIZED', 'FORBIDDEN', 'VALIDATION_ERROR', 'PARSE_ERROR', 'TICKET_NOT_FOUND'}

_TITLES = {
    'UNAUTHORIZED': "❌ Permission Denied",
    'FORBIDDEN': "❌ Permission Denied",
    'VALIDATION_ERROR': "❌ Invalid Input",
    'PARSE_ERROR': "❌ Invalid Input",
    'TICKET_NOT_FOUND': "❌ Not Found",
    'DB_ERROR': "❌ Database Error",
    'PROVISION_ERROR': "❌ Channel Error",
    'INCONSISTENT_STATE': "⚠️ Inconsistent Ticket",
    'CONFIG_ERROR': "⚙️ Configuration Error",
}

UNEXPECTED_MESSAGE = "An unexpected error occurred. Please try again later."


def log_error(error: Exception, context: Optional[str] = None,
              user_id: Optional[int] = None, guild_id: Optional[int] = None,
              additional_info: Optional[Dict[str, Any]] = None) -> None:
    """
    Log an error with the command and ticket it relates to.

    Bot errors with a warning-level code (denied access, bad input, unknown
    ticket) are logged as warnings; everything else as errors, with the
    traceback for exceptions that are not bot errors.
    """
    error_info = {
        'error_type': type(error).__name__,
        'error_message': str(error),
        'context': context,
        'user_id': user_id,
        'guild_id': guild_id,
        'timestamp': datetime.now(timezone.utc).isoformat()
    }

    if isinstance(error, TicketBotError):
        error_info['error_code'] = error.error_code
        for attr in ('ticket_id', 'channel_id'):
            if getattr(error, attr, None) is not None:
                error_info[attr] = getattr(error, attr)
        error_info.update(error.details)

    if additional_info:
        error_info.update(additional_info)

    if not isinstance(error, TicketBotError):
        logger.error(f"Unexpected error: {error_info}", exc_info=error)
    elif error.error_code in _WARNING_CODES:
        logger.warning(f"Bot error: {error_info}")
    else:
        logger.error(f"Bot error: {error_info}")


def format_error_message(error: Exception, include_details: bool = False) -> str:
    """
    User-facing text for an error.

    Args:
        error: The exception to describe
        include_details: Append the error's details mapping

    Returns:
        str: Message safe to show in Discord
    """
    if not isinstance(error, TicketBotError):
        return UNEXPECTED_MESSAGE

    message = error.user_message
    if include_details and error.details:
        details = ", ".join(f"{k}: {v}" for k, v in error.details.items())
        message += f"\n\n**Details:** {details}"
    return message


def error_title(error: Exception) -> str:
    if isinstance(error, TicketBotError):
        return _TITLES.get(error.error_code, "❌ Error")
    if isinstance(error, discord.HTTPException):
        return "❌ API Error"
    return "❌ Unexpected Error"


async def send_error_embed(interaction: discord.Interaction, title: str, description: str,
                           color: Optional[discord.Color] = None, ephemeral: bool = True) -> None:
    """
    Reply to an interaction with an error embed.

    Uses the followup webhook when the interaction was already answered or
    deferred. A failure to send is logged and not raised.
    """
    embed = discord.Embed(
        title=title,
        description=description,
        color=color or discord.Color.red(),
        timestamp=datetime.now(timezone.utc)
    )
    embed.set_footer(text="Ticket Bot Error")

    try:
        if interaction.response.is_done():
            await interaction.followup.send(embed=embed, ephemeral=ephemeral)
        else:
            await interaction.response.send_message(embed=embed, ephemeral=ephemeral)
    except discord.HTTPException as e:
        logger.error(f"Failed to send error embed: {e}")


def _find_interaction(args) -> Optional[discord.Interaction]:
    for arg in args:
        if isinstance(arg, discord.Interaction):
            return arg
    return None


def handle_errors(func: Callable) -> Callable:
    """
    Decorator for slash command callbacks.

    Any exception escaping the command is logged and answered with one
    error embed; permission failures are shown in orange, everything else
    in red. Nothing is re-raised to discord.py.
    """
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            interaction = _find_interaction(args)
            user_id = interaction.user.id if interaction else None
            guild_id = interaction.guild.id if interaction and interaction.guild else None

            extra = None
            if not isinstance(e, (TicketBotError, discord.HTTPException)):
                extra = {'traceback': traceback.format_exc()}
            log_error(e, context=func.__name__, user_id=user_id, guild_id=guild_id, additional_info=extra)

            if interaction is None:
                return None

            if isinstance(e, discord.HTTPException):
                description = "A Discord API error occurred. Please try again later."
            elif isinstance(e, TicketBotError):
                description = format_error_message(e)
            else:
                description = "An unexpected error occurred. The issue has been logged and will be investigated."

            color = discord.Color.orange() if isinstance(e, UnauthorizedError) else None
            await send_error_embed(interaction, error_title(e), description, color=color)
            return None

    return wrapper
