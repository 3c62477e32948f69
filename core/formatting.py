"""
Text rendering for tickets: channel names, summaries and listings.
"""

import re
from typing import Iterable, Optional, Sequence

from models.ticket import Ticket, TicketSummary

OPEN_MARK = "✅"
CLOSED_MARK = "❌"
ORPHAN_MARK = "⚠️ no channel"

# Discord's limit for channel names
MAX_CHANNEL_NAME_LENGTH = 100


def channel_name_for(ticket_id: int, title: str) -> str:
    """Channel name built from the ticket id and a slug of its title."""
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    name = f"{ticket_id}-{slug}" if slug else f"ticket-{ticket_id}"
    return name[:MAX_CHANNEL_NAME_LENGTH].rstrip("-")


def user_mention(user_id: int) -> str:
    return f"<@{user_id}>"


def moderator_mention(role_id: int) -> str:
    return f"<@&{role_id}>"


def status_mark(is_open: bool) -> str:
    return OPEN_MARK if is_open else CLOSED_MARK


def format_ticket(ticket: Ticket, related_users: Optional[Sequence[int]] = None) -> str:
    """
    Render a ticket the way it is posted into its channel and shown to its author.

    Args:
        ticket: Ticket to render
        related_users: Users enrolled at creation, author excluded

    Returns:
        str: Markdown block
    """
    lines = [
        f"### (#{ticket.id}): __{ticket.title}__",
        f"Author: {user_mention(ticket.author)}",
    ]

    if related_users:
        lines.append("Related Users: " + " ".join(user_mention(user) for user in related_users))

    lines.extend([
        "",
        "Description:",
        ticket.description,
        "",
        f"open: {status_mark(ticket.is_open)}",
    ])
    return "\n".join(lines)


def format_opening_message(ticket: Ticket, related_users: Sequence[int], moderator_role_id: int) -> str:
    """Summary posted into a new ticket channel, pinging the moderators."""
    return f"{format_ticket(ticket, related_users)}\n{moderator_mention(moderator_role_id)}"


def format_ticket_list(summaries: Iterable[TicketSummary], show_status: bool = False) -> str:
    """
    Render one line per ticket.

    Args:
        summaries: Tickets in the order to display
        show_status: Append the open/closed marker (used for the all-tickets view)
    """
    lines = []
    for summary in summaries:
        line = f"(#{summary.id}): {summary.title}"
        if show_status:
            line += f" {status_mark(summary.is_open)}"
        if summary.is_orphaned:
            line += f" {ORPHAN_MARK}"
        lines.append(line)

    if not lines:
        return "No tickets found." if show_status else "No open tickets."
    return "\n".join(lines)
