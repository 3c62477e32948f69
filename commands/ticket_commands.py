"""
Ticket Commands Cog

Implements the /ticket command group: open, close, show, list, listall and
orphans. Each command turns the interaction into a typed TicketManager call
and answers with an ephemeral reply.
"""

from typing import Optional

import discord
from discord.ext import commands
from discord import app_commands

from commands.base_cog import BaseCog
from core.formatting import format_ticket, format_ticket_list
from core.ticket_manager import TicketManager
from errors import (
    handle_errors, ConfigurationError, DatabaseError, InconsistentStateError,
    ProvisionError
)
from logging_config import get_audit_logger
from models.ticket import CloseResult

CLOSE_REPLIES = {
    CloseResult.SUCCESS: "Closed ticket #{id}.",
    CloseResult.ALREADY_CLOSED: "Ticket #{id} is already closed.",
    CloseResult.NOT_FOUND: "Invalid ticket ID.",
}


class TicketCommands(BaseCog):
    """Cog containing the ticket lifecycle commands."""

    ticket = app_commands.Group(name="ticket", description="Manage tickets", guild_only=True)

    def __init__(self, bot: commands.Bot):
        super().__init__(bot)
        self.audit_logger = get_audit_logger()

    def _get_ticket_manager(self) -> TicketManager:
        manager = getattr(self.bot, 'ticket_manager', None)
        if manager is None:
            raise ConfigurationError(
                "Ticket manager is not initialized",
                user_message="Ticket system is currently unavailable. Please try again later."
            )
        return manager

    def _audit_failure(self, error: Exception, interaction: discord.Interaction):
        """Record failures that leave a ticket needing operator attention."""
        ticket_id = getattr(error, 'ticket_id', None)
        if ticket_id is None:
            return
        self.audit_logger.log_error_occurred(
            error_type=type(error).__name__,
            error_message=str(error),
            user_id=interaction.user.id,
            ticket_id=ticket_id,
            channel_id=getattr(error, 'channel_id', None)
        )

    def _audit_command(self, name: str, interaction: discord.Interaction, **info):
        self.audit_logger.log_command_used(
            command_name=name,
            user_id=interaction.user.id,
            guild_id=interaction.guild.id if interaction.guild else None,
            channel_id=interaction.channel.id if interaction.channel else None,
            success=True,
            additional_info=info or None
        )

    async def _require_moderator(self, interaction: discord.Interaction, command_name: str) -> bool:
        is_moderator = await self.is_moderator(interaction.user)
        if not is_moderator:
            self.audit_logger.log_permission_denied(
                command_name=command_name,
                user_id=interaction.user.id,
                required_permission="moderator",
                guild_id=interaction.guild.id if interaction.guild else None
            )
        return is_moderator

    @ticket.command(name="open", description="Open a ticket")
    @app_commands.describe(
        title="Title of the ticket",
        description="Short description of the ticket",
        related_users="(Optional) Related users (@mentions separated by space)"
    )
    @handle_errors
    async def open_ticket(self, interaction: discord.Interaction, title: str, description: str,
                          related_users: Optional[str] = None):
        """
        Open a ticket with a private channel for the author and related users.

        Args:
            title: Ticket title
            description: What the ticket is about
            related_users: Mentions of other users who should see the channel
        """
        manager = self._get_ticket_manager()

        # Channel provisioning can take longer than the interaction window
        await interaction.response.defer(ephemeral=True)

        try:
            result = await manager.open_ticket(interaction.user.id, title, description, related_users)
        except (ProvisionError, DatabaseError) as e:
            self._audit_failure(e, interaction)
            raise

        self.audit_logger.log_ticket_opened(
            ticket_id=result.ticket_id,
            user_id=interaction.user.id,
            channel_id=result.channel_id,
            related_users=result.related_users,
            additional_info=None if result.announced else {'announced': False}
        )
        self._audit_command("ticket open", interaction, ticket_id=result.ticket_id)

        await self.reply(interaction, f"Opened ticket <#{result.channel_id}>")

    @ticket.command(name="close", description="Close a ticket")
    @app_commands.describe(ticket_id="Ticket ID")
    @app_commands.rename(ticket_id="id")
    @handle_errors
    async def close_ticket(self, interaction: discord.Interaction, ticket_id: int):
        """Close a ticket and hide its channel from everyone but moderators."""
        manager = self._get_ticket_manager()
        is_moderator = await self._require_moderator(interaction, "ticket close")

        await interaction.response.defer(ephemeral=True)

        try:
            result = await manager.close_ticket(interaction.user.id, ticket_id, is_moderator)
        except (ProvisionError, InconsistentStateError, DatabaseError) as e:
            self._audit_failure(e, interaction)
            raise

        self.audit_logger.log_ticket_closed(
            ticket_id=ticket_id,
            user_id=interaction.user.id,
            outcome=result.value
        )
        self._audit_command("ticket close", interaction, ticket_id=ticket_id)

        await self.reply(interaction, CLOSE_REPLIES[result].format(id=ticket_id))

    @ticket.command(name="show", description="Show a ticket")
    @app_commands.describe(ticket_id="Ticket ID")
    @app_commands.rename(ticket_id="id")
    @handle_errors
    async def show_ticket(self, interaction: discord.Interaction, ticket_id: int):
        """Show one of your own tickets."""
        manager = self._get_ticket_manager()

        ticket = await manager.show_ticket(interaction.user.id, ticket_id)

        self._audit_command("ticket show", interaction, ticket_id=ticket_id)
        await self.reply(interaction, format_ticket(ticket))

    @ticket.command(name="list", description="List all open tickets")
    @handle_errors
    async def list_tickets(self, interaction: discord.Interaction):
        """List open tickets. Moderators only."""
        manager = self._get_ticket_manager()
        is_moderator = await self._require_moderator(interaction, "ticket list")

        summaries = await manager.list_open_tickets(is_moderator)

        self._audit_command("ticket list", interaction, count=len(summaries))
        await self.reply(interaction, format_ticket_list(summaries))

    @ticket.command(name="listall", description="List all tickets")
    @handle_errors
    async def list_all_tickets(self, interaction: discord.Interaction):
        """List every ticket with its open/closed status. Moderators only."""
        manager = self._get_ticket_manager()
        is_moderator = await self._require_moderator(interaction, "ticket listall")

        summaries = await manager.list_all_tickets(is_moderator)

        self._audit_command("ticket listall", interaction, count=len(summaries))
        await self.reply(interaction, format_ticket_list(summaries, show_status=True))

    @ticket.command(name="orphans", description="List tickets whose channel was never attached")
    @handle_errors
    async def list_orphaned_tickets(self, interaction: discord.Interaction):
        """List tickets left without a channel by a failed open. Moderators only."""
        manager = self._get_ticket_manager()
        is_moderator = await self._require_moderator(interaction, "ticket orphans")

        orphans = await manager.find_orphaned_tickets(is_moderator)

        self._audit_command("ticket orphans", interaction, count=len(orphans))
        if not orphans:
            await self.reply(interaction, "No orphaned tickets.")
            return
        await self.reply(interaction, format_ticket_list([t.to_summary() for t in orphans], show_status=True))


async def setup(bot: commands.Bot):
    """Setup function to add the cog to the bot."""
    await bot.add_cog(TicketCommands(bot))
