"""
End-to-end workflow tests: slash command callbacks driving the real ticket
manager and SQLite store, with channel calls recorded instead of sent.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import discord
import pytest
from discord.ext import commands

from commands.ticket_commands import TicketCommands
from config.config_manager import ChannelConfig
from core.ticket_manager import TicketManager
from database.sqlite_adapter import SQLiteAdapter

from fakes import RecordingProvisioner

MOD_ROLE = 4000
AUTHOR = 111111111111111111
HELPER = 222222222222222222
MODERATOR = 333333333333333333


def interaction_for(user_id, role_ids=()):
    interaction = MagicMock(spec=discord.Interaction)
    interaction.user = MagicMock(spec=discord.Member)
    interaction.user.id = user_id
    interaction.user.roles = [MagicMock(spec=discord.Role, id=role_id) for role_id in role_ids]
    interaction.guild = MagicMock(spec=discord.Guild)
    interaction.guild.id = 1000
    interaction.channel = None

    interaction.response = MagicMock()
    interaction.response.is_done.return_value = False

    async def respond(*args, **kwargs):
        interaction.response.is_done.return_value = True

    interaction.response.defer = AsyncMock(side_effect=respond)
    interaction.response.send_message = AsyncMock(side_effect=respond)
    interaction.followup = MagicMock()
    interaction.followup.send = AsyncMock()
    return interaction


def last_reply(interaction):
    calls = interaction.response.send_message.call_args_list + interaction.followup.send.call_args_list
    call = calls[-1]
    if 'embed' in call.kwargs:
        return call.kwargs['embed'].description
    return call.args[0]


class TestTicketWorkflows:
    """Complete ticket lifecycles through the command layer."""

    @pytest.fixture
    def channel_config(self):
        return ChannelConfig(guild_id=1000, open_category_id=2000, closed_category_id=3000,
                             moderator_role_id=MOD_ROLE)

    @pytest.fixture
    def provisioner(self):
        return RecordingProvisioner()

    @pytest.fixture
    def bot(self, tmp_path, provisioner, channel_config):
        bot = MagicMock(spec=commands.Bot)
        bot.config_manager = MagicMock()
        bot.config_manager.get_channel_config.return_value = channel_config
        bot.database_adapter = SQLiteAdapter(str(tmp_path / "tickets.db"))
        bot.ticket_manager = TicketManager(bot.database_adapter, provisioner, channel_config)
        return bot

    @pytest.fixture
    def cog(self, bot):
        with patch('commands.ticket_commands.get_audit_logger', return_value=MagicMock()):
            return TicketCommands(bot)

    @pytest.mark.asyncio
    async def test_open_show_close_list(self, bot, cog, provisioner):
        await bot.database_adapter.connect()

        author = interaction_for(AUTHOR)
        await cog.open_ticket.callback(cog, author, '"Broken printer"', "Paper jam", f"<@{HELPER}>")
        channel_id = provisioner.created[0]['channel_id']
        assert last_reply(author) == f"Opened ticket <#{channel_id}>"
        assert provisioner.created[0]['name'] == "1-broken-printer"

        author = interaction_for(AUTHOR)
        await cog.show_ticket.callback(cog, author, 1)
        assert last_reply(author).startswith("### (#1): __Broken printer__")

        moderator = interaction_for(MODERATOR, role_ids=[MOD_ROLE])
        await cog.list_tickets.callback(cog, moderator)
        assert last_reply(moderator) == "(#1): Broken printer"

        moderator = interaction_for(MODERATOR, role_ids=[MOD_ROLE])
        await cog.close_ticket.callback(cog, moderator, 1)
        assert last_reply(moderator) == "Closed ticket #1."
        assert provisioner.edited[0]['channel_id'] == channel_id
        assert provisioner.edited[0]['category_id'] == 3000

        moderator = interaction_for(MODERATOR, role_ids=[MOD_ROLE])
        await cog.close_ticket.callback(cog, moderator, 1)
        assert last_reply(moderator) == "Ticket #1 is already closed."

        moderator = interaction_for(MODERATOR, role_ids=[MOD_ROLE])
        await cog.list_tickets.callback(cog, moderator)
        assert last_reply(moderator) == "No open tickets."

        moderator = interaction_for(MODERATOR, role_ids=[MOD_ROLE])
        await cog.list_all_tickets.callback(cog, moderator)
        assert last_reply(moderator) == "(#1): Broken printer ❌"

    @pytest.mark.asyncio
    async def test_access_rules(self, bot, cog):
        await bot.database_adapter.connect()
        await cog.open_ticket.callback(cog, interaction_for(AUTHOR), "Title", "Body")

        helper = interaction_for(HELPER)
        await cog.close_ticket.callback(cog, helper, 1)
        assert last_reply(helper) == "You don't have permission to perform this action."

        moderator = interaction_for(MODERATOR, role_ids=[MOD_ROLE])
        await cog.show_ticket.callback(cog, moderator, 1)
        assert last_reply(moderator) == "You can only view tickets you opened yourself."

        author = interaction_for(AUTHOR)
        await cog.list_all_tickets.callback(cog, author)
        assert last_reply(author) == "You don't have permission to perform this action."

        author = interaction_for(AUTHOR)
        await cog.show_ticket.callback(cog, author, 42)
        assert last_reply(author) == "Invalid ticket ID."

    @pytest.mark.asyncio
    async def test_failed_channel_creation_surfaces_orphan(self, bot, cog, provisioner):
        await bot.database_adapter.connect()
        provisioner.fail("create_channel")

        author = interaction_for(AUTHOR)
        await cog.open_ticket.callback(cog, author, "Title", "Body")
        assert "Ticket #1 was recorded" in last_reply(author)

        moderator = interaction_for(MODERATOR, role_ids=[MOD_ROLE])
        await cog.list_tickets.callback(cog, moderator)
        assert last_reply(moderator) == "(#1): Title ⚠️ no channel"

        moderator = interaction_for(MODERATOR, role_ids=[MOD_ROLE])
        await cog.close_ticket.callback(cog, moderator, 1)
        assert "has no channel attached" in last_reply(moderator)
