"""
Unit tests for BaseCog class and message splitting.
"""

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest
from discord.ext import commands

from commands.base_cog import BaseCog, MESSAGE_LIMIT, split_message
from config.config_manager import ChannelConfig
from errors.exceptions import ConfigurationError

MOD_ROLE = 4000


@pytest.fixture
def mock_bot():
    bot = MagicMock(spec=commands.Bot)
    bot.config_manager = MagicMock()
    bot.config_manager.get_channel_config.return_value = ChannelConfig(
        guild_id=1000, open_category_id=2000, closed_category_id=3000, moderator_role_id=MOD_ROLE
    )
    return bot


@pytest.fixture
def base_cog(mock_bot):
    return BaseCog(mock_bot)


def member_with_roles(*role_ids):
    member = MagicMock(spec=discord.Member)
    member.roles = [MagicMock(spec=discord.Role, id=role_id) for role_id in role_ids]
    return member


class TestBaseCog:
    """Test cases for BaseCog."""

    def test_base_cog_initialization(self, mock_bot, base_cog):
        assert base_cog.bot is mock_bot
        assert base_cog.logger.name.endswith("BaseCog")

    @pytest.mark.asyncio
    async def test_moderator_role_holder(self, base_cog):
        assert await base_cog.is_moderator(member_with_roles(1, MOD_ROLE))

    @pytest.mark.asyncio
    async def test_regular_member(self, base_cog):
        assert not await base_cog.is_moderator(member_with_roles(1, 2))

    @pytest.mark.asyncio
    async def test_user_without_roles(self, base_cog):
        user = MagicMock(spec=discord.User)

        assert not await base_cog.is_moderator(user)

    @pytest.mark.asyncio
    async def test_unconfigured_role(self, mock_bot, base_cog):
        mock_bot.config_manager.get_channel_config.side_effect = ConfigurationError("missing")

        assert not await base_cog.is_moderator(member_with_roles(MOD_ROLE))

    @pytest.mark.asyncio
    async def test_send_error_embed(self, base_cog):
        interaction = MagicMock(spec=discord.Interaction)
        interaction.response = MagicMock()
        interaction.response.is_done.return_value = False
        interaction.response.send_message = AsyncMock()

        await base_cog.send_error_embed(interaction, "Title", "Description")

        kwargs = interaction.response.send_message.call_args.kwargs
        assert kwargs['embed'].title == "Title"
        assert kwargs['ephemeral'] is True

    @pytest.mark.asyncio
    async def test_cooldown_error(self, base_cog):
        interaction = MagicMock(spec=discord.Interaction)
        interaction.response = MagicMock()
        interaction.response.is_done.return_value = True
        interaction.followup = MagicMock()
        interaction.followup.send = AsyncMock()
        cooldown = app_cooldown_error()

        await base_cog.cog_app_command_error(interaction, cooldown)

        assert interaction.followup.send.call_args.kwargs['embed'].title == "⏰ Command on Cooldown"


def app_cooldown_error():
    return discord.app_commands.CommandOnCooldown(discord.app_commands.Cooldown(1, 30.0), 12.5)


class TestSplitMessage:
    """Test cases for split_message."""

    def test_short_message_untouched(self):
        assert split_message("hello\nworld") == ["hello\nworld"]

    def test_empty_message(self):
        assert split_message("") == [""]

    def test_splits_on_lines(self):
        content = "\n".join(["a" * 30] * 10)

        chunks = split_message(content, limit=100)

        assert all(len(chunk) <= 100 for chunk in chunks)
        assert "\n".join(chunks) == content

    def test_long_line_hard_split(self):
        chunks = split_message("b" * (MESSAGE_LIMIT + 10))

        assert [len(chunk) for chunk in chunks] == [MESSAGE_LIMIT, 10]
