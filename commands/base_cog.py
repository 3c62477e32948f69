"""
Base Cog Class

Provides common functionality for all command cogs: moderator lookup,
ephemeral replies and app command error reporting.
"""

import logging
from typing import List, Optional

import discord
from discord.ext import commands
from discord import app_commands

from errors.exceptions import ConfigurationError

# Discord rejects message content longer than 2000 characters
MESSAGE_LIMIT = 2000


def split_message(content: str, limit: int = MESSAGE_LIMIT) -> List[str]:
    """Split text on line boundaries into chunks Discord will accept."""
    chunks: List[str] = []
    current = ""
    for line in content.split("\n"):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current or not chunks:
        chunks.append(current)
    return chunks


class BaseCog(commands.Cog):
    """Base cog class with common functionality for all command cogs."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def _moderator_role_id(self) -> Optional[int]:
        config_manager = getattr(self.bot, 'config_manager', None)
        if config_manager is None:
            return None
        try:
            return config_manager.get_channel_config().moderator_role_id
        except ConfigurationError as e:
            self.logger.error(f"Moderator role is not configured: {e}")
            return None

    async def is_moderator(self, user: discord.abc.User) -> bool:
        """Check whether a member holds the configured moderator role."""
        role_id = self._moderator_role_id()
        if role_id is None:
            return False

        roles = getattr(user, 'roles', None)
        if not roles:
            return False
        return any(role.id == role_id for role in roles)

    async def reply(self, interaction: discord.Interaction, content: str, ephemeral: bool = True):
        """Send a plain-text reply, splitting it if it is too long."""
        for chunk in split_message(content):
            if interaction.response.is_done():
                await interaction.followup.send(chunk, ephemeral=ephemeral)
            else:
                await interaction.response.send_message(chunk, ephemeral=ephemeral)

    async def send_error_embed(self, interaction: discord.Interaction, title: str, description: str,
                               color: Optional[discord.Color] = None, ephemeral: bool = True):
        """Send a standardized error embed."""
        embed = discord.Embed(
            title=title,
            description=description,
            color=color or discord.Color.red()
        )

        if interaction.response.is_done():
            await interaction.followup.send(embed=embed, ephemeral=ephemeral)
        else:
            await interaction.response.send_message(embed=embed, ephemeral=ephemeral)

    async def cog_load(self):
        """Called when the cog is loaded."""
        self.logger.info(f"{self.__class__.__name__} cog loaded")

    async def cog_unload(self):
        """Called when the cog is unloaded."""
        self.logger.info(f"{self.__class__.__name__} cog unloaded")

    async def cog_app_command_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError):
        """Handle application command errors raised outside the command body."""
        self.logger.error(f"App command error in {interaction.command}: {error}")

        if isinstance(error, app_commands.CommandOnCooldown):
            await self.send_error_embed(
                interaction,
                "⏰ Command on Cooldown",
                f"Please wait {error.retry_after:.1f} seconds before using this command again.",
                color=discord.Color.orange()
            )
        elif isinstance(error, app_commands.NoPrivateMessage):
            await self.send_error_embed(
                interaction,
                "❌ Server Only",
                "Ticket commands can only be used inside the server."
            )
        else:
            await self.send_error_embed(
                interaction,
                "❌ Command Error",
                "An error occurred while executing the command."
            )
