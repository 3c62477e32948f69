#!/usr/bin/env python3
"""
Ticket Bot - Main Entry Point

Discord bot that opens, tracks and closes support tickets, each backed by a
private channel whose visibility follows the ticket's state.

Required environment: DISCORD_TOKEN. Guild, category and moderator role ids
come from config.json or GUILD_ID / OPEN_CATEGORY_ID / CLOSED_CATEGORY_ID /
MOD_ROLE_ID.
"""

import asyncio
import logging
import os
import signal
import sys
from typing import Optional

import discord
from discord.ext import commands
from dotenv import load_dotenv

from config.config_manager import ChannelConfig, ConfigManager
from core.channel_provisioner import DiscordChannelProvisioner
from core.ticket_manager import TicketManager
from database.sqlite_adapter import SQLiteAdapter
from errors.exceptions import ConfigurationError
from logging_config import setup_logging, get_audit_logger

logger = logging.getLogger(__name__)

EXTENSIONS = ("commands.ticket_commands",)
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class TicketBot(commands.Bot):
    """Discord client that owns the ticket store and the ticket manager."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        intents = discord.Intents.default()
        intents.guilds = True

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            help_command=None
        )

        self.config_manager = config_manager
        self.database_adapter: Optional[SQLiteAdapter] = None
        self.channel_provisioner: Optional[DiscordChannelProvisioner] = None
        self.ticket_manager: Optional[TicketManager] = None
        self.ready_for_commands = False
        self._closing = False

    async def setup_hook(self):
        """Wire configuration, store and manager, then register the slash commands."""
        try:
            channel_config = self.load_channel_config()
            await self.open_store()
            self.build_ticket_manager(channel_config)

            for extension in EXTENSIONS:
                await self.load_extension(extension)
                logger.info(f"Loaded extension {extension}")

            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} application commands")

        except Exception:
            logger.exception("Bot setup failed")
            await self.release_store()
            raise

        self.ready_for_commands = True

    def load_channel_config(self) -> ChannelConfig:
        """
        Load and validate configuration.

        Raises:
            ConfigurationError: If any setting is missing or invalid
        """
        if self.config_manager is None:
            self.config_manager = ConfigManager(os.getenv('CONFIG_FILE', 'config.json'))

        problems = self.config_manager.validate_configuration()
        if problems:
            for problem in problems:
                logger.error(f"Configuration problem: {problem}")
            raise ConfigurationError("Configuration validation failed: " + "; ".join(problems))

        channel_config = self.config_manager.get_channel_config()
        logger.info(
            f"Guild {channel_config.guild_id}: open category {channel_config.open_category_id}, "
            f"closed category {channel_config.closed_category_id}, "
            f"moderator role {channel_config.moderator_role_id}"
        )
        return channel_config

    async def open_store(self):
        db_path = self.config_manager.get_global_config('database_url', 'tickets.db')
        self.database_adapter = SQLiteAdapter(db_path)
        await self.database_adapter.connect()

    def build_ticket_manager(self, channel_config: ChannelConfig) -> TicketManager:
        if self.database_adapter is None:
            raise RuntimeError("Ticket store must be opened before the ticket manager is built")

        self.channel_provisioner = DiscordChannelProvisioner(self, channel_config)
        self.ticket_manager = TicketManager(self.database_adapter, self.channel_provisioner, channel_config)
        return self.ticket_manager

    async def release_store(self):
        """Drop the store and everything built on it."""
        if self.database_adapter is not None:
            await self.database_adapter.disconnect()

        self.database_adapter = None
        self.channel_provisioner = None
        self.ticket_manager = None
        self.ready_for_commands = False

    async def on_ready(self):
        logger.info(f"Logged in as {self.user} ({len(self.guilds)} guilds)")

    async def on_error(self, event, *args, **kwargs):
        logger.exception(f"Unhandled error in event {event}")

    async def close(self):
        if self._closing:
            return
        self._closing = True
        logger.info("Shutting down")

        try:
            await self.release_store()
        finally:
            await super().close()


def validate_environment() -> bool:
    """
    Check the environment before connecting.

    Returns:
        bool: False if DISCORD_TOKEN is missing
    """
    if not os.getenv('DISCORD_TOKEN'):
        logger.error("DISCORD_TOKEN is not set; add it to the environment or a .env file")
        return False

    log_level = os.getenv('LOG_LEVEL', 'INFO')
    if log_level.upper() not in LOG_LEVELS:
        logger.warning(f"Unknown LOG_LEVEL {log_level!r}, logging at INFO")

    return True


def install_signal_handlers(bot: TicketBot):
    """Close the bot on SIGTERM/SIGINT where the event loop supports it."""
    loop = asyncio.get_running_loop()

    def request_shutdown(name: str):
        logger.info(f"Received {name}")
        loop.create_task(bot.close())

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, request_shutdown, sig.name)
        except (NotImplementedError, RuntimeError):
            # Not available on Windows event loops
            pass


async def main():
    load_dotenv()
    setup_logging(log_dir=os.getenv('LOG_DIR', 'logs'), log_level=os.getenv('LOG_LEVEL', 'INFO'))
    get_audit_logger()

    if not validate_environment():
        sys.exit(1)

    bot = TicketBot()
    install_signal_handlers(bot)

    try:
        await bot.start(os.getenv('DISCORD_TOKEN'))
    except discord.LoginFailure:
        logger.error("Discord rejected the token in DISCORD_TOKEN")
        sys.exit(1)
    except discord.HTTPException as e:
        logger.error(f"Could not connect to Discord: {e}")
        sys.exit(1)
    finally:
        await bot.close()


def run():
    """Console entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Stopped by user")


if __name__ == "__main__":
    run()
