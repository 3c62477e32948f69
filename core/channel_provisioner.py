"""
Channel provisioning for ticket channels.

Defines the provisioning contract the ticket manager depends on and the
discord.py implementation of it.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Sequence, Union

import aiohttp
import discord
from discord.ext import commands

from config.config_manager import ChannelConfig
from errors.exceptions import ProvisionError

logger = logging.getLogger(__name__)


class PrincipalType(Enum):
    """Kind of subject a permission overwrite applies to."""
    USER = "user"
    ROLE = "role"
    EVERYONE = "everyone"


@dataclass(frozen=True)
class Principal:
    """A user or a role, including the guild-wide @everyone role."""
    kind: PrincipalType
    id: int = 0

    @classmethod
    def user(cls, user_id: int) -> 'Principal':
        return cls(PrincipalType.USER, user_id)

    @classmethod
    def role(cls, role_id: int) -> 'Principal':
        return cls(PrincipalType.ROLE, role_id)

    @classmethod
    def everyone(cls) -> 'Principal':
        return cls(PrincipalType.EVERYONE)


@dataclass(frozen=True)
class Overwrite:
    """Allow/deny permission pair for one principal."""
    principal: Principal
    allow: discord.Permissions
    deny: discord.Permissions

    @classmethod
    def allow_view(cls, principal: Principal) -> 'Overwrite':
        return cls(principal, discord.Permissions(view_channel=True), discord.Permissions.none())

    @classmethod
    def deny_view(cls, principal: Principal) -> 'Overwrite':
        return cls(principal, discord.Permissions.none(), discord.Permissions(view_channel=True))

    def to_permission_overwrite(self) -> discord.PermissionOverwrite:
        return discord.PermissionOverwrite.from_pair(self.allow, self.deny)


class ChannelProvisioner(ABC):
    """
    Contract for creating and editing ticket channels.

    Implementations apply overwrite lists as a full replacement of the
    channel's existing overwrites and raise ProvisionError on any failure,
    including timeouts.
    """

    @abstractmethod
    async def create_channel(self, name: str, category_id: int,
                             overwrites: Sequence[Overwrite]) -> int:
        """
        Create a text channel under a category.

        Returns:
            int: The new channel id

        Raises:
            ProvisionError: If the channel could not be created
        """
        pass

    @abstractmethod
    async def edit_permissions_and_category(self, channel_id: int, category_id: int,
                                            overwrites: Sequence[Overwrite]) -> None:
        """
        Move a channel to a category and replace all of its overwrites.

        Raises:
            ProvisionError: If the channel could not be edited
        """
        pass

    @abstractmethod
    async def post_message(self, channel_id: int, content: str) -> None:
        """
        Send a message into a channel.

        Raises:
            ProvisionError: If the message could not be sent
        """
        pass


OverwriteTarget = Union[discord.Role, discord.Member, discord.Object]


class DiscordChannelProvisioner(ChannelProvisioner):
    """discord.py implementation bound to the configured guild."""

    def __init__(self, bot: commands.Bot, channel_config: ChannelConfig):
        """
        Initialize DiscordChannelProvisioner.

        Args:
            bot: Connected Discord bot
            channel_config: Guild, categories, moderator role and call timeout
        """
        self.bot = bot
        self.config = channel_config
        self.timeout = channel_config.provision_timeout

    async def _call(self, operation: str, coro, **context):
        """Run one platform call under the timeout, translating failures."""
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout)
        except asyncio.TimeoutError:
            raise ProvisionError(f"{operation} timed out after {self.timeout}s",
                                 details={'operation': operation, **context})
        except discord.Forbidden as e:
            raise ProvisionError(f"Bot lacks permission for {operation}: {e}",
                                 details={'operation': operation, **context})
        except discord.NotFound as e:
            raise ProvisionError(f"Target of {operation} not found: {e}",
                                 details={'operation': operation, **context})
        except discord.HTTPException as e:
            raise ProvisionError(f"Discord API error during {operation}: {e}",
                                 details={'operation': operation, **context})
        except (OSError, aiohttp.ClientError) as e:
            raise ProvisionError(f"Connection to Discord failed during {operation}: {e}",
                                 details={'operation': operation, **context})

    async def _get_guild(self) -> discord.Guild:
        guild = self.bot.get_guild(self.config.guild_id)
        if guild is None:
            guild = await self._call("fetch_guild", self.bot.fetch_guild(self.config.guild_id),
                                     guild_id=self.config.guild_id)
        return guild

    async def _get_channel(self, guild: discord.Guild, channel_id: int) -> discord.abc.GuildChannel:
        channel = guild.get_channel(channel_id)
        if channel is None:
            channel = await self._call("fetch_channel", guild.fetch_channel(channel_id),
                                       channel_id=channel_id)
        return channel

    @staticmethod
    def _category(guild: discord.Guild, category_id: int) -> Union[discord.CategoryChannel, discord.Object]:
        category = guild.get_channel(category_id)
        if isinstance(category, discord.CategoryChannel):
            return category
        if category is not None:
            raise ProvisionError(f"Channel {category_id} is not a category",
                                 details={'category_id': category_id})
        return discord.Object(id=category_id, type=discord.CategoryChannel)

    @staticmethod
    def _resolve(guild: discord.Guild, principal: Principal) -> OverwriteTarget:
        if principal.kind is PrincipalType.EVERYONE:
            return guild.default_role or discord.Object(id=guild.id, type=discord.Role)
        if principal.kind is PrincipalType.ROLE:
            return guild.get_role(principal.id) or discord.Object(id=principal.id, type=discord.Role)
        return guild.get_member(principal.id) or discord.Object(id=principal.id, type=discord.Member)

    def build_overwrites(self, guild: discord.Guild,
                         overwrites: Sequence[Overwrite]) -> Dict[OverwriteTarget, discord.PermissionOverwrite]:
        """Translate overwrites into the mapping discord.py expects."""
        return {
            self._resolve(guild, overwrite.principal): overwrite.to_permission_overwrite()
            for overwrite in overwrites
        }

    async def create_channel(self, name: str, category_id: int,
                             overwrites: Sequence[Overwrite]) -> int:
        guild = await self._get_guild()
        channel = await self._call(
            "create_channel",
            guild.create_text_channel(
                name=name,
                category=self._category(guild, category_id),
                overwrites=self.build_overwrites(guild, overwrites),
                reason=f"Ticket channel {name}"
            ),
            category_id=category_id
        )

        logger.info(f"Created channel {channel.id} ({name}) in category {category_id}")
        return channel.id

    async def edit_permissions_and_category(self, channel_id: int, category_id: int,
                                            overwrites: Sequence[Overwrite]) -> None:
        guild = await self._get_guild()
        channel = await self._get_channel(guild, channel_id)

        # One edit call: the overwrite list replaces whatever the channel had
        await self._call(
            "edit_channel",
            channel.edit(
                category=self._category(guild, category_id),
                overwrites=self.build_overwrites(guild, overwrites),
                sync_permissions=False,
                reason="Ticket channel permissions updated"
            ),
            channel_id=channel_id,
            category_id=category_id
        )

        logger.info(f"Moved channel {channel_id} to category {category_id} with {len(overwrites)} overwrites")

    async def post_message(self, channel_id: int, content: str) -> None:
        guild = await self._get_guild()
        channel = await self._get_channel(guild, channel_id)

        if not isinstance(channel, discord.abc.Messageable):
            raise ProvisionError(f"Channel {channel_id} cannot receive messages",
                                 details={'channel_id': channel_id})

        await self._call(
            "post_message",
            channel.send(
                content,
                allowed_mentions=discord.AllowedMentions(everyone=False, users=True, roles=True)
            ),
            channel_id=channel_id
        )


def open_ticket_overwrites(members: List[int], moderator_role_id: int) -> List[Overwrite]:
    """Author and related users plus moderators can see the channel, nobody else."""
    overwrites = [Overwrite.allow_view(Principal.user(member)) for member in members]
    overwrites.append(Overwrite.allow_view(Principal.role(moderator_role_id)))
    overwrites.append(Overwrite.deny_view(Principal.everyone()))
    return overwrites


def closed_ticket_overwrites(moderator_role_id: int) -> List[Overwrite]:
    """Only moderators can see a closed ticket's channel."""
    return [
        Overwrite.deny_view(Principal.everyone()),
        Overwrite.allow_view(Principal.role(moderator_role_id)),
    ]
