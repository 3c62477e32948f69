# Core package for ticket lifecycle management

from .ticket_manager import TicketManager
from .participants import ParticipantResolver
from .channel_provisioner import (
    ChannelProvisioner,
    DiscordChannelProvisioner,
    Overwrite,
    Principal,
    PrincipalType
)

__all__ = [
    'TicketManager',
    'ParticipantResolver',
    'ChannelProvisioner',
    'DiscordChannelProvisioner',
    'Overwrite',
    'Principal',
    'PrincipalType'
]
