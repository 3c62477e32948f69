"""
In-memory collaborators for exercising the ticket manager without Discord.
"""

import asyncio
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from core.channel_provisioner import ChannelProvisioner, Overwrite
from database.adapter import DatabaseAdapter
from errors.exceptions import DatabaseError, ProvisionError
from models.ticket import Ticket


class InMemoryDatabaseAdapter(DatabaseAdapter):
    """Dict-backed ticket store with the same atomicity as the SQLite one."""

    def __init__(self):
        super().__init__("memory://tickets")
        self.tickets: Dict[int, Ticket] = {}
        self.calls: List[str] = []
        self.failures: Dict[str, Exception] = {}
        self.connected = False
        self._next_id = 1

    def fail(self, operation: str, error: Optional[Exception] = None):
        self.failures[operation] = error or DatabaseError(f"{operation} failed", operation=operation)

    def _record(self, operation: str):
        self.calls.append(operation)
        if operation in self.failures:
            raise self.failures[operation]

    async def connect(self):
        self.connected = True

    async def disconnect(self):
        self.connected = False

    async def is_connected(self):
        return self.connected

    async def insert_ticket(self, author: int, title: str, description: str) -> int:
        self._record("insert_ticket")
        ticket_id = self._next_id
        self._next_id += 1
        self.tickets[ticket_id] = Ticket(id=ticket_id, author=author, title=title, description=description)
        return ticket_id

    async def set_channel_id(self, ticket_id: int, channel_id: int) -> bool:
        self._record("set_channel_id")
        ticket = self.tickets.get(ticket_id)
        if ticket is None:
            return False
        ticket.channel_id = channel_id
        return True

    async def close_if_open(self, ticket_id: int) -> int:
        self._record("close_if_open")
        # Let concurrent callers interleave before the check-and-set
        await asyncio.sleep(0)
        ticket = self.tickets.get(ticket_id)
        if ticket is None or not ticket.is_open:
            return 0
        ticket.is_open = False
        return 1

    async def get_ticket(self, ticket_id: int) -> Optional[Ticket]:
        self._record("get_ticket")
        ticket = self.tickets.get(ticket_id)
        return Ticket.from_dict(ticket.to_dict()) if ticket else None

    async def get_tickets(self, open_only: bool = False) -> List[Ticket]:
        self._record("get_tickets")
        return [
            Ticket.from_dict(ticket.to_dict())
            for ticket_id, ticket in sorted(self.tickets.items())
            if ticket.is_open or not open_only
        ]


class RecordingProvisioner(ChannelProvisioner):
    """Provisioner that records every call and hands out sequential channel ids."""

    FIRST_CHANNEL_ID = 900000000000000001

    def __init__(self):
        self.created: List[dict] = []
        self.edited: List[dict] = []
        self.posted: List[dict] = []
        self.failures: Dict[str, ProvisionError] = {}
        self.on_create: Optional[Callable[[], Awaitable[None]]] = None
        self._next_channel_id = self.FIRST_CHANNEL_ID

    def fail(self, operation: str, message: str = "Missing Permissions"):
        self.failures[operation] = ProvisionError(message, details={'operation': operation})

    async def create_channel(self, name: str, category_id: int, overwrites: Sequence[Overwrite]) -> int:
        if self.on_create is not None:
            await self.on_create()
        if "create_channel" in self.failures:
            raise self.failures["create_channel"]

        channel_id = self._next_channel_id
        self._next_channel_id += 1
        self.created.append({
            'name': name,
            'category_id': category_id,
            'overwrites': list(overwrites),
            'channel_id': channel_id
        })
        return channel_id

    async def edit_permissions_and_category(self, channel_id: int, category_id: int,
                                            overwrites: Sequence[Overwrite]) -> None:
        if "edit_permissions_and_category" in self.failures:
            raise self.failures["edit_permissions_and_category"]
        self.edited.append({
            'channel_id': channel_id,
            'category_id': category_id,
            'overwrites': list(overwrites)
        })

    async def post_message(self, channel_id: int, content: str) -> None:
        if "post_message" in self.failures:
            raise self.failures["post_message"]
        self.posted.append({'channel_id': channel_id, 'content': content})
