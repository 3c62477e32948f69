"""
Ticket data model for the ticket lifecycle bot.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class CloseResult(Enum):
    """Outcome of a close request that did not raise."""
    SUCCESS = "success"
    ALREADY_CLOSED = "already_closed"
    NOT_FOUND = "not_found"


@dataclass
class Ticket:
    """
    Data model representing a support ticket.

    Attributes:
        id: Store-assigned identifier, unique and monotonic
        author: Discord user ID of the ticket creator
        title: Short title given at creation
        description: Free-form description given at creation
        is_open: False once the ticket has been closed (terminal)
        channel_id: Discord channel backing the ticket (None until provisioned)
    """
    id: int
    author: int
    title: str
    description: str
    is_open: bool = True
    channel_id: Optional[int] = None

    @property
    def is_orphaned(self) -> bool:
        """True for a record whose channel was never attached."""
        return self.channel_id is None

    def to_summary(self) -> 'TicketSummary':
        return TicketSummary(
            id=self.id,
            title=self.title,
            is_open=self.is_open,
            is_orphaned=self.is_orphaned
        )

    def to_dict(self) -> dict:
        """Convert ticket to dictionary representation."""
        return {
            'id': self.id,
            'author': self.author,
            'title': self.title,
            'description': self.description,
            'is_open': self.is_open,
            'channel_id': self.channel_id
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Ticket':
        """Create ticket instance from dictionary representation."""
        return cls(
            id=data['id'],
            author=data['author'],
            title=data['title'],
            description=data['description'],
            is_open=data.get('is_open', True),
            channel_id=data.get('channel_id')
        )


@dataclass(frozen=True)
class TicketSummary:
    """Row returned by the list operations."""
    id: int
    title: str
    is_open: bool
    is_orphaned: bool = False


@dataclass
class OpenResult:
    """
    Result of a successful open operation.

    ``announced`` is False when the best-effort summary post into the new
    channel failed; the ticket and channel are still valid in that case.
    """
    ticket_id: int
    channel_id: int
    related_users: List[int] = field(default_factory=list)
    announced: bool = True
