"""
Ticket Manager for the ticket lifecycle bot.

This module keeps the ticket record, its Discord channel and that channel's
permission overwrites consistent across the open -> closed transition.
"""

import logging
from typing import List, Optional, Set

from config.config_manager import ChannelConfig
from core.channel_provisioner import (
    ChannelProvisioner, open_ticket_overwrites, closed_ticket_overwrites
)
from core.formatting import channel_name_for, format_opening_message
from core.participants import ParticipantResolver
from database.adapter import DatabaseAdapter
from errors.exceptions import (
    DatabaseError, ForbiddenError, InconsistentStateError, ProvisionError,
    TicketNotFoundError, UnauthorizedError, ValidationError
)
from models.ticket import CloseResult, OpenResult, Ticket, TicketSummary

logger = logging.getLogger(__name__)


def _strip_quotes(value: Optional[str]) -> str:
    """Drop surrounding double quotes left over from copy-pasted input."""
    return (value or "").strip().strip('"').strip()


def _validate_ticket_id(ticket_id) -> int:
    if isinstance(ticket_id, bool) or not isinstance(ticket_id, int) or ticket_id <= 0:
        raise ValidationError(
            f"Malformed ticket id: {ticket_id!r}",
            field="ticket_id",
            value=ticket_id,
            user_message="Ticket IDs are positive numbers."
        )
    return ticket_id


class TicketManager:
    """
    Core ticket lifecycle system.

    Store and channel calls are individually atomic but never wrapped in a
    transaction. Every step sequence here tolerates stopping half-way and
    reports the resulting state instead of repairing it.
    """

    def __init__(self, database_adapter: DatabaseAdapter, channel_provisioner: ChannelProvisioner,
                 channel_config: ChannelConfig, participant_resolver: Optional[ParticipantResolver] = None):
        """
        Initialize TicketManager.

        Args:
            database_adapter: Ticket store
            channel_provisioner: Creates and edits ticket channels
            channel_config: Category and moderator role identifiers
            participant_resolver: Mention parser (a default one is created if omitted)
        """
        self.database = database_adapter
        self.provisioner = channel_provisioner
        self.config = channel_config
        self.resolver = participant_resolver or ParticipantResolver()
        # Tickets between insert and channel-id persistence; hidden from reads
        self._provisioning: Set[int] = set()

    def is_provisioning(self, ticket_id: int) -> bool:
        return ticket_id in self._provisioning

    async def open_ticket(self, author_id: int, title: str, description: str,
                          related_mentions: Optional[str] = None) -> OpenResult:
        """
        Open a ticket and provision its private channel.

        Args:
            author_id: Discord user ID of the creator
            title: Ticket title (surrounding quotes are stripped)
            description: Ticket description (surrounding quotes are stripped)
            related_mentions: Whitespace-separated user mentions to enroll

        Returns:
            OpenResult: New ticket id, channel id and enrolled users

        Raises:
            ValidationError: Empty title or unreadable mention; nothing was written
            DatabaseError: Insert failed (nothing written) or the channel id could
                not be recorded (``ticket_id`` set, ticket has no addressable channel)
            ProvisionError: Channel creation failed; the record is orphaned
                (``partial`` is True and ``ticket_id`` is set)
        """
        title = _strip_quotes(title)
        description = _strip_quotes(description)

        if not title:
            raise ValidationError(
                "Ticket title is empty after trimming quotes",
                field="title",
                value=title,
                user_message="A ticket needs a title."
            )

        related_users = self.resolver.resolve(related_mentions, exclude=[author_id])

        ticket_id = await self.database.insert_ticket(author_id, title, description)
        ticket = Ticket(id=ticket_id, author=author_id, title=title, description=description)

        self._provisioning.add(ticket_id)
        try:
            try:
                channel_id = await self.provisioner.create_channel(
                    channel_name_for(ticket_id, title),
                    self.config.open_category_id,
                    open_ticket_overwrites([author_id, *related_users], self.config.moderator_role_id)
                )
            except ProvisionError as e:
                logger.error(f"Ticket #{ticket_id} recorded but channel creation failed: {e}")
                raise ProvisionError(str(e), ticket_id=ticket_id, partial=True, details=e.details) from e

            try:
                updated = await self.database.set_channel_id(ticket_id, channel_id)
            except DatabaseError as e:
                logger.error(f"Channel {channel_id} created but not recorded on ticket #{ticket_id}: {e}")
                raise DatabaseError(
                    str(e),
                    operation="set_channel_id",
                    ticket_id=ticket_id,
                    user_message=f"Ticket #{ticket_id} was opened but its channel could not be recorded. "
                                 f"Please contact a moderator.",
                    details={'channel_id': channel_id}
                ) from e

            if not updated:
                raise DatabaseError(
                    f"Ticket #{ticket_id} disappeared before channel {channel_id} was recorded",
                    operation="set_channel_id",
                    ticket_id=ticket_id,
                    details={'channel_id': channel_id}
                )

            ticket.channel_id = channel_id
        finally:
            self._provisioning.discard(ticket_id)

        announced = await self._announce(ticket, related_users)

        logger.info(f"{author_id} opened ticket (#{ticket_id}): {title}")
        return OpenResult(
            ticket_id=ticket_id,
            channel_id=channel_id,
            related_users=related_users,
            announced=announced
        )

    async def _announce(self, ticket: Ticket, related_users: List[int]) -> bool:
        """Post the ticket summary into its channel. Failure is only logged."""
        try:
            await self.provisioner.post_message(
                ticket.channel_id,
                format_opening_message(ticket, related_users, self.config.moderator_role_id)
            )
            return True
        except ProvisionError as e:
            logger.warning(f"Could not post summary into channel {ticket.channel_id} "
                           f"for ticket #{ticket.id}: {e}")
            return False

    async def close_ticket(self, actor_id: int, ticket_id: int, is_moderator: bool) -> CloseResult:
        """
        Close a ticket and restrict its channel to moderators.

        Args:
            actor_id: Discord user ID of the moderator closing the ticket
            ticket_id: Ticket identifier
            is_moderator: Whether the actor holds moderator capability

        Returns:
            CloseResult: SUCCESS, ALREADY_CLOSED or NOT_FOUND (also while the
                ticket's open is still attaching its channel)

        Raises:
            UnauthorizedError: Actor is not a moderator; nothing was touched
            ValidationError: Malformed ticket id
            DatabaseError: Store failure
            InconsistentStateError: Ticket closed in the store but has no channel
            ProvisionError: Ticket closed in the store but the channel edit failed
        """
        if not is_moderator:
            raise UnauthorizedError(f"User {actor_id} is not allowed to close tickets")

        ticket_id = _validate_ticket_id(ticket_id)

        # An open still attaching the channel owns the record until it finishes
        if self.is_provisioning(ticket_id):
            logger.warning(f"close: Ticket #{ticket_id} is still being provisioned")
            return CloseResult.NOT_FOUND

        affected = await self.database.close_if_open(ticket_id)
        if affected == 0:
            existing = await self.database.get_ticket(ticket_id)
            if existing is None:
                logger.warning(f"close: Invalid ticket ID {ticket_id}")
                return CloseResult.NOT_FOUND

            logger.info(f"close: Ticket #{ticket_id} was already closed")
            return CloseResult.ALREADY_CLOSED

        ticket = await self.database.get_ticket(ticket_id)
        if ticket is None or ticket.channel_id is None:
            logger.error(f"Ticket #{ticket_id} closed but it has no channel to restrict")
            raise InconsistentStateError(
                f"Ticket #{ticket_id} is closed but its channel was never provisioned",
                ticket_id=ticket_id
            )

        try:
            await self.provisioner.edit_permissions_and_category(
                ticket.channel_id,
                self.config.closed_category_id,
                closed_ticket_overwrites(self.config.moderator_role_id)
            )
        except ProvisionError as e:
            # The store commit stands; the channel has to be fixed by hand
            logger.error(f"Ticket #{ticket_id} closed but channel {ticket.channel_id} was not restricted: {e}")
            raise ProvisionError(
                str(e),
                ticket_id=ticket_id,
                channel_id=ticket.channel_id,
                user_message=f"Ticket #{ticket_id} is closed, but its channel permissions could not be updated. "
                             f"Please fix the channel manually.",
                details=e.details
            ) from e

        logger.info(f"{actor_id} closed ticket #{ticket_id}")
        return CloseResult.SUCCESS

    async def show_ticket(self, requester_id: int, ticket_id: int) -> Ticket:
        """
        Return a ticket to its author.

        Moderators get no special access here, they see tickets through the
        list operations.

        Raises:
            ValidationError: Malformed ticket id
            TicketNotFoundError: Unknown ticket (or one still being provisioned)
            ForbiddenError: Requester is not the author
            InconsistentStateError: The ticket never got a channel
        """
        ticket_id = _validate_ticket_id(ticket_id)

        ticket = None
        if not self.is_provisioning(ticket_id):
            ticket = await self.database.get_ticket(ticket_id)

        if ticket is None:
            logger.warning(f"show: Invalid ticket ID {ticket_id}")
            raise TicketNotFoundError(f"Ticket #{ticket_id} not found", ticket_id=ticket_id)

        if ticket.author != requester_id:
            raise ForbiddenError(f"User {requester_id} is not the author of ticket #{ticket_id}",
                                 ticket_id=ticket_id)

        if ticket.is_orphaned:
            raise InconsistentStateError(f"Ticket #{ticket_id} has no channel", ticket_id=ticket_id)

        return ticket

    async def list_open_tickets(self, is_moderator: bool) -> List[TicketSummary]:
        """Open tickets in ascending id order. Moderators only."""
        return await self._list_tickets(open_only=True, is_moderator=is_moderator)

    async def list_all_tickets(self, is_moderator: bool) -> List[TicketSummary]:
        """All tickets in ascending id order. Moderators only."""
        return await self._list_tickets(open_only=False, is_moderator=is_moderator)

    async def _list_tickets(self, open_only: bool, is_moderator: bool) -> List[TicketSummary]:
        if not is_moderator:
            raise UnauthorizedError("Listing tickets requires the moderator role")

        tickets = await self.database.get_tickets(open_only)
        summaries = []
        for ticket in tickets:
            if self.is_provisioning(ticket.id):
                continue
            if ticket.is_orphaned:
                logger.warning(f"Ticket #{ticket.id} has no channel attached")
            summaries.append(ticket.to_summary())

        return summaries

    async def find_orphaned_tickets(self, is_moderator: bool) -> List[Ticket]:
        """
        Tickets whose record exists but whose channel was never attached.

        These are left behind by a failed or interrupted open and need to be
        re-provisioned by an operator.
        """
        if not is_moderator:
            raise UnauthorizedError("Inspecting orphaned tickets requires the moderator role")

        tickets = await self.database.get_tickets(open_only=False)
        return [t for t in tickets if t.is_orphaned and not self.is_provisioning(t.id)]
