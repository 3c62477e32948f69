"""
Abstract database adapter interface for the ticket lifecycle bot.

Every method is a single statement at the storage layer. The ticket manager
never assumes a transaction spans two calls.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from errors.exceptions import DatabaseError, ConnectionError
from models.ticket import Ticket


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    This interface defines the contract that all database adapters must implement
    to provide ticket storage and connection management.
    """

    def __init__(self, connection_string: str, **kwargs):
        """
        Initialize the database adapter.

        Args:
            connection_string: Database connection string
            **kwargs: Additional configuration parameters
        """
        self.connection_string = connection_string
        self.config = kwargs

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish connection to the database and create the schema if needed.

        Raises:
            ConnectionError: If connection cannot be established
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """
        Close the database connection and cleanup resources.
        """
        pass

    @abstractmethod
    async def is_connected(self) -> bool:
        """
        Check if the database connection is active.

        Returns:
            bool: True if connected, False otherwise
        """
        pass

    @abstractmethod
    async def insert_ticket(self, author: int, title: str, description: str) -> int:
        """
        Insert a new open ticket without a channel.

        Args:
            author: Discord user ID of the creator
            title: Ticket title
            description: Ticket description

        Returns:
            int: The store-assigned ticket id

        Raises:
            DatabaseError: If the insert fails
        """
        pass

    @abstractmethod
    async def set_channel_id(self, ticket_id: int, channel_id: int) -> bool:
        """
        Attach the provisioned channel to a ticket.

        Args:
            ticket_id: Ticket identifier
            channel_id: Discord channel ID

        Returns:
            bool: True if a row was updated, False if the ticket does not exist

        Raises:
            DatabaseError: If the update fails
        """
        pass

    @abstractmethod
    async def close_if_open(self, ticket_id: int) -> int:
        """
        Flip ``is_open`` to false only where it is currently true.

        Args:
            ticket_id: Ticket identifier

        Returns:
            int: Number of affected rows (0 for unknown or already closed tickets)

        Raises:
            DatabaseError: If the update fails
        """
        pass

    @abstractmethod
    async def get_ticket(self, ticket_id: int) -> Optional[Ticket]:
        """
        Retrieve a ticket by its id, open or closed.

        Args:
            ticket_id: Ticket identifier

        Returns:
            Optional[Ticket]: Ticket object if found, None otherwise

        Raises:
            DatabaseError: If retrieval fails
        """
        pass

    @abstractmethod
    async def get_tickets(self, open_only: bool = False) -> List[Ticket]:
        """
        Retrieve tickets in ascending id order.

        Args:
            open_only: Only return tickets that are still open

        Returns:
            List[Ticket]: Matching tickets

        Raises:
            DatabaseError: If retrieval fails
        """
        pass

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.disconnect()
