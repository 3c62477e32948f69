"""
SQLite database adapter implementation for the ticket lifecycle bot.
"""
import aiosqlite
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional
from pathlib import Path

from database.adapter import DatabaseAdapter, DatabaseError, ConnectionError
from models.ticket import Ticket


logger = logging.getLogger(__name__)

# channel_id is stored string-encoded; both values read back as "no channel"
_UNSET_CHANNEL_VALUES = ('', '0')


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite implementation of the DatabaseAdapter interface.

    Every operation opens its own connection, runs one statement and commits,
    so each call is atomic on its own and concurrent callers are serialized
    by SQLite's locking.
    """

    def __init__(self, connection_string: str, **kwargs):
        """
        Initialize SQLite adapter.

        Args:
            connection_string: Path to SQLite database file
            **kwargs: Additional configuration (timeout)
        """
        super().__init__(connection_string, **kwargs)
        self.db_path = connection_string
        self.timeout = kwargs.get('timeout', 30.0)
        self._schema_initialized = False
        self._connected = False

    async def connect(self) -> None:
        """
        Check the database is reachable and initialize the schema.

        Raises:
            ConnectionError: If connection cannot be established
        """
        try:
            db_path = Path(self.db_path)
            db_path.parent.mkdir(parents=True, exist_ok=True)

            async with self._connect() as conn:
                await conn.execute("SELECT 1")

            if not self._schema_initialized:
                await self._initialize_schema()
                self._schema_initialized = True

            self._connected = True
            logger.info(f"Connected to SQLite database: {self.db_path}")

        except DatabaseError:
            raise
        except Exception as e:
            logger.error(f"Failed to connect to SQLite database: {e}")
            raise ConnectionError(f"Failed to connect to SQLite database: {e}", operation="connect")

    async def disconnect(self) -> None:
        """Mark the adapter as disconnected; connections are per operation."""
        self._connected = False
        logger.info("Disconnected from SQLite database")

    async def is_connected(self) -> bool:
        """
        Check if database is accessible.

        Returns:
            bool: True if database is accessible, False otherwise
        """
        if not self._connected:
            return False
        try:
            async with self._connect() as conn:
                await conn.execute("SELECT 1")
                return True
        except (aiosqlite.Error, OSError):
            return False

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Open a connection with row access by column name."""
        async with aiosqlite.connect(self.db_path, timeout=self.timeout) as conn:
            conn.row_factory = aiosqlite.Row
            yield conn

    async def _initialize_schema(self) -> None:
        """Create the tickets table if it does not exist."""
        try:
            async with self._connect() as conn:
                await conn.execute("""
                    CREATE TABLE IF NOT EXISTS tickets (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        author TEXT NOT NULL,
                        title TEXT NOT NULL,
                        description TEXT NOT NULL,
                        is_open BOOLEAN NOT NULL DEFAULT 1,
                        channel_id TEXT NOT NULL DEFAULT ''
                    )
                """)

                await conn.execute("""
                    CREATE INDEX IF NOT EXISTS idx_tickets_is_open
                    ON tickets(is_open)
                """)

                await conn.commit()
                logger.info("SQLite schema initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize SQLite schema: {e}")
            raise DatabaseError(f"Failed to initialize schema: {e}", operation="initialize_schema")

    @staticmethod
    def _ticket_from_row(row) -> Ticket:
        """Convert database row to Ticket object."""
        raw_channel = row['channel_id']
        if raw_channel is None or str(raw_channel) in _UNSET_CHANNEL_VALUES:
            channel_id = None
        else:
            channel_id = int(raw_channel)

        return Ticket(
            id=int(row['id']),
            author=int(row['author']),
            title=row['title'],
            description=row['description'],
            is_open=bool(row['is_open']),
            channel_id=channel_id
        )

    async def insert_ticket(self, author: int, title: str, description: str) -> int:
        try:
            async with self._connect() as conn:
                cursor = await conn.execute("""
                    INSERT INTO tickets (author, title, description, is_open, channel_id)
                    VALUES (?, ?, ?, 1, '')
                """, (str(author), title, description))
                await conn.commit()

                ticket_id = cursor.lastrowid
                logger.info(f"Inserted ticket #{ticket_id} in SQLite database")
                return ticket_id

        except Exception as e:
            logger.error(f"Failed to insert ticket '{title}': {e}")
            raise DatabaseError(f"Failed to insert ticket: {e}", operation="insert_ticket")

    async def set_channel_id(self, ticket_id: int, channel_id: int) -> bool:
        try:
            async with self._connect() as conn:
                cursor = await conn.execute("""
                    UPDATE tickets SET channel_id = ? WHERE id = ?
                """, (str(channel_id), ticket_id))
                await conn.commit()

                updated = cursor.rowcount > 0
                if updated:
                    logger.info(f"Set channel {channel_id} on ticket #{ticket_id}")
                return updated

        except Exception as e:
            logger.error(f"Failed to set channel id for ticket #{ticket_id}: {e}")
            raise DatabaseError(f"Failed to set channel id: {e}", operation="set_channel_id",
                                ticket_id=ticket_id)

    async def close_if_open(self, ticket_id: int) -> int:
        try:
            async with self._connect() as conn:
                cursor = await conn.execute("""
                    UPDATE tickets SET is_open = 0 WHERE id = ? AND is_open = 1
                """, (ticket_id,))
                await conn.commit()
                return cursor.rowcount

        except Exception as e:
            logger.error(f"Failed to close ticket #{ticket_id}: {e}")
            raise DatabaseError(f"Failed to close ticket: {e}", operation="close_if_open",
                                ticket_id=ticket_id)

    async def get_ticket(self, ticket_id: int) -> Optional[Ticket]:
        try:
            async with self._connect() as conn:
                cursor = await conn.execute("""
                    SELECT * FROM tickets WHERE id = ?
                """, (ticket_id,))
                row = await cursor.fetchone()

                if row:
                    return self._ticket_from_row(row)
                return None

        except Exception as e:
            logger.error(f"Failed to get ticket #{ticket_id}: {e}")
            raise DatabaseError(f"Failed to retrieve ticket: {e}", operation="get_ticket")

    async def get_tickets(self, open_only: bool = False) -> List[Ticket]:
        try:
            async with self._connect() as conn:
                if open_only:
                    cursor = await conn.execute("""
                        SELECT * FROM tickets
                        WHERE is_open = 1
                        ORDER BY id ASC
                    """)
                else:
                    cursor = await conn.execute("""
                        SELECT * FROM tickets
                        ORDER BY id ASC
                    """)

                rows = await cursor.fetchall()
                return [self._ticket_from_row(row) for row in rows]

        except Exception as e:
            logger.error(f"Failed to list tickets (open_only={open_only}): {e}")
            raise DatabaseError(f"Failed to retrieve tickets: {e}", operation="get_tickets")
