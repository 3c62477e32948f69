# Database package for database adapters and connection management

from .adapter import (
    DatabaseAdapter,
    DatabaseError,
    ConnectionError
)
from .sqlite_adapter import SQLiteAdapter

__all__ = [
    'DatabaseAdapter',
    'DatabaseError',
    'ConnectionError',
    'SQLiteAdapter'
]
