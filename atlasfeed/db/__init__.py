"""Storage backends for AtlasFeed."""

from .connection import get_connection, get_connection_pool, open_async_pool
from .init import init_database, validate_connection
from .memory import MemoryStore
from .postgres import PostgresStore
from .store import ItemQuery, Store

__all__ = [
    "ItemQuery",
    "MemoryStore",
    "PostgresStore",
    "Store",
    "get_connection",
    "get_connection_pool",
    "init_database",
    "open_async_pool",
    "validate_connection",
]
