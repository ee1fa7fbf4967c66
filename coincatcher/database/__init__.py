"""Document store backends"""
from typing import Optional

from ..config import Config
from .store import DocumentStore, StoreTransaction
from .memory import MemoryStore
from .database import Database, PostgresStore


async def open_store(url: Optional[str] = None) -> DocumentStore:
    """Connect the store named by DATABASE_URL (``memory://`` or a PostgreSQL DSN)"""
    url = url or Config.DATABASE_URL
    if url.startswith("memory://"):
        return MemoryStore()

    db = Database(url)
    await db.connect()
    return PostgresStore(db)


__all__ = [
    "DocumentStore",
    "StoreTransaction",
    "MemoryStore",
    "Database",
    "PostgresStore",
    "open_store",
]
