# coincatcher/database/database.py
import asyncio
import json
import logging
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

import asyncpg

from ..config import Config
from ..exceptions import StoreError
from .store import ChangeCallback, Document, DocumentStore, StoreTransaction, T, Unsubscribe

NOTIFY_CHANNEL = "documents_changed"

# Errors PostgreSQL raises when two serializable transactions collide
RETRYABLE_ERRORS = (
    asyncpg.exceptions.SerializationError,
    asyncpg.exceptions.DeadlockDetectedError,
)


class Database:
    """Connection pool and migrations"""

    def __init__(self, dsn: Optional[str] = None):
        self.dsn = dsn or Config.DATABASE_URL
        self.pool: Optional[asyncpg.Pool] = None
        self.logger = logging.getLogger(__name__)

    async def connect(self):
        """Open the pool and apply pending migrations"""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=2,
                max_size=10,
                init=self._init_connection
            )

            await self._run_migrations()

            self.logger.info("Connected to database")
        except Exception as e:
            self.logger.error(f"Database connection failed: {e}")
            raise

    async def close(self):
        """Close the pool"""
        if self.pool:
            await self.pool.close()
            self.logger.info("Database connection closed")

    @staticmethod
    async def _init_connection(conn: asyncpg.Connection):
        await conn.set_type_codec(
            "jsonb",
            encoder=json.dumps,
            decoder=json.loads,
            schema="pg_catalog"
        )

    async def _run_migrations(self):
        """Apply migrations/*.sql that have not run yet"""
        try:
            migrations_path = Path(__file__).parent / "migrations"

            async with self.pool.acquire() as conn:
                await conn.execute("""
                    CREATE TABLE IF NOT EXISTS migrations (
                        id SERIAL PRIMARY KEY,
                        name VARCHAR(255) NOT NULL,
                        applied_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
                    )
                """)

                for migration_file in sorted(migrations_path.glob("*.sql")):
                    migration_name = migration_file.name

                    is_applied = await conn.fetchval(
                        "SELECT COUNT(*) FROM migrations WHERE name = $1",
                        migration_name
                    )

                    if not is_applied:
                        async with conn.transaction():
                            await conn.execute(migration_file.read_text())
                            await conn.execute(
                                "INSERT INTO migrations (name) VALUES ($1)",
                                migration_name
                            )

                        self.logger.info(f"Migration {migration_name} applied")

        except Exception as e:
            self.logger.error(f"Migration failed: {e}")
            raise


class PostgresTransaction(StoreTransaction):
    """Store transaction bound to one connection; reads lock their rows"""

    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        return await self.conn.fetchval("""
            SELECT data FROM documents
            WHERE collection = $1 AND doc_id = $2
            FOR UPDATE
        """, collection, doc_id)

    async def set(self, collection: str, doc_id: str, data: Document, merge: bool = False):
        await _upsert(self.conn, collection, doc_id, data, merge)

    async def delete(self, collection: str, doc_id: str):
        await self.conn.execute("""
            DELETE FROM documents WHERE collection = $1 AND doc_id = $2
        """, collection, doc_id)


async def _upsert(conn, collection: str, doc_id: str, data: Document, merge: bool):
    await conn.execute("""
        INSERT INTO documents (collection, doc_id, data)
        VALUES ($1, $2, $3)
        ON CONFLICT (collection, doc_id)
        DO UPDATE SET
            data = CASE WHEN $4 THEN documents.data || EXCLUDED.data ELSE EXCLUDED.data END,
            updated_at = NOW()
    """, collection, doc_id, data, merge)


class PostgresStore(DocumentStore):
    """Document store over a single JSONB table"""

    def __init__(self, db: Database, max_retries: Optional[int] = None):
        self.db = db
        self.max_retries = max_retries or Config.STORE_MAX_RETRIES
        self.logger = logging.getLogger(__name__)
        self._listener: Optional[asyncpg.Connection] = None
        self._subscribers: dict = {}

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        async with self.db.pool.acquire() as conn:
            return await conn.fetchval("""
                SELECT data FROM documents
                WHERE collection = $1 AND doc_id = $2
            """, collection, doc_id)

    async def set(self, collection: str, doc_id: str, data: Document, merge: bool = False):
        async with self.db.pool.acquire() as conn:
            await _upsert(conn, collection, doc_id, data, merge)

    async def delete(self, collection: str, doc_id: str):
        async with self.db.pool.acquire() as conn:
            await conn.execute("""
                DELETE FROM documents WHERE collection = $1 AND doc_id = $2
            """, collection, doc_id)

    async def query(self, collection: str, where: Optional[Document] = None,
                    order_by: Optional[str] = None, descending: bool = False,
                    limit: Optional[int] = None) -> List[Document]:
        sql = "SELECT data FROM documents WHERE collection = $1 AND data @> $2"
        args = [collection, where or {}]
        if order_by:
            args.append(order_by)
            sql += f" ORDER BY data -> ${len(args)} {'DESC' if descending else 'ASC'}"
        if limit is not None:
            args.append(limit)
            sql += f" LIMIT ${len(args)}"

        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch(sql, *args)
            return [row["data"] for row in rows]

    async def run_transaction(self, fn: Callable[[PostgresTransaction], Awaitable[T]]) -> T:
        for attempt in range(1, self.max_retries + 1):
            try:
                async with self.db.pool.acquire() as conn:
                    async with conn.transaction(isolation="serializable"):
                        return await fn(PostgresTransaction(conn))
            except RETRYABLE_ERRORS as e:
                self.logger.warning(
                    f"Transaction conflict (attempt {attempt}/{self.max_retries}): {e}"
                )
                await asyncio.sleep(0.05 * attempt)
            except asyncpg.PostgresError as e:
                self.logger.error(f"Transaction failed: {e}", exc_info=True)
                raise StoreError() from e
        raise StoreError("The operation could not be completed, please try again.")

    async def subscribe(self, collection: str, callback: ChangeCallback) -> Unsubscribe:
        if self._listener is None:
            self._listener = await asyncpg.connect(self.db.dsn)
            await Database._init_connection(self._listener)
            await self._listener.add_listener(NOTIFY_CHANNEL, self._on_notify)

        self._subscribers.setdefault(collection, []).append(callback)

        async def unsubscribe():
            callbacks = self._subscribers.get(collection, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def _on_notify(self, conn, pid, channel, payload):
        change = json.loads(payload)
        if change["collection"] in self._subscribers:
            asyncio.get_running_loop().create_task(self._dispatch(change))

    async def _dispatch(self, change: dict):
        collection, doc_id = change["collection"], change["doc_id"]
        data = None if change["op"] == "DELETE" else await self.get(collection, doc_id)
        for callback in list(self._subscribers.get(collection, [])):
            try:
                await callback(doc_id, data)
            except Exception:
                self.logger.exception(f"Subscriber for {collection} failed")

    async def close(self):
        if self._listener is not None:
            await self._listener.close()
            self._listener = None
        await self.db.close()
