"""SQLite key/value store for durable client state."""

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiosqlite

_STATE_SCHEMA = """
CREATE TABLE IF NOT EXISTS client_state (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at REAL NOT NULL
);
"""

_SELECT_VALUE = """
SELECT value FROM client_state WHERE key = ?
"""

_UPSERT_VALUE = """
INSERT INTO client_state (key, value, updated_at) VALUES (?, ?, ?)
ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
"""


class AsyncConnectionManager:
    """Manages aiosqlite connections for a single database path.

    Initializes the schema once. For :memory: databases a persistent
    connection is kept, since SQLite in-memory databases are
    connection-scoped.
    """

    def __init__(self, db_path: str, schema: str) -> None:
        self._db_path = db_path
        self._schema = schema
        self._initialized = False
        self._init_lock: asyncio.Lock | None = None
        self._persistent_conn: aiosqlite.Connection | None = None

    def _get_lock(self) -> asyncio.Lock:
        """Get or create the initialization lock (lazy to avoid event loop issues)."""
        if self._init_lock is None:
            self._init_lock = asyncio.Lock()
        return self._init_lock

    @property
    def _is_memory(self) -> bool:
        return self._db_path == ":memory:"

    async def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        async with self._get_lock():
            if self._initialized:
                return
            if self._is_memory:
                self._persistent_conn = await aiosqlite.connect(":memory:")
                await self._persistent_conn.executescript(self._schema)
            else:
                async with aiosqlite.connect(self._db_path) as db:
                    await db.execute("PRAGMA journal_mode=WAL")
                    await db.executescript(self._schema)
            self._initialized = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a connection, closing it afterwards for file databases."""
        await self._ensure_initialized()
        if self._is_memory:
            if self._persistent_conn is None:
                raise RuntimeError("Memory database connection not initialized")
            yield self._persistent_conn
            return
        db = await aiosqlite.connect(self._db_path)
        try:
            yield db
        finally:
            await db.close()

    async def close(self) -> None:
        """Close the persistent connection (for :memory: databases)."""
        if self._persistent_conn is not None:
            await self._persistent_conn.close()
            self._persistent_conn = None
            self._initialized = False


class SQLiteKeyValueStore:
    """SQLite implementation of KeyValueStorePort.

    Keeps the installation guid and metrics session fields in a single
    table so they survive process restarts. Uses WAL mode for file
    databases.

    Example:
        ```python
        store = SQLiteKeyValueStore("~/.cache/myapp/faultline.db")
        client = ReportClient(options, store=store)
        ```
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._manager = AsyncConnectionManager(db_path, _STATE_SCHEMA)

    async def get(self, key: str) -> str | None:
        """Return the stored value, or None when the key is absent."""
        async with self._manager.connection() as db:
            async with db.execute(_SELECT_VALUE, (key,)) as cursor:
                row = await cursor.fetchone()
        return str(row[0]) if row else None

    async def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        async with self._manager.connection() as db:
            await db.execute(_UPSERT_VALUE, (key, value, time.time()))
            await db.commit()

    async def close(self) -> None:
        """Close the persistent connection (for :memory: databases)."""
        await self._manager.close()
