"""Database connection and lifecycle management."""
import aiosqlite
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator

from sharbox.errors import SharboxError

SCHEMA_VERSION = "1.0.0"
_BUSY_TIMEOUT_MS = 5000


class DatabaseError(SharboxError):
    """The registry could not be created or opened."""
    pass


def utc_isoformat(value: datetime) -> str:
    """Fixed-width UTC text for timestamp columns; ORDER BY compares it as a string."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


class DatabaseManager:
    """Manages SQLite database connections and schema initialization.

    One manager serves either a user's durable registry (inbox, sent,
    library, tasks) or the shared mailbox, depending on ``schema``.
    """

    def __init__(self, db_path: Path, schema: str | None = None) -> None:
        self._db_path = Path(db_path)
        self._schema = schema if schema is not None else REGISTRY_SCHEMA
        self._initialized = False

    @property
    def db_path(self) -> Path:
        return self._db_path

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Create tables and indexes, and record the schema version.

        Raises:
            DatabaseError: If the database cannot be created or migrated.
        """
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with self.connection() as conn:
                # WAL lets drains and feed reads proceed while a claim holds the write lock.
                await conn.execute("PRAGMA journal_mode=WAL")
                await conn.executescript(_BASE_SCHEMA + self._schema)
                await conn.execute(
                    "INSERT OR IGNORE INTO schema_versions (version, applied_at) "
                    "VALUES (?, datetime('now'))",
                    (SCHEMA_VERSION,),
                )
                await conn.commit()
        except aiosqlite.Error as exc:
            raise DatabaseError(f"Cannot initialize {self._db_path}: {exc}") from exc
        self._initialized = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield an async database connection."""
        conn = await aiosqlite.connect(self._db_path)
        conn.row_factory = aiosqlite.Row
        try:
            await conn.execute(f"PRAGMA busy_timeout = {_BUSY_TIMEOUT_MS}")
            yield conn
        finally:
            await conn.close()

    async def close(self) -> None:
        """Mark the manager as closed."""
        self._initialized = False


_BASE_SCHEMA = """
CREATE TABLE IF NOT EXISTS schema_versions (version TEXT PRIMARY KEY, applied_at TEXT NOT NULL);
"""

REGISTRY_SCHEMA = """
CREATE TABLE IF NOT EXISTS inbox (
    message_id      TEXT PRIMARY KEY,
    sender_app_id   TEXT,
    sender_name     TEXT,
    title           TEXT NOT NULL,
    payload         TEXT NOT NULL,
    received_at     TEXT NOT NULL,
    status          TEXT NOT NULL DEFAULT 'UNCLAIMED',
    is_read         INTEGER NOT NULL DEFAULT 0,
    read_at         TEXT,
    claimed_at      TEXT,
    library_item_id TEXT,
    CHECK(status IN ('UNCLAIMED', 'CLAIMED'))
);
CREATE INDEX IF NOT EXISTS idx_inbox_unread ON inbox(is_read, received_at);
CREATE INDEX IF NOT EXISTS idx_inbox_received ON inbox(received_at);

CREATE TABLE IF NOT EXISTS sent (
    message_id      TEXT PRIMARY KEY,
    receiver_app_id TEXT NOT NULL,
    receiver_name   TEXT,
    title           TEXT NOT NULL,
    payload         TEXT NOT NULL,
    sent_at         TEXT NOT NULL,
    status          TEXT NOT NULL DEFAULT 'SENT',
    CHECK(status = 'SENT')
);
CREATE INDEX IF NOT EXISTS idx_sent_sent_at ON sent(sent_at);

CREATE TABLE IF NOT EXISTS library (
    id            TEXT PRIMARY KEY,
    title         TEXT NOT NULL,
    snapshot      TEXT NOT NULL,
    is_favorite   INTEGER NOT NULL DEFAULT 0,
    is_bookmarked INTEGER NOT NULL DEFAULT 0,
    created_at    TEXT NOT NULL,
    updated_at    TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_library_created ON library(created_at);

CREATE TABLE IF NOT EXISTS tasks (
    id           TEXT PRIMARY KEY,
    project_id   TEXT,
    title        TEXT NOT NULL,
    description  TEXT NOT NULL DEFAULT '',
    deadline     TEXT,
    is_done      INTEGER NOT NULL DEFAULT 0,
    completed_at TEXT,
    created_at   TEXT,
    updated_at   TEXT
);
CREATE INDEX IF NOT EXISTS idx_tasks_open ON tasks(is_done, deadline);
"""

MAILBOX_SCHEMA = """
CREATE TABLE IF NOT EXISTS mailbox (
    message_id  TEXT PRIMARY KEY,
    receiver_id TEXT NOT NULL,
    payload     TEXT NOT NULL,
    queued_at   TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_mailbox_receiver ON mailbox(receiver_id, queued_at);
"""
