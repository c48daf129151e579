"""Mailbox repository for the shared transport buffer."""
import aiosqlite
from datetime import datetime

from sharbox.state.models.mailbox import MailboxEntry


class MailboxRepository:
    """Manages receiver-addressed buffer entries in the mailbox table."""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append(self, entry: MailboxEntry) -> bool:
        """Add an entry. Re-appending the same message id is a no-op.

        Returns:
            True if a new entry was stored.
        """
        cursor = await self._conn.execute(
            "INSERT OR IGNORE INTO mailbox (message_id, receiver_id, payload, queued_at) "
            "VALUES (?, ?, ?, ?)",
            (entry.message_id, entry.receiver_id, entry.payload, entry.queued_at.isoformat()),
        )
        await self._conn.commit()
        return cursor.rowcount > 0

    async def fetch_for(self, receiver_id: str) -> list[MailboxEntry]:
        """Return every entry addressed to a receiver, oldest first."""
        cursor = await self._conn.execute(
            "SELECT * FROM mailbox WHERE receiver_id = ? ORDER BY queued_at ASC",
            (receiver_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_entry(r) for r in rows]

    async def delete_many(self, receiver_id: str, message_ids: list[str]) -> int:
        """Delete the given entries for a receiver in one statement.

        Entries addressed to anyone else are never touched.
        """
        if not message_ids:
            return 0
        placeholders = ",".join("?" for _ in message_ids)
        cursor = await self._conn.execute(
            f"DELETE FROM mailbox WHERE receiver_id = ? AND message_id IN ({placeholders})",
            [receiver_id, *message_ids],
        )
        await self._conn.commit()
        return cursor.rowcount

    async def count_for(self, receiver_id: str) -> int:
        cursor = await self._conn.execute(
            "SELECT COUNT(*) FROM mailbox WHERE receiver_id = ?", (receiver_id,),
        )
        return (await cursor.fetchone())[0]

    @staticmethod
    def _row_to_entry(row: aiosqlite.Row) -> MailboxEntry:
        return MailboxEntry(
            message_id=row["message_id"],
            receiver_id=row["receiver_id"],
            payload=row["payload"],
            queued_at=datetime.fromisoformat(row["queued_at"]),
        )
