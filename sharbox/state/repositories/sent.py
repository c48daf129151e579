"""Sent repository for the sender's own history."""
import aiosqlite
from datetime import datetime
from typing import Optional

from sharbox.state.database import utc_isoformat
from sharbox.state.models.envelope import ShareStatus
from sharbox.state.models.sent import SentRecord

_MAX_LIST_LIMIT = 500


class SentRepository:
    """Manages sanitized history copies of sent envelopes."""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def insert_or_replace(self, record: SentRecord) -> None:
        """Store a history record, replacing any row with the same id.

        Args:
            record: The sanitized sent record.
        """
        await self._conn.execute(
            "INSERT OR REPLACE INTO sent (message_id, receiver_app_id, "
            "receiver_name, title, payload, sent_at, status) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                record.message_id,
                record.receiver_app_id,
                record.receiver_name,
                record.title,
                record.payload,
                utc_isoformat(record.sent_at),
                record.status.value,
            ),
        )
        await self._conn.commit()

    async def get_by_id(self, message_id: str) -> Optional[SentRecord]:
        cursor = await self._conn.execute(
            "SELECT * FROM sent WHERE message_id = ?", (message_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_record(row) if row else None

    async def list_all(self, limit: int = 100) -> list[SentRecord]:
        """List history records newest first.

        Args:
            limit: Maximum records to return (capped at 500).

        Raises:
            ValueError: If limit is not a positive integer.
        """
        if not isinstance(limit, int) or limit < 1:
            raise ValueError(f"limit must be a positive integer, got {limit!r}")
        cursor = await self._conn.execute(
            "SELECT * FROM sent ORDER BY sent_at DESC, message_id DESC LIMIT ?",
            (min(limit, _MAX_LIST_LIMIT),),
        )
        rows = await cursor.fetchall()
        return [self._row_to_record(r) for r in rows]

    async def delete(self, message_id: str) -> bool:
        """Permanently remove a history record.

        Returns:
            True if a record was deleted.
        """
        cursor = await self._conn.execute(
            "DELETE FROM sent WHERE message_id = ?", (message_id,),
        )
        await self._conn.commit()
        return cursor.rowcount > 0

    @staticmethod
    def _row_to_record(row: aiosqlite.Row) -> SentRecord:
        """Convert a database row to a SentRecord."""
        return SentRecord(
            message_id=row["message_id"],
            receiver_app_id=row["receiver_app_id"],
            receiver_name=row["receiver_name"],
            title=row["title"],
            payload=row["payload"],
            sent_at=datetime.fromisoformat(row["sent_at"]),
            status=ShareStatus(row["status"]),
        )
