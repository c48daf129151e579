"""Inbox repository for received envelopes."""
import aiosqlite
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, Optional

from sharbox.state.database import utc_isoformat
from sharbox.state.models.envelope import ShareStatus
from sharbox.state.models.inbox import InboxRecord

_MAX_LIST_LIMIT = 500


class InboxRepository:
    """Manages received envelopes in the inbox table.

    Upserts are idempotent: re-delivering an envelope refreshes its
    content columns but never touches receiver-side state (status, read
    flag, claim bookkeeping).
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def upsert(self, record: InboxRecord) -> bool:
        """Insert a record, or refresh its content if it already exists.

        Returns:
            True if a new row was created, False if an existing row was
            refreshed.
        """
        existed = await self._exists(record.message_id)
        await self._conn.execute(
            "INSERT INTO inbox (message_id, sender_app_id, sender_name, "
            "title, payload, received_at, status, is_read) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(message_id) DO UPDATE SET "
            "sender_app_id = excluded.sender_app_id, "
            "sender_name = excluded.sender_name, "
            "title = excluded.title, payload = excluded.payload, "
            "received_at = excluded.received_at",
            (
                record.message_id, record.sender_app_id, record.sender_name,
                record.title, record.payload, utc_isoformat(record.received_at),
                record.status.value, int(record.is_read),
            ),
        )
        await self._conn.commit()
        return not existed

    async def get_by_id(self, message_id: str) -> Optional[InboxRecord]:
        """Retrieve a record by its message ID."""
        cursor = await self._conn.execute(
            "SELECT * FROM inbox WHERE message_id = ?", (message_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_record(row) if row else None

    async def list_all(self, limit: int = 100) -> list[InboxRecord]:
        """List records newest first."""
        if not isinstance(limit, int) or limit < 1:
            raise ValueError(f"limit must be a positive integer, got {limit!r}")
        cursor = await self._conn.execute(
            "SELECT * FROM inbox ORDER BY received_at DESC, message_id DESC LIMIT ?",
            (min(limit, _MAX_LIST_LIMIT),),
        )
        rows = await cursor.fetchall()
        return [self._row_to_record(r) for r in rows]

    async def list_unread(self) -> list[InboxRecord]:
        """List every unread record, newest first."""
        cursor = await self._conn.execute(
            "SELECT * FROM inbox WHERE is_read = 0 "
            "ORDER BY received_at DESC, message_id DESC",
        )
        rows = await cursor.fetchall()
        return [self._row_to_record(r) for r in rows]

    async def iter_pages(
        self,
        page_size: int = 50,
        is_cancelled: Optional[Callable[[], bool]] = None,
    ) -> AsyncIterator[list[InboxRecord]]:
        """Yield records newest first, one page at a time.

        Uses keyset pagination on (received_at, message_id). When
        ``is_cancelled`` returns True the iteration stops before the next
        page is read.
        """
        if not isinstance(page_size, int) or page_size < 1:
            raise ValueError(f"page_size must be a positive integer, got {page_size!r}")
        capped = min(page_size, _MAX_LIST_LIMIT)
        cursor_key: Optional[tuple[str, str]] = None
        while True:
            if is_cancelled is not None and is_cancelled():
                return
            if cursor_key is None:
                cursor = await self._conn.execute(
                    "SELECT * FROM inbox ORDER BY received_at DESC, message_id DESC LIMIT ?",
                    (capped,),
                )
            else:
                cursor = await self._conn.execute(
                    "SELECT * FROM inbox WHERE (received_at, message_id) < (?, ?) "
                    "ORDER BY received_at DESC, message_id DESC LIMIT ?",
                    (*cursor_key, capped),
                )
            rows = await cursor.fetchall()
            if not rows:
                return
            last = rows[-1]
            cursor_key = (last["received_at"], last["message_id"])
            yield [self._row_to_record(r) for r in rows]
            if len(rows) < capped:
                return

    async def mark_read(self, message_id: str) -> bool:
        """Set the read flag. Status is left untouched.

        Returns:
            True if the record exists (idempotent for already-read records).
        """
        now = datetime.now(timezone.utc).isoformat()
        cursor = await self._conn.execute(
            "UPDATE inbox SET is_read = 1, read_at = COALESCE(read_at, ?) "
            "WHERE message_id = ?",
            (now, message_id),
        )
        await self._conn.commit()
        return cursor.rowcount > 0

    async def mark_claimed(
        self, message_id: str, library_item_id: str, commit: bool = True,
    ) -> bool:
        """Flip UNCLAIMED to CLAIMED, only if the row is still unclaimed.

        Returns:
            True if this call performed the transition.
        """
        now = datetime.now(timezone.utc).isoformat()
        cursor = await self._conn.execute(
            "UPDATE inbox SET status = ?, claimed_at = ?, library_item_id = ? "
            "WHERE message_id = ? AND status = ?",
            (ShareStatus.CLAIMED.value, now, library_item_id,
             message_id, ShareStatus.UNCLAIMED.value),
        )
        if commit:
            await self._conn.commit()
        return cursor.rowcount > 0

    async def delete(self, message_id: str) -> bool:
        """Permanently remove a record."""
        cursor = await self._conn.execute(
            "DELETE FROM inbox WHERE message_id = ?", (message_id,),
        )
        await self._conn.commit()
        return cursor.rowcount > 0

    async def count_by_status(self) -> dict[str, int]:
        """Count records grouped by status, plus 'unread' and 'total'."""
        cursor = await self._conn.execute(
            "SELECT status, COUNT(*) FROM inbox GROUP BY status",
        )
        rows = await cursor.fetchall()
        counts: dict[str, int] = {
            ShareStatus.UNCLAIMED.value: 0, ShareStatus.CLAIMED.value: 0,
        }
        for row in rows:
            if row[0] in counts:
                counts[row[0]] = row[1]
        counts["total"] = sum(counts.values())
        cursor = await self._conn.execute("SELECT COUNT(*) FROM inbox WHERE is_read = 0")
        counts["unread"] = (await cursor.fetchone())[0]
        return counts

    async def _exists(self, message_id: str) -> bool:
        cursor = await self._conn.execute(
            "SELECT 1 FROM inbox WHERE message_id = ?", (message_id,),
        )
        return await cursor.fetchone() is not None

    @staticmethod
    def _row_to_record(row: aiosqlite.Row) -> InboxRecord:
        """Convert a database row to an InboxRecord."""
        return InboxRecord(
            message_id=row["message_id"],
            sender_app_id=row["sender_app_id"],
            sender_name=row["sender_name"],
            title=row["title"],
            payload=row["payload"],
            received_at=datetime.fromisoformat(row["received_at"]),
            status=ShareStatus(row["status"]),
            is_read=bool(row["is_read"]),
            read_at=(datetime.fromisoformat(row["read_at"])
                     if row["read_at"] else None),
            claimed_at=(datetime.fromisoformat(row["claimed_at"])
                        if row["claimed_at"] else None),
            library_item_id=row["library_item_id"],
        )
