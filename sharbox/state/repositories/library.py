"""Library repository for owned items."""
import aiosqlite
import json
from datetime import datetime
from typing import Optional

from sharbox.state.models.envelope import ItemSnapshot
from sharbox.state.models.library import LibraryItem

_MAX_LIST_LIMIT = 500


class LibraryRepository:
    """Manages items in the user's library table."""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def insert(self, item: LibraryItem, commit: bool = True) -> None:
        """Insert a new library item.

        Raises:
            aiosqlite.IntegrityError: If an item with the same id exists.
        """
        await self._conn.execute(
            "INSERT INTO library (id, title, snapshot, is_favorite, "
            "is_bookmarked, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                item.id, item.title, json.dumps(item.snapshot.model_dump(mode="json")),
                int(item.is_favorite), int(item.is_bookmarked),
                item.created_at.isoformat(), item.updated_at.isoformat(),
            ),
        )
        if commit:
            await self._conn.commit()

    async def get_by_id(self, item_id: str) -> Optional[LibraryItem]:
        cursor = await self._conn.execute(
            "SELECT * FROM library WHERE id = ?", (item_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_item(row) if row else None

    async def list_all(self, limit: int = 100) -> list[LibraryItem]:
        """List items newest first."""
        if not isinstance(limit, int) or limit < 1:
            raise ValueError(f"limit must be a positive integer, got {limit!r}")
        cursor = await self._conn.execute(
            "SELECT * FROM library ORDER BY created_at DESC LIMIT ?",
            (min(limit, _MAX_LIST_LIMIT),),
        )
        rows = await cursor.fetchall()
        return [self._row_to_item(r) for r in rows]

    async def count(self) -> int:
        cursor = await self._conn.execute("SELECT COUNT(*) FROM library")
        return (await cursor.fetchone())[0]

    async def delete(self, item_id: str) -> bool:
        cursor = await self._conn.execute(
            "DELETE FROM library WHERE id = ?", (item_id,),
        )
        await self._conn.commit()
        return cursor.rowcount > 0

    @staticmethod
    def _row_to_item(row: aiosqlite.Row) -> LibraryItem:
        """Convert a database row to a LibraryItem."""
        return LibraryItem(
            id=row["id"],
            snapshot=ItemSnapshot.model_validate(json.loads(row["snapshot"])),
            is_favorite=bool(row["is_favorite"]),
            is_bookmarked=bool(row["is_bookmarked"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
