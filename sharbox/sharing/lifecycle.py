"""Read and delete operations on a user's Inbox and Sent registries.

Each operation touches exactly one registry. After delivery the inbox
record and the sender's history record share an id but nothing else:
deleting one never cascades to the other.
"""
import logging
from enum import Enum
from typing import Optional

import aiosqlite

from sharbox.state.database import DatabaseManager
from sharbox.state.models.inbox import InboxRecord
from sharbox.state.models.sent import SentRecord
from sharbox.state.repositories.inbox import InboxRepository
from sharbox.state.repositories.sent import SentRepository
from sharbox.sharing.requests import RequestToken, collect_pages

logger = logging.getLogger(__name__)


class ShareSide(Enum):
    """Which registry an operation targets."""

    INBOX = "inbox"
    SENT = "sent"


class ShareLifecycle:
    """Read/delete toggles over one user's registries."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def mark_read(self, message_id: str) -> bool:
        """Set the inbox read flag. Status and Sent are untouched.

        Returns:
            True if the record exists and is now read.
        """
        try:
            async with self._db.connection() as conn:
                return await InboxRepository(conn).mark_read(message_id)
        except aiosqlite.Error as exc:
            logger.warning("mark_read failed for %s: %s", message_id, exc)
            return False

    async def delete(self, message_id: str, side: ShareSide | str) -> bool:
        """Delete a record from exactly one registry.

        Raises:
            ValueError: If ``side`` is not 'inbox' or 'sent'.
        """
        side = ShareSide(side.lower()) if isinstance(side, str) else side
        try:
            async with self._db.connection() as conn:
                if side == ShareSide.INBOX:
                    deleted = await InboxRepository(conn).delete(message_id)
                else:
                    deleted = await SentRepository(conn).delete(message_id)
        except aiosqlite.Error as exc:
            logger.warning("Delete of %s from %s failed: %s", message_id, side.value, exc)
            return False
        if deleted:
            logger.info("Deleted %s from %s", message_id, side.value)
        return deleted

    async def list_inbox(self, limit: int = 100) -> list[InboxRecord]:
        """List inbox records newest first, or [] if the registry is unavailable."""
        try:
            async with self._db.connection() as conn:
                return await InboxRepository(conn).list_all(limit)
        except aiosqlite.Error as exc:
            logger.warning("Inbox listing failed: %s", exc)
            return []

    async def list_sent(self, limit: int = 100) -> list[SentRecord]:
        """List history records newest first, or [] if the registry is unavailable."""
        try:
            async with self._db.connection() as conn:
                return await SentRepository(conn).list_all(limit)
        except aiosqlite.Error as exc:
            logger.warning("Sent listing failed: %s", exc)
            return []

    async def load_inbox(
        self, token: RequestToken, page_size: int = 50,
    ) -> Optional[list[InboxRecord]]:
        """Read the whole inbox page by page on behalf of a view request.

        Returns:
            Records newest first, or None if ``token`` was superseded
            before the read finished.
        """
        try:
            async with self._db.connection() as conn:
                pages = InboxRepository(conn).iter_pages(
                    page_size, is_cancelled=lambda: token.cancelled,
                )
                return await collect_pages(pages, token)
        except aiosqlite.Error as exc:
            logger.warning("Paged inbox read failed: %s", exc)
            return None if token.cancelled else []
