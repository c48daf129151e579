"""Turns a received envelope into an independently owned library item, once.

The inbox flip and the library insert run in a single write transaction
on the receiver's registry. The flip is conditional on the row still
being UNCLAIMED at that moment, so of any number of concurrent attempts
exactly one creates an item. Any failure rolls both writes back and leaves
the record UNCLAIMED, so the claim can be retried.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import aiosqlite

from sharbox.state.database import DatabaseManager
from sharbox.state.models.envelope import ShareStatus
from sharbox.state.models.library import LibraryItem
from sharbox.state.repositories.inbox import InboxRepository
from sharbox.state.repositories.library import LibraryRepository
from sharbox.sharing.signals import RefreshSignal

logger = logging.getLogger(__name__)


class ClaimOutcome(Enum):
    """Result of a claim attempt."""

    CLAIMED = "claimed"
    ALREADY_CLAIMED = "already_claimed"
    NOT_FOUND = "not_found"
    FAILED = "failed"  # transient, safe to retry


@dataclass(frozen=True)
class ClaimResult:
    """Outcome of ``ClaimProcessor.claim``. Truthy only when claimed."""

    message_id: str
    outcome: ClaimOutcome
    library_item_id: Optional[str] = None
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.outcome == ClaimOutcome.CLAIMED

    @property
    def retryable(self) -> bool:
        return self.outcome == ClaimOutcome.FAILED


class ClaimProcessor:
    """Claims inbox records into the receiver's library."""

    def __init__(self, db: DatabaseManager, signal: Optional[RefreshSignal] = None) -> None:
        self._db = db
        self._signal = signal

    async def claim(self, message_id: str) -> ClaimResult:
        """Claim a received envelope.

        Returns:
            ClaimResult; ALREADY_CLAIMED and NOT_FOUND have no side effects,
            FAILED means nothing was written and the call may be retried.
        """
        if not message_id:
            raise ValueError("message_id cannot be empty")
        try:
            result = await self._claim(message_id)
        except aiosqlite.Error as exc:
            logger.warning("Claim of %s failed, retryable: %s", message_id, exc)
            return ClaimResult(message_id, ClaimOutcome.FAILED, error=str(exc))
        except ValueError as exc:
            # ValidationError and JSONDecodeError from a corrupt stored payload
            logger.error("Claim of %s failed, stored envelope unreadable: %s", message_id, exc)
            return ClaimResult(message_id, ClaimOutcome.FAILED, error=str(exc))

        if result.outcome == ClaimOutcome.CLAIMED:
            logger.info("Claimed %s as library item %s", message_id, result.library_item_id)
            if self._signal is not None:
                await self._signal.emit("claim")
        elif result.outcome == ClaimOutcome.ALREADY_CLAIMED:
            logger.info("Duplicate claim of %s ignored", message_id)
        return result

    async def _claim(self, message_id: str) -> ClaimResult:
        async with self._db.connection() as conn:
            # Take the write lock before reading so concurrent claims queue here.
            await conn.execute("BEGIN IMMEDIATE")
            try:
                inbox = InboxRepository(conn)
                record = await inbox.get_by_id(message_id)
                if record is None:
                    await conn.rollback()
                    return ClaimResult(message_id, ClaimOutcome.NOT_FOUND)
                if record.status != ShareStatus.UNCLAIMED:
                    await conn.rollback()
                    return ClaimResult(message_id, ClaimOutcome.ALREADY_CLAIMED)

                # Only descriptive content crosses over; identity blocks, message
                # text, timestamp, status and read flag stay with the envelope.
                item = LibraryItem.from_snapshot(record.envelope.snapshot)
                if not await inbox.mark_claimed(message_id, item.id, commit=False):
                    await conn.rollback()
                    return ClaimResult(message_id, ClaimOutcome.ALREADY_CLAIMED)
                await LibraryRepository(conn).insert(item, commit=False)
                await conn.commit()
            except BaseException:
                await conn.rollback()
                raise
            return ClaimResult(message_id, ClaimOutcome.CLAIMED, library_item_id=item.id)
