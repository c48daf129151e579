"""Pull-based drain of the mailbox into the durable inbox.

One drain cycle is fetch -> per-entry idempotent upsert -> one batched
acknowledgment of exactly the entries this cycle persisted. Entries that
failed to persist stay in the mailbox and are retried next cycle. Cycles
may overlap: the upsert is idempotent and each cycle only acknowledges its
own successes, so re-processing a not-yet-deleted entry is harmless.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import aiosqlite

from sharbox.errors import TransportUnavailableError
from sharbox.state.database import DatabaseManager
from sharbox.state.models.inbox import InboxRecord
from sharbox.state.repositories.inbox import InboxRepository
from sharbox.sharing.signals import RefreshSignal
from sharbox.transport.base import Mailbox

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_THRESHOLD = 3


@dataclass(frozen=True)
class DrainReport:
    """Outcome of one drain cycle.

    Attributes:
        fetched: Number of buffer entries read.
        migrated: Ids persisted to the inbox this cycle.
        failed: Ids that could not be persisted (left in the mailbox).
        acknowledged: Buffer entries deleted after persistence.
        new_records: Inbox rows created (as opposed to refreshed).
        transport_error: Set when the fetch or acknowledgment failed.
    """

    fetched: int = 0
    migrated: tuple[str, ...] = ()
    failed: tuple[str, ...] = ()
    acknowledged: int = 0
    new_records: int = 0
    transport_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.transport_error is None and not self.failed

    @property
    def partial(self) -> bool:
        """Some entries persisted while others did not."""
        return bool(self.migrated) and bool(self.failed)


class InboxSyncEngine:
    """Drains one user's mailbox into their inbox registry."""

    def __init__(
        self,
        mailbox: Mailbox,
        db: DatabaseManager,
        user_id: str,
        signal: Optional[RefreshSignal] = None,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
    ) -> None:
        if not user_id:
            raise ValueError("user_id cannot be empty")
        self._mailbox = mailbox
        self._db = db
        self._user_id = user_id
        self._signal = signal
        self._failure_threshold = max(1, failure_threshold)
        self._consecutive_failures = 0

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    async def drain_inbox(self) -> DrainReport:
        """Run one drain cycle. Never raises for store or transport failures."""
        try:
            envelopes = await self._mailbox.fetch_buffer(self._user_id)
        except TransportUnavailableError as exc:
            report = DrainReport(transport_error=str(exc))
            self._record_outcome(report)
            return report

        migrated: list[str] = []
        failed: list[str] = []
        new_records = 0
        try:
            async with self._db.connection() as conn:
                repo = InboxRepository(conn)
                for envelope in envelopes:
                    try:
                        created = await repo.upsert(InboxRecord.from_envelope(envelope))
                    except (aiosqlite.Error, ValueError) as exc:
                        logger.warning("Inbox upsert failed for %s: %s", envelope.id, exc)
                        failed.append(envelope.id)
                        continue
                    migrated.append(envelope.id)
                    new_records += int(created)
        except aiosqlite.Error as exc:
            logger.warning("Inbox registry unavailable during drain: %s", exc)
            done = set(migrated) | set(failed)
            failed.extend(e.id for e in envelopes if e.id not in done)

        acknowledged = 0
        transport_error = None
        if migrated:
            try:
                acknowledged = await self._mailbox.delete_from_buffer(self._user_id, migrated)
            except TransportUnavailableError as exc:
                # Entries stay buffered; the next cycle re-upserts them harmlessly.
                transport_error = str(exc)

        report = DrainReport(
            fetched=len(envelopes), migrated=tuple(migrated), failed=tuple(failed),
            acknowledged=acknowledged, new_records=new_records,
            transport_error=transport_error,
        )
        self._record_outcome(report)
        if new_records and self._signal is not None:
            await self._signal.emit("inbox-sync")
        return report

    async def run_periodic(
        self, interval: float, stop_event: asyncio.Event, immediate: bool = True,
    ) -> None:
        """Drain every ``interval`` seconds until ``stop_event`` is set."""
        if not immediate:
            if await self._sleep(interval, stop_event):
                return
        while not stop_event.is_set():
            await self.drain_inbox()
            if await self._sleep(interval, stop_event):
                return

    @staticmethod
    async def _sleep(interval: float, stop_event: asyncio.Event) -> bool:
        """Wait for the interval; True if stopped meanwhile."""
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            return False
        return True

    def _record_outcome(self, report: DrainReport) -> None:
        if report.ok:
            if report.migrated:
                logger.info(
                    "Drained %d envelope(s) for %s (%d new)",
                    len(report.migrated), self._user_id, report.new_records,
                )
            self._consecutive_failures = 0
            return
        self._consecutive_failures += 1
        if self._consecutive_failures >= self._failure_threshold:
            logger.warning(
                "Inbox drain failing for %d consecutive cycles: error=%s failed=%d",
                self._consecutive_failures, report.transport_error, len(report.failed),
            )
        else:
            logger.debug("Inbox drain incomplete, will retry: %s", report)
