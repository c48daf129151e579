"""Per-user facade wiring the sharing components together."""
import asyncio
import logging
from collections.abc import Mapping
from contextlib import AsyncExitStack
from datetime import date, datetime, timezone
from typing import Any, Optional

import aiosqlite

from sharbox.config import SharboxConfig
from sharbox.state.database import MAILBOX_SCHEMA, DatabaseManager
from sharbox.state.models.envelope import PartyProfile
from sharbox.state.models.inbox import InboxRecord
from sharbox.state.models.sent import SentRecord
from sharbox.state.models.task import TaskItem
from sharbox.state.repositories.tasks import TaskRepository
from sharbox.sharing.claim import ClaimProcessor, ClaimResult
from sharbox.sharing.lifecycle import ShareLifecycle, ShareSide
from sharbox.sharing.notifications import NotificationAggregator, NotificationFeed
from sharbox.sharing.profile import ProfileCache, ProfileProvider
from sharbox.sharing.requests import RequestTracker
from sharbox.sharing.signals import RefreshSignal
from sharbox.sharing.submission import ShareSubmitter, SubmitResult
from sharbox.sharing.sync import DrainReport, InboxSyncEngine
from sharbox.transport.base import Mailbox
from sharbox.transport.http import HttpMailbox
from sharbox.transport.sqlite import SqliteMailbox

logger = logging.getLogger(__name__)


def build_mailbox(config: SharboxConfig) -> Mailbox:
    """Create the mailbox transport described by the configuration."""
    transport = config.transport
    if transport.relay_url:
        return HttpMailbox(
            transport.relay_url, config.user_id,
            timeout=transport.timeout, max_retries=transport.max_retries,
            ack_batch_size=transport.ack_batch_size,
        )
    if transport.mailbox_db_path:
        return SqliteMailbox(DatabaseManager(transport.mailbox_db_path, schema=MAILBOX_SCHEMA))
    raise ValueError("No mailbox configured: set relay_url or mailbox_db_path")


class SharboxService:
    """Everything one user needs to send, receive and claim shared items.

    ``start()`` initializes the registry, optionally drains once, and
    launches the periodic drain; ``stop()`` cancels it. The surrounding
    application calls the remaining methods directly.
    """

    def __init__(
        self,
        config: SharboxConfig,
        profile_provider: ProfileProvider,
        mailbox: Optional[Mailbox] = None,
    ) -> None:
        self._config = config
        self._db = DatabaseManager(config.db_path)
        self._mailbox = mailbox or build_mailbox(config)
        self.signal = RefreshSignal()
        self.profiles = ProfileCache(profile_provider)
        self._submitter = ShareSubmitter(self._mailbox, self._db, self.profiles)
        self._sync = InboxSyncEngine(
            self._mailbox, self._db, config.user_id, signal=self.signal,
            failure_threshold=config.sync.failure_threshold,
        )
        self._claims = ClaimProcessor(self._db, signal=self.signal)
        self._lifecycle = ShareLifecycle(self._db)
        self.notifications = NotificationAggregator(self._db, horizon_days=config.notifications.horizon_days)
        self.notifications.bind(self.signal)
        self._inbox_requests = RequestTracker()
        self._stack = AsyncExitStack()
        self._stop_event = asyncio.Event()
        self._periodic: Optional[asyncio.Task] = None

    @property
    def user_id(self) -> str:
        return self._config.user_id

    @property
    def db(self) -> DatabaseManager:
        return self._db

    async def start(self) -> None:
        await self._db.initialize()
        if isinstance(self._mailbox, SqliteMailbox):
            await self._mailbox.initialize()
        if isinstance(self._mailbox, HttpMailbox):
            await self._stack.enter_async_context(self._mailbox)
        logger.info("Sharbox started for %s, registry at %s", self.user_id, self._db.db_path)
        if self._config.sync.sync_on_start:
            await self.drain_inbox()
        self._stop_event.clear()
        self._periodic = asyncio.create_task(
            self._sync.run_periodic(self._config.sync.interval_seconds, self._stop_event, immediate=False)
        )

    async def stop(self) -> None:
        self._stop_event.set()
        if self._periodic is not None:
            await self._periodic
            self._periodic = None
        await self._stack.aclose()
        await self._db.close()
        logger.info("Sharbox stopped for %s", self.user_id)

    async def __aenter__(self) -> "SharboxService":
        await self.start()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()

    async def submit(
        self,
        receiver_id: str,
        receiver_profile: PartyProfile | Mapping[str, Any] | None,
        message: Optional[str],
        source_item: Any,
        receiver_contacts: Optional[Mapping[str, Optional[str]]] = None,
    ) -> SubmitResult:
        return await self._submitter.submit(
            receiver_id, receiver_profile, message, source_item, receiver_contacts,
        )

    async def drain_inbox(self) -> DrainReport:
        """Run one drain cycle and retry any pending history writes."""
        report = await self._sync.drain_inbox()
        if self._submitter.pending_history:
            await self._submitter.flush_history()
        return report

    async def claim(self, message_id: str) -> ClaimResult:
        return await self._claims.claim(message_id)

    async def mark_read(self, message_id: str) -> bool:
        updated = await self._lifecycle.mark_read(message_id)
        if updated:
            await self.signal.emit("read")
        return updated

    async def delete(self, message_id: str, side: ShareSide | str) -> bool:
        deleted = await self._lifecycle.delete(message_id, side)
        if deleted:
            await self.signal.emit("delete")
        return deleted

    async def get_feed(self, today: Optional[date] = None) -> NotificationFeed:
        return await self.notifications.get_feed(today)

    async def list_inbox(self, limit: int = 100) -> list[InboxRecord]:
        return await self._lifecycle.list_inbox(limit)

    async def list_sent(self, limit: int = 100) -> list[SentRecord]:
        return await self._lifecycle.list_sent(limit)

    async def open_inbox(self, page_size: int = 50) -> Optional[list[InboxRecord]]:
        """Drain, then read the full inbox for a view.

        Returns None when a newer ``open_inbox`` call superseded this one.
        """
        token = self._inbox_requests.begin()
        await self.drain_inbox()
        if token.cancelled:
            return None
        return await self._lifecycle.load_inbox(token, page_size)

    async def add_task(self, task: TaskItem) -> bool:
        now = datetime.now(timezone.utc)
        stamped = TaskItem(
            id=task.id, title=task.title, deadline=task.deadline, is_done=task.is_done,
            project_id=task.project_id, description=task.description,
            completed_at=task.completed_at, created_at=task.created_at or now, updated_at=now,
        )
        try:
            async with self._db.connection() as conn:
                await TaskRepository(conn).upsert(stamped)
        except aiosqlite.Error as exc:
            logger.warning("Task save failed for %s: %s", task.id, exc)
            return False
        await self.signal.emit("task")
        return True

    async def complete_task(self, task_id: str) -> bool:
        try:
            async with self._db.connection() as conn:
                done = await TaskRepository(conn).mark_done(task_id)
        except aiosqlite.Error as exc:
            logger.warning("Task completion failed for %s: %s", task_id, exc)
            return False
        if done:
            await self.signal.emit("task")
        return done

    def update_profile(self, profile: PartyProfile) -> None:
        """Apply a local profile edit to future submissions."""
        self.profiles.update(profile)

    def invalidate_profile(self) -> None:
        """Force the next submission to reload the profile."""
        self.profiles.invalidate()
