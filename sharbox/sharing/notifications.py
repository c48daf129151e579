"""Notification feed: unread inbox records plus deadline-bound tasks.

The feed is a read-only projection recomputed per request. Each source
degrades to an empty list on failure so one unavailable registry never
blanks the whole feed.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Callable, Optional

import aiosqlite

from sharbox.state.database import DatabaseManager
from sharbox.state.models.inbox import InboxRecord
from sharbox.state.models.task import TaskItem
from sharbox.state.repositories.inbox import InboxRepository
from sharbox.state.repositories.tasks import TaskRepository
from sharbox.sharing.requests import RequestTracker
from sharbox.sharing.signals import RefreshSignal

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = 3


class UrgencyTier(Enum):
    """How pressing a task's deadline is relative to today."""

    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    NEAR_TERM = "near_term"


@dataclass(frozen=True)
class TaskAlert:
    task: TaskItem
    tier: UrgencyTier
    days_left: int


@dataclass(frozen=True)
class NotificationFeed:
    """Aggregated alerts at one point in time."""

    inbox_alerts: tuple[InboxRecord, ...] = ()
    task_alerts: tuple[TaskAlert, ...] = ()
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def count(self) -> int:
        return len(self.inbox_alerts) + len(self.task_alerts)


def classify_task(task: TaskItem, today: date, horizon_days: int) -> Optional[UrgencyTier]:
    """Return the task's urgency tier, or None if it does not belong in the feed."""
    if task.is_done:
        return None
    days = task.days_left(today)
    if days is None:
        return None
    if days < 0:
        return UrgencyTier.OVERDUE
    if days == 0:
        return UrgencyTier.DUE_TODAY
    if days <= horizon_days:
        return UrgencyTier.NEAR_TERM
    return None


def urgency_label(alert: TaskAlert) -> str:
    """Short display label for a task alert."""
    match alert.tier:
        case UrgencyTier.OVERDUE:
            return "Overdue"
        case UrgencyTier.DUE_TODAY:
            return "Due Today"
        case UrgencyTier.NEAR_TERM:
            return f"{alert.days_left} day{'s' if alert.days_left != 1 else ''} left"


class NotificationAggregator:
    """Builds the notification feed from the inbox and task registries."""

    def __init__(
        self,
        db: DatabaseManager,
        horizon_days: int = DEFAULT_HORIZON_DAYS,
        clock: Optional[Callable[[], date]] = None,
        task_db: Optional[DatabaseManager] = None,
    ) -> None:
        if horizon_days < 0:
            raise ValueError("horizon_days must be >= 0")
        self._db = db
        self._task_db = task_db or db
        self._horizon_days = horizon_days
        self._clock = clock or date.today
        self._requests = RequestTracker()
        self._latest: Optional[NotificationFeed] = None

    @property
    def latest(self) -> Optional[NotificationFeed]:
        """The most recent feed produced by ``refresh()``."""
        return self._latest

    def bind(self, signal: RefreshSignal) -> None:
        """Recompute the feed whenever the signal fires."""
        signal.add_listener(self._on_refresh)

    async def get_feed(self, today: Optional[date] = None) -> NotificationFeed:
        """Compute the feed. Pure read; never raises for store failures."""
        today = today or self._clock()
        inbox_alerts = await self._unread_inbox()
        task_alerts = await self._task_alerts(today)
        return NotificationFeed(inbox_alerts=tuple(inbox_alerts), task_alerts=tuple(task_alerts))

    async def refresh(self) -> Optional[NotificationFeed]:
        """Recompute and store the feed unless a newer refresh superseded it.

        Returns:
            The new feed, or None when the result was discarded.
        """
        token = self._requests.begin()
        feed = await self.get_feed()
        if token.cancelled:
            logger.debug("Discarding superseded feed refresh %d", token.generation)
            return None
        self._latest = feed
        return feed

    async def _on_refresh(self, reason: str) -> None:
        logger.debug("Refreshing notification feed after %s", reason)
        await self.refresh()

    async def _unread_inbox(self) -> list[InboxRecord]:
        try:
            async with self._db.connection() as conn:
                return await InboxRepository(conn).list_unread()
        except aiosqlite.Error as exc:
            logger.warning("Inbox unavailable for notifications: %s", exc)
            return []

    async def _task_alerts(self, today: date) -> list[TaskAlert]:
        try:
            async with self._task_db.connection() as conn:
                tasks = await TaskRepository(conn).list_open()
        except aiosqlite.Error as exc:
            logger.warning("Tasks unavailable for notifications: %s", exc)
            return []
        alerts: list[TaskAlert] = []
        for task in tasks:
            tier = classify_task(task, today, self._horizon_days)
            if tier is not None:
                alerts.append(TaskAlert(task=task, tier=tier, days_left=task.days_left(today)))
        alerts.sort(key=lambda a: (a.task.deadline, a.task.id))
        return alerts
