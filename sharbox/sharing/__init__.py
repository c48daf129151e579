"""Cross-user sharing: submission, drain, claim, lifecycle and notifications."""
from sharbox.sharing.claim import ClaimOutcome, ClaimProcessor, ClaimResult
from sharbox.sharing.lifecycle import ShareLifecycle, ShareSide
from sharbox.sharing.notifications import (
    NotificationAggregator, NotificationFeed, TaskAlert, UrgencyTier, classify_task, urgency_label,
)
from sharbox.sharing.profile import ProfileCache
from sharbox.sharing.requests import RequestToken, RequestTracker, collect_pages
from sharbox.sharing.signals import RefreshSignal
from sharbox.sharing.submission import ShareSubmitter, SubmitResult
from sharbox.sharing.sync import DrainReport, InboxSyncEngine
__all__ = [
    "ClaimOutcome", "ClaimProcessor", "ClaimResult",
    "ShareLifecycle", "ShareSide",
    "NotificationAggregator", "NotificationFeed", "TaskAlert", "UrgencyTier", "classify_task", "urgency_label",
    "ProfileCache",
    "RequestToken", "RequestTracker", "collect_pages",
    "RefreshSignal",
    "ShareSubmitter", "SubmitResult",
    "DrainReport", "InboxSyncEngine",
]
