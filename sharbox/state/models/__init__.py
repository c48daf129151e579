"""State models."""
from sharbox.state.models.envelope import (
    Envelope, Identifiers, ItemSnapshot, PartyProfile, PubInfo, ShareStatus, SupportingData, TagsData,
)
from sharbox.state.models.inbox import InboxRecord
from sharbox.state.models.library import LibraryItem
from sharbox.state.models.mailbox import MailboxEntry
from sharbox.state.models.sent import SentRecord
from sharbox.state.models.task import TaskItem
__all__ = [
    "Envelope", "Identifiers", "ItemSnapshot", "PartyProfile", "PubInfo",
    "ShareStatus", "SupportingData", "TagsData",
    "InboxRecord",
    "LibraryItem",
    "MailboxEntry",
    "SentRecord",
    "TaskItem",
]
