"""State management module."""
from sharbox.state.database import DatabaseManager, DatabaseError, MAILBOX_SCHEMA, REGISTRY_SCHEMA
from sharbox.state.models import (
    Envelope, InboxRecord, ItemSnapshot, LibraryItem, MailboxEntry, PartyProfile, SentRecord, ShareStatus, TaskItem,
)
from sharbox.state.repositories import (
    InboxRepository, LibraryRepository, MailboxRepository, SentRepository, TaskRepository,
)
__all__ = ["DatabaseManager", "DatabaseError", "MAILBOX_SCHEMA", "REGISTRY_SCHEMA",
           "Envelope", "InboxRecord", "ItemSnapshot", "LibraryItem", "MailboxEntry", "PartyProfile",
           "SentRecord", "ShareStatus", "TaskItem",
           "InboxRepository", "LibraryRepository", "MailboxRepository", "SentRepository", "TaskRepository"]
