"""Repositories."""
from sharbox.state.repositories.inbox import InboxRepository
from sharbox.state.repositories.library import LibraryRepository
from sharbox.state.repositories.mailbox import MailboxRepository
from sharbox.state.repositories.sent import SentRepository
from sharbox.state.repositories.tasks import TaskRepository
__all__ = [
    "InboxRepository",
    "LibraryRepository",
    "MailboxRepository",
    "SentRepository",
    "TaskRepository",
]
