"""Mailbox buffer entry model."""
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class MailboxEntry:
    """A transient copy of an envelope waiting to be drained by its receiver."""

    message_id: str
    receiver_id: str
    payload: str
    queued_at: datetime

    def __post_init__(self) -> None:
        if not self.message_id:
            raise ValueError("message_id cannot be empty")
        if not self.receiver_id:
            raise ValueError("receiver_id cannot be empty")
