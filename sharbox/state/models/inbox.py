"""Inbox record models."""
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sharbox.state.models.envelope import Envelope, ShareStatus


@dataclass(frozen=True)
class InboxRecord:
    """A received envelope persisted in the receiver's own registry.

    Attributes:
        message_id: Envelope id; primary key of the inbox.
        sender_app_id: Opaque app id of the sender, if known.
        sender_name: Display name of the sender.
        title: Title of the shared item, denormalised for listings.
        payload: The envelope in wire format (JSON).
        received_at: Envelope creation timestamp.
        status: UNCLAIMED or CLAIMED.
        is_read: Whether the receiver has opened the message.
        read_at: When the message was marked as read.
        claimed_at: When the message was claimed.
        library_item_id: Library entity created by the claim.
    """

    message_id: str
    title: str
    payload: str
    received_at: datetime
    status: ShareStatus = ShareStatus.UNCLAIMED
    is_read: bool = False
    sender_app_id: Optional[str] = None
    sender_name: Optional[str] = None
    read_at: Optional[datetime] = None
    claimed_at: Optional[datetime] = None
    library_item_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate required fields."""
        if not self.message_id:
            raise ValueError("message_id cannot be empty")
        if not self.payload:
            raise ValueError("payload cannot be empty")
        if self.status == ShareStatus.SENT:
            raise ValueError("inbox records cannot carry SENT status")

    @classmethod
    def from_envelope(cls, envelope: Envelope) -> "InboxRecord":
        """Build a fresh, unread, unclaimed inbox record."""
        projected = envelope.to_inbox_projection()
        return cls(
            message_id=projected.id,
            title=projected.snapshot.title,
            payload=json.dumps(projected.to_wire_format()),
            received_at=projected.timestamp,
            sender_app_id=projected.sender_app_id,
            sender_name=projected.sender.name if projected.sender else None,
        )

    @property
    def envelope(self) -> Envelope:
        """Decode the stored envelope, reflecting the record's own state."""
        env = Envelope.from_wire(json.loads(self.payload))
        return env.model_copy(update={"status": self.status, "is_read": self.is_read})
