"""Sent history models."""
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sharbox.state.models.envelope import Envelope, ShareStatus

_FORBIDDEN_PAYLOAD_KEYS = ("sender", "is_read")


@dataclass(frozen=True)
class SentRecord:
    """The sender's own history copy of a delivered envelope.

    Never carries sender identity or a read flag. Receiver identity is kept
    so the sender can recall whom they addressed.

    Attributes:
        message_id: Envelope id, shared with the receiver's inbox record.
        receiver_app_id: Opaque app id the envelope was addressed to.
        receiver_name: Display name of the receiver.
        title: Title of the shared item.
        payload: The sanitized envelope in wire format (JSON).
        sent_at: Envelope creation timestamp.
        status: Always SENT.
    """

    message_id: str
    receiver_app_id: str
    title: str
    payload: str
    sent_at: datetime
    receiver_name: Optional[str] = None
    status: ShareStatus = ShareStatus.SENT

    def __post_init__(self) -> None:
        """Validate required fields and the sanitized payload."""
        if not self.message_id:
            raise ValueError("message_id cannot be empty")
        if not self.receiver_app_id:
            raise ValueError("receiver_app_id cannot be empty")
        if self.status != ShareStatus.SENT:
            raise ValueError("sent records must have SENT status")
        data = json.loads(self.payload)
        for key in _FORBIDDEN_PAYLOAD_KEYS:
            if data.get(key) is not None:
                raise ValueError(f"sent payload must not carry '{key}'")

    @classmethod
    def from_envelope(cls, envelope: Envelope, receiver_app_id: str) -> "SentRecord":
        """Build a sanitized history record from an outgoing envelope."""
        projected = envelope.to_sent_projection()
        return cls(
            message_id=projected.id,
            receiver_app_id=receiver_app_id,
            receiver_name=projected.receiver.name,
            title=projected.snapshot.title,
            payload=json.dumps(projected.to_wire_format()),
            sent_at=projected.timestamp,
        )

    @property
    def envelope(self) -> Envelope:
        return Envelope.from_wire(json.loads(self.payload))
