"""Mailbox interface shared by every transport."""
from abc import ABC, abstractmethod

from sharbox.state.models.envelope import Envelope


class Mailbox(ABC):
    """Receiver-addressed transient store.

    The only channel that crosses user storage boundaries. Receiver ids
    are opaque: a sender can address a mailbox but never resolve the
    receiver's own registry through it.

    Every method raises ``TransportUnavailableError`` when the underlying
    medium cannot complete the call.
    """

    @abstractmethod
    async def append_message(self, receiver_id: str, envelope: Envelope) -> None:
        """Buffer an envelope for ``receiver_id``."""

    @abstractmethod
    async def fetch_buffer(self, for_user_id: str) -> list[Envelope]:
        """Return every envelope currently buffered for a user."""

    @abstractmethod
    async def delete_from_buffer(self, receiver_id: str, message_ids: list[str]) -> int:
        """Acknowledge envelopes, removing them from the buffer.

        Returns:
            Number of buffer entries removed.
        """
