"""Sender side: build an envelope, hand it to the mailbox, record history.

Delivery and history are two separate writes with no transaction across
them. Transport success decides the outcome; a failed history write after
delivery leaves an inconsistent history window that is logged, queued for
retry via ``flush_history()``, and never rolls back the delivery.
"""
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

import aiosqlite

from sharbox.errors import TransportUnavailableError
from sharbox.state.database import DatabaseManager
from sharbox.state.models.envelope import Envelope, ItemSnapshot, PartyProfile
from sharbox.state.models.sent import SentRecord
from sharbox.state.repositories.sent import SentRepository
from sharbox.sharing.profile import ProfileCache
from sharbox.transport.base import Mailbox

logger = logging.getLogger(__name__)

_CONTACT_FIELDS = ("email", "phone", "social_media")


@dataclass(frozen=True)
class SubmitResult:
    """Outcome of a submission. Truthy iff the mailbox accepted the envelope."""

    delivered: bool
    message_id: Optional[str] = None
    history_saved: bool = False
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.delivered


def build_receiver_profile(
    receiver_id: str,
    receiver_profile: PartyProfile | Mapping[str, Any] | None,
    receiver_contacts: Optional[Mapping[str, Optional[str]]] = None,
) -> PartyProfile:
    """Merge the caller-supplied display profile and contact fields."""
    if isinstance(receiver_profile, PartyProfile):
        data = receiver_profile.model_dump()
    else:
        data = dict(receiver_profile or {})
    for key in _CONTACT_FIELDS:
        value = (receiver_contacts or {}).get(key)
        if value:
            data[key] = value
    data["unique_app_id"] = receiver_id
    return PartyProfile.model_validate(data)


def _origin_id(source_item: Any) -> Optional[str]:
    if isinstance(source_item, Mapping):
        value = source_item.get("id")
    else:
        value = getattr(source_item, "id", None)
    return str(value) if value else None


class ShareSubmitter:
    """Submits envelopes on behalf of the current user."""

    def __init__(
        self, mailbox: Mailbox, db: DatabaseManager, profile_cache: ProfileCache,
    ) -> None:
        self._mailbox = mailbox
        self._db = db
        self._profiles = profile_cache
        self._pending_history: dict[str, SentRecord] = {}

    @property
    def pending_history(self) -> list[str]:
        """Message ids delivered but still missing from the Sent registry."""
        return list(self._pending_history)

    async def submit(
        self,
        receiver_id: str,
        receiver_profile: PartyProfile | Mapping[str, Any] | None,
        message: Optional[str],
        source_item: Any,
        receiver_contacts: Optional[Mapping[str, Optional[str]]] = None,
    ) -> SubmitResult:
        """Share ``source_item`` with ``receiver_id``.

        Args:
            receiver_id: Opaque app id of the receiver.
            receiver_profile: Display fields for the receiver (name, photo).
            message: Optional free-text note.
            source_item: The sender's own item; its descriptive fields are
                deep-copied so later edits never reach the envelope.
            receiver_contacts: Optional email/phone/social_media.

        Raises:
            ValueError: If receiver_id is empty or the item has no title.
        """
        if not receiver_id:
            raise ValueError("receiver_id cannot be empty")
        snapshot = ItemSnapshot.from_item(source_item)
        receiver = build_receiver_profile(receiver_id, receiver_profile, receiver_contacts)
        sender = await self._profiles.get()
        if sender is None:
            logger.warning("Share to %s not sent, sender profile unavailable", receiver_id)
            return SubmitResult(delivered=False, error="Sender profile unavailable")
        envelope = Envelope.create(
            snapshot=snapshot,
            sender=sender.model_copy(deep=True),
            receiver=receiver,
            message=message or "",
            origin_item_id=_origin_id(source_item),
        )

        try:
            await self._mailbox.append_message(receiver_id, envelope)
        except TransportUnavailableError as exc:
            logger.warning("Share to %s failed, transport unavailable: %s", receiver_id, exc)
            return SubmitResult(delivered=False, error=str(exc))
        logger.info("Envelope %s delivered to mailbox of %s", envelope.id, receiver_id)

        record = SentRecord.from_envelope(envelope, receiver_app_id=receiver_id)
        saved = await self._save_history(record)
        if not saved:
            self._pending_history[record.message_id] = record
        return SubmitResult(delivered=True, message_id=envelope.id, history_saved=saved)

    async def flush_history(self) -> int:
        """Retry history writes that failed after delivery.

        Returns:
            Number of records written.
        """
        written = 0
        for message_id, record in list(self._pending_history.items()):
            if await self._save_history(record):
                del self._pending_history[message_id]
                written += 1
        return written

    async def _save_history(self, record: SentRecord) -> bool:
        try:
            async with self._db.connection() as conn:
                await SentRepository(conn).insert_or_replace(record)
            return True
        except aiosqlite.Error as exc:
            logger.warning(
                "Inconsistent history window: envelope %s delivered but not recorded in Sent: %s",
                record.message_id, exc,
            )
            return False
