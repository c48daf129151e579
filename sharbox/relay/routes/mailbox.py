"""Mailbox endpoints: append, fetch and acknowledge buffered envelopes."""
import json
import logging
from datetime import datetime, timezone
from typing import Any

import aiosqlite
from fastapi import APIRouter, Body, status
from pydantic import ValidationError

from sharbox.config import RelayConfig
from sharbox.relay.errors import BatchTooLargeError, InvalidEnvelopeError, StoreUnavailableError
from sharbox.relay.middleware.logging import sanitize_dict
from sharbox.relay.models import AckRequest, AckResponse, AppendResponse, BufferResponse
from sharbox.state.database import DatabaseManager
from sharbox.state.models.envelope import Envelope
from sharbox.state.models.mailbox import MailboxEntry
from sharbox.state.repositories.mailbox import MailboxRepository

logger = logging.getLogger(__name__)


def create_mailbox_router(config: RelayConfig, db: DatabaseManager) -> APIRouter:
    """Create the mailbox router with injected database dependency."""
    router = APIRouter()

    @router.post(
        "/api/mailbox/{receiver_id}",
        response_model=AppendResponse,
        status_code=status.HTTP_201_CREATED,
        tags=["mailbox"],
    )
    async def append(receiver_id: str, payload: dict[str, Any] = Body(...)) -> AppendResponse:
        """Buffer an envelope for a receiver."""
        try:
            envelope = Envelope.from_wire(payload)
        except ValidationError as exc:
            logger.info("Rejected envelope for %s: %s", receiver_id, sanitize_dict(payload))
            raise InvalidEnvelopeError(
                "Envelope validation failed", {"validation_errors": exc.errors(include_url=False, include_context=False)},
            ) from exc
        if envelope.receiver.unique_app_id and envelope.receiver.unique_app_id != receiver_id:
            raise InvalidEnvelopeError(
                "Envelope receiver does not match mailbox",
                {"receiver_id": receiver_id, "envelope_receiver": envelope.receiver.unique_app_id},
            )
        entry = MailboxEntry(
            message_id=envelope.id,
            receiver_id=receiver_id,
            payload=json.dumps(envelope.to_wire_format()),
            queued_at=datetime.now(timezone.utc),
        )
        try:
            async with db.connection() as conn:
                stored = await MailboxRepository(conn).append(entry)
        except aiosqlite.Error as exc:
            logger.error("Mailbox append failed for %s: %s", envelope.id, exc)
            raise StoreUnavailableError("Mailbox store unavailable") from exc
        if stored:
            logger.info("Queued %s for %s", envelope.id, receiver_id)
        return AppendResponse(status="queued" if stored else "duplicate", message_id=envelope.id)

    @router.get(
        "/api/mailbox/{receiver_id}",
        response_model=BufferResponse,
        status_code=status.HTTP_200_OK,
        tags=["mailbox"],
    )
    async def fetch(receiver_id: str) -> BufferResponse:
        """Return every envelope buffered for a receiver, oldest first."""
        try:
            async with db.connection() as conn:
                entries = await MailboxRepository(conn).fetch_for(receiver_id)
        except aiosqlite.Error as exc:
            logger.error("Mailbox fetch failed for %s: %s", receiver_id, exc)
            raise StoreUnavailableError("Mailbox store unavailable") from exc
        envelopes = [json.loads(e.payload) for e in entries]
        return BufferResponse(count=len(envelopes), envelopes=envelopes)

    @router.post(
        "/api/mailbox/{receiver_id}/ack",
        response_model=AckResponse,
        status_code=status.HTTP_200_OK,
        tags=["mailbox"],
    )
    async def acknowledge(receiver_id: str, request: AckRequest) -> AckResponse:
        """Delete the acknowledged envelopes from a receiver's buffer."""
        if len(request.message_ids) > config.max_batch_size:
            raise BatchTooLargeError(len(request.message_ids), config.max_batch_size)
        try:
            async with db.connection() as conn:
                deleted = await MailboxRepository(conn).delete_many(receiver_id, request.message_ids)
        except aiosqlite.Error as exc:
            logger.error("Mailbox ack failed for %s: %s", receiver_id, exc)
            raise StoreUnavailableError("Mailbox store unavailable") from exc
        logger.info("Acknowledged %d of %d for %s", deleted, len(request.message_ids), receiver_id)
        return AckResponse(deleted=deleted)

    return router
