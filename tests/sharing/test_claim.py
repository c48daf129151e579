"""Tests for the exactly-once claim processor."""
import asyncio
from datetime import datetime, timezone

import aiosqlite
import pytest

from sharbox.state.database import DatabaseManager
from sharbox.state.models.envelope import ShareStatus
from sharbox.state.models.inbox import InboxRecord
from sharbox.state.repositories.inbox import InboxRepository
from sharbox.state.repositories.library import LibraryRepository
from sharbox.sharing.claim import ClaimOutcome, ClaimProcessor, ClaimResult
from sharbox.sharing.signals import RefreshSignal
from tests.helpers import make_envelope


async def _received(db: DatabaseManager) -> str:
    env = make_envelope()
    async with db.connection() as conn:
        await InboxRepository(conn).upsert(InboxRecord.from_envelope(env))
    return env.id


async def _library_count(db: DatabaseManager) -> int:
    async with db.connection() as conn:
        return await LibraryRepository(conn).count()


class TestClaimResult:
    def test_truthiness_and_retryable(self) -> None:
        assert ClaimResult("m", ClaimOutcome.CLAIMED)
        assert not ClaimResult("m", ClaimOutcome.ALREADY_CLAIMED)
        assert ClaimResult("m", ClaimOutcome.FAILED).retryable
        assert not ClaimResult("m", ClaimOutcome.NOT_FOUND).retryable


class TestClaimProcessor:
    @pytest.mark.asyncio
    async def test_claim_creates_library_item(self, db: DatabaseManager) -> None:
        message_id = await _received(db)
        signal = RefreshSignal()
        result = await ClaimProcessor(db, signal=signal).claim(message_id)

        assert result
        assert result.outcome == ClaimOutcome.CLAIMED
        assert signal.emitted_count == 1
        async with db.connection() as conn:
            record = await InboxRepository(conn).get_by_id(message_id)
            item = await LibraryRepository(conn).get_by_id(result.library_item_id)
        assert record.status == ShareStatus.CLAIMED
        assert record.library_item_id == item.id
        assert item.snapshot == record.envelope.snapshot
        assert item.is_favorite is False
        assert item.is_bookmarked is False

    @pytest.mark.asyncio
    async def test_second_claim_is_benign_no_op(self, db: DatabaseManager) -> None:
        message_id = await _received(db)
        processor = ClaimProcessor(db)
        first = await processor.claim(message_id)
        second = await processor.claim(message_id)
        assert first.outcome == ClaimOutcome.CLAIMED
        assert second.outcome == ClaimOutcome.ALREADY_CLAIMED
        assert second.library_item_id is None
        assert await _library_count(db) == 1

    @pytest.mark.asyncio
    async def test_concurrent_claims_create_exactly_one_item(self, db: DatabaseManager) -> None:
        message_id = await _received(db)
        processors = [ClaimProcessor(db) for _ in range(5)]
        results = await asyncio.gather(*(p.claim(message_id) for p in processors))
        outcomes = [r.outcome for r in results]
        assert outcomes.count(ClaimOutcome.CLAIMED) == 1
        assert outcomes.count(ClaimOutcome.ALREADY_CLAIMED) == 4
        assert await _library_count(db) == 1

    @pytest.mark.asyncio
    async def test_unknown_message(self, db: DatabaseManager) -> None:
        result = await ClaimProcessor(db).claim("ghost")
        assert result.outcome == ClaimOutcome.NOT_FOUND
        assert await _library_count(db) == 0

    @pytest.mark.asyncio
    async def test_empty_message_id_rejected(self, db: DatabaseManager) -> None:
        with pytest.raises(ValueError, match="message_id"):
            await ClaimProcessor(db).claim("")

    @pytest.mark.asyncio
    async def test_library_failure_rolls_back_flip(
        self, db: DatabaseManager, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        message_id = await _received(db)

        async def failing_insert(self, item, commit=True):
            raise aiosqlite.OperationalError("disk full")

        monkeypatch.setattr(LibraryRepository, "insert", failing_insert)
        signal = RefreshSignal()
        result = await ClaimProcessor(db, signal=signal).claim(message_id)

        assert result.outcome == ClaimOutcome.FAILED
        assert result.retryable
        assert "disk full" in result.error
        assert signal.emitted_count == 0
        async with db.connection() as conn:
            record = await InboxRepository(conn).get_by_id(message_id)
        assert record.status == ShareStatus.UNCLAIMED
        assert record.library_item_id is None

        monkeypatch.undo()
        retry = await ClaimProcessor(db).claim(message_id)
        assert retry.outcome == ClaimOutcome.CLAIMED
        assert await _library_count(db) == 1

    @pytest.mark.asyncio
    async def test_unavailable_registry_is_retryable(self, broken_db: DatabaseManager) -> None:
        result = await ClaimProcessor(broken_db).claim("m1")
        assert result.outcome == ClaimOutcome.FAILED

    @pytest.mark.asyncio
    async def test_claim_leaves_read_flag_alone(self, db: DatabaseManager) -> None:
        message_id = await _received(db)
        await ClaimProcessor(db).claim(message_id)
        async with db.connection() as conn:
            record = await InboxRepository(conn).get_by_id(message_id)
        assert record.is_read is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", ["{not json", '{"id": "corrupt"}'])
    async def test_unreadable_payload_fails_without_writes(self, db: DatabaseManager, payload: str) -> None:
        record = InboxRecord(
            message_id="corrupt", title="Broken", payload=payload,
            received_at=datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
        )
        async with db.connection() as conn:
            await InboxRepository(conn).upsert(record)

        result = await ClaimProcessor(db).claim("corrupt")

        assert result.outcome == ClaimOutcome.FAILED
        assert result.error
        assert await _library_count(db) == 0
        async with db.connection() as conn:
            stored = await InboxRepository(conn).get_by_id("corrupt")
        assert stored.status == ShareStatus.UNCLAIMED
