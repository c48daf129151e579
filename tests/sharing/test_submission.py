"""Tests for sender submission."""
from unittest.mock import AsyncMock

import pytest

from sharbox.errors import TransportUnavailableError
from sharbox.state.database import DatabaseManager
from sharbox.state.models.envelope import PartyProfile, ShareStatus
from sharbox.state.repositories.inbox import InboxRepository
from sharbox.state.repositories.sent import SentRepository
from sharbox.sharing.profile import ProfileCache
from sharbox.sharing.submission import ShareSubmitter, build_receiver_profile
from sharbox.transport.sqlite import SqliteMailbox
from tests.helpers import make_item, make_profile, static_provider


class TestBuildReceiverProfile:
    def test_receiver_id_always_wins(self) -> None:
        profile = build_receiver_profile("bob-app", {"name": "Bob", "unique_app_id": "spoofed"})
        assert profile.unique_app_id == "bob-app"
        assert profile.name == "Bob"

    def test_contacts_merged(self) -> None:
        profile = build_receiver_profile(
            "bob-app", PartyProfile(name="Bob"), {"email": "bob@example.com", "phone": None},
        )
        assert profile.email == "bob@example.com"
        assert profile.phone is None

    def test_missing_profile(self) -> None:
        assert build_receiver_profile("bob-app", None).unique_app_id == "bob-app"


class TestShareSubmitter:
    @pytest.mark.asyncio
    async def test_submit_delivers_and_records_history(
        self, mailbox: SqliteMailbox, sender_db: DatabaseManager, alice_profiles: ProfileCache,
    ) -> None:
        submitter = ShareSubmitter(mailbox, sender_db, alice_profiles)
        result = await submitter.submit("bob-app", {"name": "Bob"}, "Have a look", make_item())

        assert result
        assert result.history_saved
        buffered = await mailbox.fetch_buffer("bob-app")
        assert [e.id for e in buffered] == [result.message_id]
        env = buffered[0]
        assert env.sender.unique_app_id == "alice-app"
        assert env.receiver.unique_app_id == "bob-app"
        assert env.message == "Have a look"
        assert env.status == ShareStatus.UNCLAIMED
        assert env.origin_item_id == "item-001"

        async with sender_db.connection() as conn:
            sent = await SentRepository(conn).get_by_id(result.message_id)
        assert sent.envelope.sender is None
        assert sent.envelope.is_read is None
        assert sent.receiver_name == "Bob"

    @pytest.mark.asyncio
    async def test_sender_never_writes_receiver_inbox(
        self, mailbox: SqliteMailbox, sender_db: DatabaseManager, db: DatabaseManager,
        alice_profiles: ProfileCache,
    ) -> None:
        await ShareSubmitter(mailbox, sender_db, alice_profiles).submit("bob-app", None, None, make_item())
        async with db.connection() as conn:
            assert (await InboxRepository(conn).count_by_status())["total"] == 0
        async with sender_db.connection() as conn:
            assert (await InboxRepository(conn).count_by_status())["total"] == 0

    @pytest.mark.asyncio
    async def test_snapshot_isolated_from_later_edits(
        self, mailbox: SqliteMailbox, sender_db: DatabaseManager, alice_profiles: ProfileCache,
    ) -> None:
        item = make_item()
        await ShareSubmitter(mailbox, sender_db, alice_profiles).submit("bob-app", None, None, item)
        item["title"] = "Edited after sharing"
        item["authors"].append("Someone Else")
        env = (await mailbox.fetch_buffer("bob-app"))[0]
        assert env.snapshot.title == "Attention Is All You Need"
        assert "Someone Else" not in env.snapshot.authors

    @pytest.mark.asyncio
    async def test_transport_failure_writes_nothing(
        self, sender_db: DatabaseManager, alice_profiles: ProfileCache,
    ) -> None:
        failing = AsyncMock()
        failing.append_message.side_effect = TransportUnavailableError("relay down")
        result = await ShareSubmitter(failing, sender_db, alice_profiles).submit("bob-app", None, None, make_item())
        assert not result
        assert result.error == "relay down"
        assert result.message_id is None
        async with sender_db.connection() as conn:
            assert await SentRepository(conn).list_all() == []

    @pytest.mark.asyncio
    async def test_history_failure_keeps_delivery(
        self, mailbox: SqliteMailbox, broken_db: DatabaseManager, alice_profiles: ProfileCache,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        submitter = ShareSubmitter(mailbox, broken_db, alice_profiles)
        result = await submitter.submit("bob-app", None, None, make_item())
        assert result
        assert result.history_saved is False
        assert submitter.pending_history == [result.message_id]
        assert len(await mailbox.fetch_buffer("bob-app")) == 1
        assert "Inconsistent history window" in caplog.text

    @pytest.mark.asyncio
    async def test_flush_history_after_store_recovers(
        self, mailbox: SqliteMailbox, sender_db: DatabaseManager, broken_db: DatabaseManager,
        alice_profiles: ProfileCache,
    ) -> None:
        submitter = ShareSubmitter(mailbox, broken_db, alice_profiles)
        result = await submitter.submit("bob-app", None, None, make_item())
        assert await submitter.flush_history() == 0

        submitter._db = sender_db
        assert await submitter.flush_history() == 1
        assert submitter.pending_history == []
        async with sender_db.connection() as conn:
            assert await SentRepository(conn).get_by_id(result.message_id) is not None

    @pytest.mark.asyncio
    async def test_empty_receiver_rejected_before_io(
        self, sender_db: DatabaseManager, alice_profiles: ProfileCache,
    ) -> None:
        box = AsyncMock()
        with pytest.raises(ValueError, match="receiver_id"):
            await ShareSubmitter(box, sender_db, alice_profiles).submit("", None, None, make_item())
        box.append_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_profile_update_applies_to_next_submission(
        self, mailbox: SqliteMailbox, sender_db: DatabaseManager,
    ) -> None:
        profiles = ProfileCache(static_provider(make_profile(name="Alice")))
        submitter = ShareSubmitter(mailbox, sender_db, profiles)
        await submitter.submit("bob-app", None, None, make_item())
        profiles.update(make_profile(name="Dr. Alice"))
        await submitter.submit("bob-app", None, None, make_item())
        names = sorted(e.sender.name for e in await mailbox.fetch_buffer("bob-app"))
        assert names == ["Alice", "Dr. Alice"]

    @pytest.mark.asyncio
    async def test_unavailable_sender_profile_blocks_delivery(
        self, mailbox: SqliteMailbox, sender_db: DatabaseManager,
    ) -> None:
        async def unreachable() -> PartyProfile:
            raise ConnectionError("identity service down")

        result = await ShareSubmitter(mailbox, sender_db, ProfileCache(unreachable)).submit(
            "bob-app", None, None, make_item(),
        )

        assert not result
        assert result.delivered is False
        assert "profile" in result.error
        assert await mailbox.fetch_buffer("bob-app") == []
        async with sender_db.connection() as conn:
            assert await SentRepository(conn).list_all() == []
