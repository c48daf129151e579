"""Tests for the envelope model, snapshots and registry record projections."""
import json
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from sharbox.errors import InvalidTransitionError
from sharbox.state.models.envelope import Envelope, ItemSnapshot, PartyProfile, ShareStatus
from sharbox.state.models.inbox import InboxRecord
from sharbox.state.models.library import LibraryItem
from sharbox.state.models.sent import SentRecord
from tests.helpers import make_envelope, make_item, make_profile


class TestItemSnapshot:
    def test_from_mapping_drops_ownership_fields(self) -> None:
        snap = ItemSnapshot.from_item(make_item())
        dumped = snap.model_dump()
        assert snap.title == "Attention Is All You Need"
        assert "is_favorite" not in dumped
        assert "is_bookmarked" not in dumped
        assert "id" not in dumped

    def test_deep_copy_isolated_from_source(self) -> None:
        item = make_item()
        snap = ItemSnapshot.from_item(item)
        item["authors"].append("Parmar, N.")
        item["tags"]["keywords"].append("mutated")
        assert snap.authors == ["Vaswani, A.", "Shazeer, N."]
        assert snap.tags.keywords == ["transformers"]

    def test_from_snapshot_is_a_copy(self) -> None:
        original = ItemSnapshot.from_item(make_item())
        copied = ItemSnapshot.from_item(original)
        copied.authors.append("Extra")
        assert original.authors == ["Vaswani, A.", "Shazeer, N."]

    def test_from_object_with_snapshot(self) -> None:
        now = datetime.now(timezone.utc)
        lib = LibraryItem(id="lib-1", snapshot=ItemSnapshot(title="Owned"), created_at=now, updated_at=now)
        assert ItemSnapshot.from_item(lib).title == "Owned"

    def test_missing_title_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ItemSnapshot.from_item(make_item(title=""))

    def test_unsupported_type_rejected(self) -> None:
        with pytest.raises(TypeError):
            ItemSnapshot.from_item(42)


class TestEnvelope:
    def test_create_assigns_id_and_defaults(self) -> None:
        env = make_envelope()
        assert env.id
        assert env.status == ShareStatus.UNCLAIMED
        assert env.is_read is None
        assert env.timestamp.tzinfo is not None
        assert env.sender_app_id == "alice-app"

    def test_ids_are_unique(self) -> None:
        assert make_envelope().id != make_envelope().id

    def test_frozen(self) -> None:
        env = make_envelope()
        with pytest.raises(ValidationError):
            env.message = "changed"  # type: ignore[misc]

    def test_status_cannot_move_backwards(self) -> None:
        claimed = make_envelope().with_status(ShareStatus.CLAIMED)
        assert claimed.status == ShareStatus.CLAIMED
        with pytest.raises(InvalidTransitionError):
            claimed.with_status(ShareStatus.UNCLAIMED)

    def test_unclaimed_cannot_become_sent(self) -> None:
        with pytest.raises(InvalidTransitionError):
            make_envelope().with_status(ShareStatus.SENT)

    def test_inbox_projection(self) -> None:
        projected = make_envelope().to_inbox_projection()
        assert projected.status == ShareStatus.UNCLAIMED
        assert projected.is_read is False
        assert projected.sender is not None

    def test_sent_projection_strips_sender_and_read_flag(self) -> None:
        projected = make_envelope().to_sent_projection()
        assert projected.sender is None
        assert projected.is_read is None
        assert projected.status == ShareStatus.SENT
        assert projected.receiver.unique_app_id == "bob-app"

    def test_wire_format_parses_z_timestamp(self) -> None:
        data = make_envelope().to_wire_format()
        data["timestamp"] = "2026-02-05T14:30:00.000Z"
        env = Envelope.from_wire(data)
        assert env.timestamp == datetime(2026, 2, 5, 14, 30, tzinfo=timezone.utc)

    def test_naive_timestamp_treated_as_utc(self) -> None:
        data = make_envelope().to_wire_format()
        data["timestamp"] = "2026-02-05T14:30:00"
        assert Envelope.from_wire(data).timestamp.tzinfo == timezone.utc

    def test_offset_timestamp_normalized_to_utc(self) -> None:
        data = make_envelope().to_wire_format()
        data["timestamp"] = "2026-02-05T21:30:00+07:00"
        env = Envelope.from_wire(data)
        assert env.timestamp.utcoffset() == timedelta(0)
        assert env.timestamp == datetime(2026, 2, 5, 14, 30, tzinfo=timezone.utc)

    def test_wire_format_is_json_serializable(self) -> None:
        data = make_envelope().to_wire_format()
        assert json.loads(json.dumps(data))["status"] == "UNCLAIMED"

    def test_from_wire_rejects_missing_snapshot(self) -> None:
        data = make_envelope().to_wire_format()
        del data["snapshot"]
        with pytest.raises(ValidationError):
            Envelope.from_wire(data)


class TestInboxRecord:
    def test_from_envelope_is_unread_and_unclaimed(self) -> None:
        env = make_envelope()
        record = InboxRecord.from_envelope(env)
        assert record.message_id == env.id
        assert record.status == ShareStatus.UNCLAIMED
        assert record.is_read is False
        assert record.sender_app_id == "alice-app"
        assert record.sender_name == "Alice"
        assert record.title == env.snapshot.title

    def test_envelope_reflects_record_state(self) -> None:
        record = InboxRecord.from_envelope(make_envelope())
        claimed = InboxRecord(**{**record.__dict__, "status": ShareStatus.CLAIMED, "is_read": True})
        assert claimed.envelope.status == ShareStatus.CLAIMED
        assert claimed.envelope.is_read is True

    def test_sent_status_rejected(self) -> None:
        record = InboxRecord.from_envelope(make_envelope())
        with pytest.raises(ValueError, match="SENT"):
            InboxRecord(**{**record.__dict__, "status": ShareStatus.SENT})

    def test_empty_message_id_raises(self) -> None:
        with pytest.raises(ValueError, match="message_id"):
            InboxRecord(message_id="", title="t", payload="{}", received_at=datetime.now(timezone.utc))


class TestSentRecord:
    def test_from_envelope_is_sanitized(self) -> None:
        env = make_envelope()
        record = SentRecord.from_envelope(env, receiver_app_id="bob-app")
        assert record.status == ShareStatus.SENT
        assert record.receiver_name == "Bob"
        restored = record.envelope
        assert restored.sender is None
        assert restored.is_read is None
        assert restored.id == env.id

    def test_payload_with_sender_rejected(self) -> None:
        env = make_envelope()
        with pytest.raises(ValueError, match="sender"):
            SentRecord(
                message_id=env.id, receiver_app_id="bob-app", title="t",
                payload=json.dumps(env.to_wire_format()), sent_at=env.timestamp,
            )

    def test_empty_receiver_rejected(self) -> None:
        env = make_envelope()
        with pytest.raises(ValueError, match="receiver_app_id"):
            SentRecord.from_envelope(env, receiver_app_id="")


class TestLibraryItem:
    def test_from_snapshot_starts_with_default_flags(self) -> None:
        item = LibraryItem.from_snapshot(ItemSnapshot.from_item(make_item()))
        assert item.id
        assert item.is_favorite is False
        assert item.is_bookmarked is False
        assert item.title == "Attention Is All You Need"

    def test_profile_defaults_are_empty(self) -> None:
        profile = PartyProfile()
        assert profile.unique_app_id is None
        assert make_profile().email == "alice-app@example.com"
