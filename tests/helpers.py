"""Builders for sample items, profiles and envelopes shared across test modules."""
from datetime import datetime
from typing import Any, Optional

from sharbox.state.models.envelope import Envelope, ItemSnapshot, PartyProfile


def make_item(title: str = "Attention Is All You Need", **kwargs: Any) -> dict[str, Any]:
    """Build a library item as the sender's app stores it."""
    item = {
        "id": "item-001",
        "title": title,
        "type": "Journal Article",
        "authors": ["Vaswani, A.", "Shazeer, N."],
        "year": "2017",
        "identifiers": {"doi": "10.48550/arXiv.1706.03762", "arxiv": "1706.03762"},
        "tags": {"keywords": ["transformers"], "labels": ["to-read"]},
        "is_favorite": True,
        "is_bookmarked": True,
        "extracted_json_id": "blob-text-1",
        "storage_node_url": "https://node.example.com/exec",
    }
    item.update(kwargs)
    return item


def make_profile(app_id: str = "alice-app", name: str = "Alice") -> PartyProfile:
    return PartyProfile(
        name=name, photo_url=f"https://img.example.com/{app_id}.png",
        affiliation="Example University", unique_app_id=app_id,
        email=f"{app_id}@example.com",
    )


def make_envelope(
    message_id: Optional[str] = None,
    receiver_id: str = "bob-app",
    title: str = "Attention Is All You Need",
    timestamp: Optional[datetime] = None,
) -> Envelope:
    """Build an envelope from Alice to ``receiver_id``."""
    env = Envelope.create(
        snapshot=ItemSnapshot.from_item(make_item(title=title)),
        sender=make_profile(),
        receiver=PartyProfile(name="Bob", unique_app_id=receiver_id),
        message="Worth a read",
        origin_item_id="item-001",
    )
    update: dict[str, Any] = {}
    if message_id is not None:
        update["id"] = message_id
    if timestamp is not None:
        update["timestamp"] = timestamp
    return env.model_copy(update=update) if update else env


def static_provider(profile: PartyProfile):
    async def _provider() -> PartyProfile:
        return profile
    return _provider
