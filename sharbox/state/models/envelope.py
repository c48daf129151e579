"""Envelope models: the canonical shape of a shared item."""

import copy
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sharbox.errors import InvalidTransitionError


class ShareStatus(Enum):
    """Lifecycle status of a shared envelope."""

    UNCLAIMED = "UNCLAIMED"
    CLAIMED = "CLAIMED"
    SENT = "SENT"


_ALLOWED_TRANSITIONS = {
    ShareStatus.UNCLAIMED: frozenset({ShareStatus.UNCLAIMED, ShareStatus.CLAIMED}),
    ShareStatus.CLAIMED: frozenset({ShareStatus.CLAIMED}),
    ShareStatus.SENT: frozenset({ShareStatus.SENT}),
}


class PubInfo(BaseModel):
    journal: Optional[str] = None
    vol: Optional[str] = None
    issue: Optional[str] = None
    pages: Optional[str] = None


class Identifiers(BaseModel):
    doi: Optional[str] = None
    issn: Optional[str] = None
    isbn: Optional[str] = None
    pmid: Optional[str] = None
    arxiv: Optional[str] = None
    bibcode: Optional[str] = None


class TagsData(BaseModel):
    keywords: list[str] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)


class SupportingData(BaseModel):
    references: list[str] = Field(default_factory=list)
    video_url: Optional[str] = None


class ItemSnapshot(BaseModel):
    """Descriptive content of a library item, detached from its owner.

    Ownership state (favorite/bookmark flags, ids, timestamps) is not part
    of the snapshot; unknown keys in the source are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., min_length=1)
    type: Optional[str] = None
    category: Optional[str] = None
    topic: Optional[str] = None
    sub_topic: Optional[str] = None
    authors: list[str] = Field(default_factory=list)
    publisher: Optional[str] = None
    year: Optional[str] = None
    full_date: Optional[str] = None
    pub_info: PubInfo = Field(default_factory=PubInfo)
    identifiers: Identifiers = Field(default_factory=Identifiers)
    source: Optional[str] = None
    format: Optional[str] = None
    url: Optional[str] = None
    tags: TagsData = Field(default_factory=TagsData)
    abstract: Optional[str] = None
    main_info: Optional[str] = None
    summary: Optional[str] = None
    strength: Optional[str] = None
    weakness: Optional[str] = None
    research_methodology: Optional[str] = None
    unfamiliar_terminology: Optional[str] = None
    quick_tips_for_you: Optional[str] = None
    supporting_references: Optional[SupportingData] = None
    in_text_harvard: Optional[str] = None
    bib_harvard: Optional[str] = None
    # Pointers into the blob store; content is resolved lazily by viewers.
    file_id: Optional[str] = None
    image_view: Optional[str] = None
    youtube_id: Optional[str] = None
    extracted_json_id: Optional[str] = None
    insight_json_id: Optional[str] = None
    storage_node_url: Optional[str] = None

    @classmethod
    def from_item(cls, item: Any) -> "ItemSnapshot":
        """Build an independent deep copy of an item's descriptive fields.

        Args:
            item: A mapping, an ``ItemSnapshot``, or any object exposing a
                ``snapshot`` attribute (e.g. a ``LibraryItem``).
        """
        if isinstance(item, ItemSnapshot):
            return cls.model_validate(item.model_dump())
        snapshot = getattr(item, "snapshot", None)
        if isinstance(snapshot, ItemSnapshot):
            return cls.model_validate(snapshot.model_dump())
        if isinstance(item, Mapping):
            return cls.model_validate(copy.deepcopy(dict(item)))
        raise TypeError(f"Cannot snapshot item of type {type(item).__name__}")


class PartyProfile(BaseModel):
    """Identity block for the sender or receiver of an envelope."""

    name: Optional[str] = None
    photo_url: Optional[str] = None
    affiliation: Optional[str] = None
    unique_app_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    social_media: Optional[str] = None


class Envelope(BaseModel):
    """A shared item in flight between two users."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    snapshot: ItemSnapshot
    sender: Optional[PartyProfile] = None
    receiver: PartyProfile = Field(default_factory=PartyProfile)
    message: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: ShareStatus = ShareStatus.UNCLAIMED
    is_read: Optional[bool] = None
    origin_item_id: Optional[str] = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_timestamp(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = datetime.fromisoformat(v.replace("Z", "+00:00"))
        if isinstance(v, datetime):
            v = v.replace(tzinfo=timezone.utc) if v.tzinfo is None else v.astimezone(timezone.utc)
        return v

    @classmethod
    def create(
        cls,
        snapshot: ItemSnapshot,
        sender: Optional[PartyProfile],
        receiver: PartyProfile,
        message: str = "",
        origin_item_id: Optional[str] = None,
    ) -> "Envelope":
        """Create a new envelope with a fresh id and timestamp."""
        return cls(
            id=str(uuid4()), snapshot=snapshot, sender=sender,
            receiver=receiver, message=message or "",
            origin_item_id=origin_item_id,
        )

    @property
    def sender_app_id(self) -> Optional[str]:
        return self.sender.unique_app_id if self.sender else None

    def with_status(self, status: ShareStatus) -> "Envelope":
        """Return a copy with a new status, refusing backward transitions."""
        if status not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Cannot move envelope {self.id} from {self.status.value} to {status.value}"
            )
        return self.model_copy(update={"status": status})

    def to_inbox_projection(self) -> "Envelope":
        """Receiver-side copy: unclaimed and unread."""
        return self.model_copy(update={"status": ShareStatus.UNCLAIMED, "is_read": False})

    def to_sent_projection(self) -> "Envelope":
        """Sender-side history copy.

        Sender identity and the read flag are dropped so the copy can never
        be mistaken for a received message. Receiver identity is kept.
        """
        return self.model_copy(
            update={"sender": None, "is_read": None, "status": ShareStatus.SENT}
        )

    def to_wire_format(self) -> dict:
        return self.model_dump(mode="json")

    @classmethod
    def from_wire(cls, data: dict) -> "Envelope":
        return cls.model_validate(data)
