"""Library entity models."""
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import uuid4

from sharbox.state.models.envelope import ItemSnapshot


@dataclass(frozen=True)
class LibraryItem:
    """An item owned by a single user.

    Items created from a claimed envelope carry only the descriptive
    snapshot; ownership flags always start at their defaults.
    """

    id: str
    snapshot: ItemSnapshot
    created_at: datetime
    updated_at: datetime
    is_favorite: bool = False
    is_bookmarked: bool = False

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("id cannot be empty")

    @classmethod
    def from_snapshot(cls, snapshot: ItemSnapshot) -> "LibraryItem":
        """Create a new, independently owned item from a snapshot."""
        now = datetime.now(timezone.utc)
        return cls(
            id=str(uuid4()),
            snapshot=ItemSnapshot.from_item(snapshot),
            created_at=now,
            updated_at=now,
        )

    @property
    def title(self) -> str:
        return self.snapshot.title
