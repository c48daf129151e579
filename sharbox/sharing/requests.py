"""Cooperative cancellation for superseded reads."""
import itertools
from dataclasses import dataclass
from typing import AsyncIterator, Optional, TypeVar

T = TypeVar("T")


class RequestTracker:
    """Hands out request tokens; only the newest token stays current.

    A caller starting a fresh read calls ``begin()``. Older readers check
    ``token.cancelled`` between pages and drop their results once a newer
    request has started.
    """

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._current = 0

    def begin(self) -> "RequestToken":
        self._current = next(self._counter)
        return RequestToken(tracker=self, generation=self._current)

    def is_current(self, generation: int) -> bool:
        return generation == self._current


@dataclass(frozen=True)
class RequestToken:
    tracker: RequestTracker
    generation: int

    @property
    def cancelled(self) -> bool:
        return not self.tracker.is_current(self.generation)


async def collect_pages(
    pages: AsyncIterator[list[T]], token: RequestToken,
) -> Optional[list[T]]:
    """Gather paginated results unless the request is superseded.

    Returns:
        All items, or None when the token was cancelled mid-read.
    """
    items: list[T] = []
    async for page in pages:
        if token.cancelled:
            return None
        items.extend(page)
    return None if token.cancelled else items
