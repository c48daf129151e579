"""Cache of the current user's own profile."""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from sharbox.state.models.envelope import PartyProfile

logger = logging.getLogger(__name__)

ProfileProvider = Callable[[], Awaitable[PartyProfile]]


class ProfileCache:
    """Lazily loads the user's profile and keeps it until invalidated.

    Call ``invalidate()`` on profile-update events; the next ``get()``
    reloads from the provider. When a reload fails, the last known
    profile is returned if there is one.
    """

    def __init__(self, provider: ProfileProvider) -> None:
        self._provider = provider
        self._profile: Optional[PartyProfile] = None
        self._stale = True
        self._lock = asyncio.Lock()

    @property
    def cached(self) -> Optional[PartyProfile]:
        return self._profile

    async def get(self) -> Optional[PartyProfile]:
        """Return the current profile, loading it on first use."""
        async with self._lock:
            if self._stale:
                try:
                    self._profile = await self._provider()
                    self._stale = False
                except Exception as exc:
                    logger.warning("Profile load failed, using last known profile: %s", exc)
            return self._profile

    def invalidate(self) -> None:
        """Mark the cached profile stale."""
        self._stale = True

    def update(self, profile: PartyProfile) -> None:
        """Replace the cached profile after a local profile edit."""
        self._profile = profile
        self._stale = False
