"""In-process refresh signal between the sync/claim paths and the notification feed."""
import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

RefreshListener = Callable[[str], Awaitable[None]]


class RefreshSignal:
    """Broadcasts "something changed, re-read" to registered listeners.

    Listeners are awaited in registration order; a failing listener is
    logged and skipped so one consumer can never break an emitter.
    """

    def __init__(self) -> None:
        self._listeners: list[RefreshListener] = []
        self._event = asyncio.Event()
        self._emitted = 0

    @property
    def emitted_count(self) -> int:
        return self._emitted

    def add_listener(self, listener: RefreshListener) -> None:
        """Register an async callback receiving the emit reason."""
        self._listeners.append(listener)

    def remove_listener(self, listener: RefreshListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def emit(self, reason: str) -> None:
        """Notify listeners and wake any waiter."""
        self._emitted += 1
        self._event.set()
        for listener in list(self._listeners):
            try:
                await listener(reason)
            except Exception as exc:
                logger.warning("Refresh listener failed for %s: %s", reason, exc)

    async def wait(self, timeout: float | None = None) -> bool:
        """Wait for the next emit.

        Returns:
            True if a signal arrived, False on timeout.
        """
        try:
            if timeout is not None:
                await asyncio.wait_for(self._event.wait(), timeout=timeout)
            else:
                await self._event.wait()
        except asyncio.TimeoutError:
            return False
        self._event.clear()
        return True
