# shopsmart/scrapers/throttle.py

"""Sliding-window throttle that spaces out requests to one marketplace."""

import asyncio
import logging
import time
from collections import deque

from shopsmart.config.settings import Settings

logger = logging.getLogger("shopsmart.throttle")


class ThrottleGovernor:
    """Advisory rate limiter scoped to a single adapter instance.

    Keeps the monotonic timestamps of the last ``window`` requests.
    Before a new request it waits until ``throttle_ms`` has elapsed
    since the earliest request that is still inside the throttle
    interval, then records the new request.

    The window is not locked by default: two concurrent callers on
    the same instance may both read a stale window and under-throttle.
    Pass ``strict=True`` to serialise the read-wait-write sequence
    through an :class:`asyncio.Lock`.
    """

    def __init__(
        self,
        throttle_ms: int = Settings.THROTTLE_MS,
        window: int = Settings.THROTTLE_WINDOW,
        strict: bool = False,
    ) -> None:
        self.throttle_ms = max(0, throttle_ms)
        self._requests: deque[float] = deque(maxlen=max(1, window))
        self._lock: asyncio.Lock | None = (
            asyncio.Lock() if strict else None
        )

    @property
    def recent_requests(self) -> list[float]:
        """Snapshot of recorded request times, oldest first."""
        return list(self._requests)

    def wait_time(self, now: float | None = None) -> float:
        """Seconds the next caller would have to wait."""
        current = time.monotonic() if now is None else now
        interval = self.throttle_ms / 1000
        recent = [
            t for t in self._requests if current - t < interval
        ]
        if not recent:
            return 0.0
        return max(0.0, interval - (current - recent[0]))

    async def throttle(self) -> None:
        """Suspend until the next request is allowed, then record it."""
        if self._lock is None:
            await self._acquire_slot()
            return
        async with self._lock:
            await self._acquire_slot()

    async def _acquire_slot(self) -> None:
        remaining = self.wait_time()
        if remaining > 0:
            logger.debug(
                "Throttling for %.0fms", remaining * 1000,
            )
            await asyncio.sleep(remaining)
        self._requests.append(time.monotonic())

    def reset(self) -> None:
        """Forget all recorded requests."""
        self._requests.clear()
