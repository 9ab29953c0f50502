"""Minimum-gap request throttle.

Each client owns one :class:`RateLimiter`; there is no process-wide state, so
independent clients never slow each other down. The limiter enforces a floor
on the time between two dispatches rather than a token bucket: every call
re-checks the floor, so bursts cannot slip through.

Under asyncio the next dispatch slot is reserved synchronously before the
caller suspends. Two coroutines sharing a limiter therefore get slots at least
one gap apart without any lock. A retry after a 429 claims its slot the same
way, so it cannot land between slots other callers already hold.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]


class RateLimiter:
    """Tracks the last dispatch time and delays callers to keep a minimum gap."""

    def __init__(
        self,
        min_gap: float = 4.0,
        clock: Clock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ):
        """
        Initialize the limiter.

        Args:
            min_gap: Default seconds between two dispatches
            clock: Monotonic time source in seconds
            sleep: Coroutine used to suspend the caller
        """
        self.min_gap = min_gap
        self.clock = clock
        self.sleep = sleep
        self.last_request_at: float | None = None

    def reserve(self, gap: float | None = None) -> float:
        """
        Claim the next dispatch slot and return how long to wait for it.

        Args:
            gap: Override for :attr:`min_gap` (e.g. the current credential tier)
        """
        gap = self.min_gap if gap is None else gap
        now = self.clock()
        if self.last_request_at is None:
            slot = now
        else:
            slot = max(now, self.last_request_at + gap)
        self.last_request_at = slot
        return slot - now

    def reserve_retry(self, delay: float, after: float, gap: float | None = None) -> float:
        """
        Claim a slot for a retry of the request dispatched at ``after``.

        The retry goes out ``delay`` seconds from now, or one gap behind the
        latest slot another caller has claimed since ``after``, whichever is
        later. The throttle timestamp never moves backwards.
        """
        gap = self.min_gap if gap is None else gap
        now = self.clock()
        slot = now + delay
        if self.last_request_at is not None and self.last_request_at > after:
            slot = max(slot, self.last_request_at + gap)
        self.last_request_at = slot
        return slot - now

    async def _pause(self, delay: float) -> None:
        if delay > 0:
            logger.debug(f"Rate limit: sleeping {delay:.2f}s")
            await self.sleep(delay)

    async def wait(self, gap: float | None = None) -> float:
        """Suspend until the reserved slot; returns the delay applied."""
        delay = self.reserve(gap)
        await self._pause(delay)
        return delay

    async def acquire(self, gap: float | None = None) -> float:
        """Like :meth:`wait`, but returns the time of the claimed slot."""
        delay = self.reserve(gap)
        slot = self.last_request_at
        await self._pause(delay)
        return slot

    async def acquire_retry(self, delay: float, after: float, gap: float | None = None) -> float:
        """Suspend until a retry slot (see :meth:`reserve_retry`); returns its time."""
        wait_for = self.reserve_retry(delay, after, gap)
        slot = self.last_request_at
        await self._pause(wait_for)
        return slot

    def reset(self) -> None:
        """Forget the last dispatch."""
        self.last_request_at = None
