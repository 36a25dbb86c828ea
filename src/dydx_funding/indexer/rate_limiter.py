"""Sliding-window request gate shared by every indexer call of a run.

The public dYdX indexer throttles per IP. Keeping at most N requests in any
window of W seconds stays under that budget regardless of how many fetch
coroutines are in flight.
"""

import asyncio
import time
from collections import deque
from collections.abc import Awaitable, Callable

from dydx_funding.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """Async-safe limiter allowing max_requests per window_seconds.

    acquire() never rejects, it only delays the caller. Waiters are served in
    arrival order because they queue on a single asyncio.Lock.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_requests < 1:
            raise ValueError(f"max_requests must be >= 1, got {max_requests}")
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be > 0, got {window_seconds}")
        self._max_requests = max_requests
        self._window = window_seconds
        self._clock = clock
        self._sleep = sleep
        self._grants: deque[float] = deque()
        self._lock = asyncio.Lock()

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_seconds(self) -> float:
        return self._window

    async def acquire(self) -> None:
        """Wait until a permit is free in the current window, then take it."""
        async with self._lock:
            while True:
                now = self._clock()
                while self._grants and now - self._grants[0] >= self._window:
                    self._grants.popleft()

                if len(self._grants) < self._max_requests:
                    self._grants.append(now)
                    return

                delay = self._window - (now - self._grants[0])
                logger.debug("rate_limit_wait", delay=round(delay, 3))
                await self._sleep(delay)
