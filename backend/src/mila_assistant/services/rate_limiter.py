"""
Sliding-window limiter for outbound remote calls.

At most ``max_requests`` calls may start in any ``window_seconds`` span.
Callers over the limit wait, in arrival order, instead of failing.
"""

import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable, Deque, Optional

from mila_assistant.core.config import RateLimitConfig
from mila_assistant.schemas import RateWindowStats

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """Process-wide admission control for remote calls."""

    def __init__(
        self,
        max_requests: int = 15,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._sleep = sleep
        self._starts: Deque[float] = deque()
        self._pending = 0
        self._total_admitted = 0
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    @classmethod
    def from_config(cls, config: RateLimitConfig) -> "SlidingWindowRateLimiter":
        return cls(max_requests=config.max_requests, window_seconds=config.window_seconds)

    def _get_lock(self) -> asyncio.Lock:
        # asyncio.Lock binds to the loop it first waits on; use one lock per loop
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    def _evict(self, now: float) -> None:
        while self._starts and now - self._starts[0] >= self.window_seconds:
            self._starts.popleft()

    async def acquire(self) -> None:
        """Wait until a call may start, then record it."""
        self._pending += 1
        try:
            async with self._get_lock():
                while True:
                    now = self._clock()
                    self._evict(now)
                    if len(self._starts) < self.max_requests:
                        self._starts.append(now)
                        self._total_admitted += 1
                        return
                    wait = self._starts[0] + self.window_seconds - now
                    logger.warning(f"Rate limit reached ({self.max_requests}/{self.window_seconds:.0f}s), waiting {wait:.1f}s")
                    await self._sleep(max(wait, 0.0))
        finally:
            self._pending -= 1

    @property
    def total_admitted(self) -> int:
        return self._total_admitted

    def snapshot(self) -> RateWindowStats:
        """Current window usage without admitting anything."""
        now = self._clock()
        self._evict(now)
        time_to_reset = 0.0
        if self._starts:
            time_to_reset = max(self._starts[0] + self.window_seconds - now, 0.0)
        return RateWindowStats(
            requests_this_window=len(self._starts),
            time_to_reset=time_to_reset,
            pending=self._pending,
        )
