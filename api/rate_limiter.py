"""
Rate Limiter
------------
Sliding-log rate limiter for outbound API calls.

At most `max_requests` admissions are granted inside any rolling window of
`window_seconds`. A caller arriving when the window is full waits until the
oldest admission ages out.

Waiters queue on an asyncio.Lock, which wakes them in arrival order, so
concurrent callers are admitted approximately FIFO and none starves.
"""

from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Deque, Optional
import asyncio
import logging
import time


@dataclass
class RateLimitConfig:
    """Rate limit configuration."""
    max_requests: int = 60
    window_seconds: float = 60.0


class RateLimiter:
    """
    Sliding-log rate limiter.

    Safe for concurrent acquire() calls from tasks on one event loop. The
    window survives across loops (successive asyncio.run() calls); the lock
    does not.
    Clock and sleep are injectable for deterministic tests.
    """

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config or RateLimitConfig()
        if self.config.max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if self.config.window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self._clock = clock
        self._sleep = sleep
        self._timestamps: Deque[float] = deque()
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None
        self._logger = logging.getLogger("grocer.api.rate_limiter")

    def _loop_lock(self) -> asyncio.Lock:
        """The lock for the running event loop, replaced when the loop changes."""
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    def _prune(self, now: float) -> None:
        """Drop admissions that have left the window."""
        horizon = now - self.config.window_seconds
        while self._timestamps and self._timestamps[0] <= horizon:
            self._timestamps.popleft()

    async def acquire(self) -> None:
        """
        Wait for a free slot in the window, then claim it.

        Cancellation while waiting leaves the window untouched.
        """
        async with self._loop_lock():
            while True:
                now = self._clock()
                self._prune(now)
                if len(self._timestamps) < self.config.max_requests:
                    self._timestamps.append(now)
                    return

                wait = self._timestamps[0] + self.config.window_seconds - now
                self._logger.debug(
                    f"Rate limit reached ({self.config.max_requests} per "
                    f"{self.config.window_seconds:g}s), waiting {wait:.3f}s"
                )
                await self._sleep(wait)

    def try_acquire(self) -> bool:
        """
        Claim a slot without waiting.

        Returns False when the window is full or another caller is queued.
        """
        if self._lock is not None and self._lock.locked():
            return False
        now = self._clock()
        self._prune(now)
        if len(self._timestamps) < self.config.max_requests:
            self._timestamps.append(now)
            return True
        return False

    def current_count(self) -> int:
        """Number of admissions inside the current window."""
        self._prune(self._clock())
        return len(self._timestamps)

    def reset(self) -> None:
        """Forget all admissions."""
        self._timestamps.clear()
