"""
Retry Policy
------------
Bounded exponential backoff for idempotent API calls.

Only transient failures (TransportError, ServerError) are retried.
Validation, auth, client and decode errors propagate on the first attempt.
Task cancellation is never retried: a cancelled back-off sleep ends the call.
"""

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar
import asyncio
import logging
import random

from .errors import is_transient

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """
    Retry wrapper with exponential backoff and jitter.

    The delay before attempt n+1 is base_delay * factor**(n-1), stretched by
    a random fraction in [0, jitter) and capped at max_delay. Keeping jitter
    below factor - 1 makes successive delays strictly increase until the cap.
    """
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    factor: float = 2.0
    jitter: float = 0.5

    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.jitter < 0:
            raise ValueError("jitter must be non-negative")
        self._logger = logging.getLogger("grocer.retry")

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the given (1-based) failed attempt."""
        delay = self.base_delay * (self.factor ** (attempt - 1))
        delay *= 1.0 + self.rng.random() * self.jitter
        return min(delay, self.max_delay)

    async def run(
        self,
        func: Callable[[], Awaitable[T]],
        description: Optional[str] = None,
    ) -> T:
        """
        Call func until it succeeds, fails permanently, or attempts run out.

        Raises the last error when every attempt failed.
        """
        name = description or getattr(func, "__name__", "call")
        attempt = 1
        while True:
            try:
                return await func()
            except Exception as e:
                if not is_transient(e) or attempt >= self.max_attempts:
                    raise
                delay = self.delay_for(attempt)
                self._logger.warning(
                    f"{name} failed (attempt {attempt}/{self.max_attempts}): {e}; "
                    f"retrying in {delay:.2f}s"
                )
            # Cancellation while sleeping aborts the retry loop
            await self.sleep(delay)
            attempt += 1


def no_retry() -> RetryPolicy:
    """Policy that makes exactly one attempt."""
    return RetryPolicy(max_attempts=1)
