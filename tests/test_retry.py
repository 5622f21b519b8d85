"""
Retry Policy Tests
------------------
Backoff growth, which errors are retried, and cancellation.
"""

import asyncio
import random

import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import (
    AuthError, ClientError, DecodeError, ServerError, TransportError, ValidationError,
)
from core.retry import RetryPolicy, no_retry
from conftest import RecordingSleep


class Flaky:
    """Fails with the given errors in order, then returns 'ok'."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


def make_policy(sleep, **kwargs) -> RetryPolicy:
    kwargs.setdefault("max_attempts", 3)
    kwargs.setdefault("base_delay", 0.5)
    return RetryPolicy(sleep=sleep, rng=random.Random(7), **kwargs)


class TestBackoff:
    """Delay computation."""

    def test_delays_increase(self):
        policy = RetryPolicy(base_delay=1.0, max_delay=100.0, rng=random.Random(1))
        delays = [policy.delay_for(n) for n in range(1, 6)]
        assert delays == sorted(delays)
        assert len(set(delays)) == len(delays)

    def test_delay_bounds(self):
        policy = RetryPolicy(base_delay=1.0, jitter=0.5, max_delay=100.0)
        for _ in range(50):
            assert 2.0 <= policy.delay_for(2) < 3.0

    def test_capped_at_max_delay(self):
        policy = RetryPolicy(base_delay=1.0, max_delay=4.0)
        assert policy.delay_for(10) == 4.0

    def test_no_jitter_is_exact(self):
        policy = RetryPolicy(base_delay=0.5, jitter=0.0)
        assert [policy.delay_for(n) for n in (1, 2, 3)] == [0.5, 1.0, 2.0]

    def test_rejects_bad_settings(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)
        with pytest.raises(ValueError):
            RetryPolicy(jitter=-0.1)


class TestRun:
    """Retry loop behavior."""

    @pytest.mark.asyncio
    async def test_success_first_try(self):
        sleep = RecordingSleep()
        func = Flaky()

        assert await make_policy(sleep).run(func) == "ok"
        assert func.calls == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_transient_errors_retried(self):
        sleep = RecordingSleep()
        func = Flaky(ServerError("boom", 503), TransportError("reset"))

        assert await make_policy(sleep).run(func, description="fetch") == "ok"
        assert func.calls == 3
        assert len(sleep.delays) == 2
        assert sleep.delays[0] < sleep.delays[1]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        ValidationError("bad", field_name="customer_id"),
        AuthError("expired", 401),
        ClientError("missing", 404),
        DecodeError("garbled", 200),
        RuntimeError("bug"),
    ])
    async def test_permanent_errors_not_retried(self, error):
        sleep = RecordingSleep()
        func = Flaky(error)

        with pytest.raises(type(error)):
            await make_policy(sleep).run(func)

        assert func.calls == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_exhaustion_raises_last_error(self):
        sleep = RecordingSleep()
        func = Flaky(ServerError("first", 500), ServerError("second", 502), ServerError("third", 503))

        with pytest.raises(ServerError) as exc_info:
            await make_policy(sleep).run(func)

        assert exc_info.value.http_code == 503
        assert func.calls == 3
        assert len(sleep.delays) == 2

    @pytest.mark.asyncio
    async def test_no_retry_policy(self):
        func = Flaky(ServerError("boom", 500))

        with pytest.raises(ServerError):
            await no_retry().run(func)

        assert func.calls == 1

    @pytest.mark.asyncio
    async def test_cancel_during_backoff(self):
        func = Flaky(ServerError("boom", 500))
        policy = RetryPolicy(max_attempts=5, base_delay=30.0, max_delay=30.0)

        task = asyncio.create_task(policy.run(func))
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert func.calls == 1
