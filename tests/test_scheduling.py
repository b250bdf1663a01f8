"""Tests for retry, rate limiting and cancellation primitives."""

import asyncio
import time

import pytest

from autodoc.errors import EmbeddingError, GenerationError, TransientError
from autodoc.scheduling.cancel import CancelToken, RunCancelled
from autodoc.scheduling.ratelimit import RateLimiter
from autodoc.scheduling.retry import RetryPolicy, call_with_retry


def _flaky(failures, exc=TransientError):
    state = {"calls": 0}

    async def fn():
        state["calls"] += 1
        if state["calls"] <= failures:
            raise exc("try again")
        return "ok"

    return fn, state


def test_backoff_grows_and_is_capped():
    policy = RetryPolicy(base_delay=1.0, max_delay=5.0, jitter=False)
    assert [policy.delay(n) for n in range(1, 5)] == [1.0, 2.0, 4.0, 5.0]


def test_backoff_jitter_stays_in_range():
    policy = RetryPolicy(base_delay=1.0, max_delay=100.0)
    for _ in range(20):
        assert 4.0 <= policy.delay(3) <= 5.0


def test_retry_until_success():
    fn, state = _flaky(2)
    retries = []
    policy = RetryPolicy(max_attempts=3, base_delay=0, max_delay=0, jitter=False)
    result = asyncio.run(call_with_retry(fn, policy, on_retry=lambda n, e: retries.append(n)))
    assert result == "ok"
    assert state["calls"] == 3
    assert retries == [1, 2]


def test_retry_exhausted_raises_chained_error():
    fn, state = _flaky(5)
    policy = RetryPolicy(max_attempts=3, base_delay=0, max_delay=0, jitter=False)
    with pytest.raises(EmbeddingError) as exc:
        asyncio.run(call_with_retry(fn, policy, error_cls=EmbeddingError, label="embed x"))
    assert state["calls"] == 3
    assert isinstance(exc.value.__cause__, TransientError)
    assert "embed x" in str(exc.value)


def test_non_transient_errors_are_not_retried():
    fn, state = _flaky(1, exc=GenerationError)
    policy = RetryPolicy(max_attempts=5, base_delay=0, max_delay=0, jitter=False)
    with pytest.raises(GenerationError):
        asyncio.run(call_with_retry(fn, policy))
    assert state["calls"] == 1


def test_rate_limiter_spaces_requests():
    async def run():
        limiter = RateLimiter(rate=20, per=1.0)
        start = time.monotonic()
        for _ in range(5):
            await limiter.acquire()
        return time.monotonic() - start

    # first token is free, the next four wait ~50ms each
    assert asyncio.run(run()) >= 0.15


def test_rate_limiter_rejects_bad_rate():
    with pytest.raises(ValueError):
        RateLimiter.per_minute(0)


def test_cancel_token_stops_guarded_call():
    async def run():
        token = CancelToken()
        started = asyncio.Event()

        async def slow():
            started.set()
            await asyncio.sleep(10)

        async def trip():
            await started.wait()
            token.cancel(RuntimeError("fatal"))

        results = await asyncio.gather(token.guard(slow()), trip(), return_exceptions=True)
        return token, results

    token, results = asyncio.run(run())
    assert isinstance(results[0], RunCancelled)
    assert isinstance(token.reason, RuntimeError)


def test_cancel_token_sleep_wakes_early():
    async def run():
        token = CancelToken()
        asyncio.get_running_loop().call_later(0.01, token.cancel)
        start = time.monotonic()
        with pytest.raises(RunCancelled):
            await token.sleep(10)
        return time.monotonic() - start

    assert asyncio.run(run()) < 5
