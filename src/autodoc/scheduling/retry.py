"""Retry with exponential backoff for external calls."""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from ..errors import GenerationError, TransientError
from .cancel import CancelToken
from .ratelimit import RateLimiter

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    max_attempts: int = 5
    base_delay: float = 1.0
    max_delay: float = 60.0
    jitter: bool = True

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "RetryPolicy":
        sched = config.get("scheduling", {})
        return cls(
            max_attempts=sched.get("max_attempts", 5),
            base_delay=sched.get("base_delay", 1.0),
            max_delay=sched.get("max_delay", 60.0),
        )

    def delay(self, attempt: int) -> float:
        """Backoff before retrying after failed attempt number ``attempt`` (1-based)."""
        delay = self.base_delay * (2 ** (attempt - 1))
        if self.jitter:
            delay += random.uniform(0, self.base_delay)
        return min(self.max_delay, delay)


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    limiter: RateLimiter | None = None,
    cancel: CancelToken | None = None,
    label: str = "call",
    error_cls: type[Exception] = GenerationError,
    on_retry: Callable[[int, Exception], None] | None = None,
) -> T:
    """Run ``fn`` until it succeeds, retrying only TransientError.

    Every attempt waits on the rate limiter first. Exhausting the attempts
    raises ``error_cls`` chained to the last transient error; any other
    exception propagates unchanged.
    """
    last_error: Exception | None = None
    for attempt in range(1, policy.max_attempts + 1):
        if limiter is not None:
            await limiter.acquire(cancel)
        try:
            if cancel is not None:
                return await cancel.guard(fn())
            return await fn()
        except TransientError as e:
            last_error = e
            if attempt == policy.max_attempts:
                break
            delay = policy.delay(attempt)
            logger.warning(
                f"{label}: attempt {attempt}/{policy.max_attempts} failed, retrying in {delay:.2f}s: {e}"
            )
            if on_retry is not None:
                on_retry(attempt, e)
            if cancel is not None:
                await cancel.sleep(delay)
            else:
                await asyncio.sleep(delay)

    raise error_cls(f"{label} failed after {policy.max_attempts} attempts: {last_error}") from last_error
