"""Token-bucket rate limiting for external calls."""

import asyncio
import time

from .cancel import CancelToken


class RateLimiter:
    """Allow ``rate`` acquisitions per ``per`` seconds.

    The bucket holds at most ``burst`` tokens and refills continuously.
    Request rate is limited independently of how many workers are running.
    """

    def __init__(self, rate: float, per: float = 60.0, burst: float = 1.0):
        if rate <= 0 or per <= 0:
            raise ValueError("rate and per must be positive")
        self.fill_rate = rate / per
        self.capacity = max(1.0, burst)
        self._tokens = self.capacity
        self._updated = time.monotonic()
        self._lock = asyncio.Lock()

    @classmethod
    def per_minute(cls, requests_per_minute: float, burst: float = 1.0) -> "RateLimiter":
        return cls(requests_per_minute, 60.0, burst)

    def _refill(self) -> None:
        now = time.monotonic()
        self._tokens = min(self.capacity, self._tokens + (now - self._updated) * self.fill_rate)
        self._updated = now

    async def acquire(self, cancel: CancelToken | None = None) -> None:
        async with self._lock:
            while True:
                self._refill()
                if self._tokens >= 1:
                    self._tokens -= 1
                    return
                wait = (1 - self._tokens) / self.fill_rate
                if cancel is not None:
                    await cancel.sleep(wait)
                else:
                    await asyncio.sleep(wait)
