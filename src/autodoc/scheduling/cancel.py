"""Run-wide cancellation checked at every suspension point."""

import asyncio
from typing import Awaitable, TypeVar

from ..errors import AutodocError

T = TypeVar("T")


class RunCancelled(AutodocError):
    """Raised inside workers once the run has been cancelled."""


class CancelToken:
    """Shared flag set by the first fatal error of a run.

    External calls and waits go through ``guard`` and ``sleep`` so that
    in-flight and queued work stops as soon as the token fires.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: BaseException | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: BaseException | None = None) -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RunCancelled(f"Run cancelled: {self.reason}")

    async def guard(self, aw: Awaitable[T]) -> T:
        """Await ``aw`` unless the token fires first, in which case cancel it."""
        self.raise_if_cancelled()
        task = asyncio.ensure_future(aw)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()
        if task in done:
            return task.result()
        task.cancel()
        raise RunCancelled(f"Run cancelled: {self.reason}")

    async def sleep(self, delay: float) -> None:
        """Sleep for ``delay`` seconds, waking early if cancelled."""
        self.raise_if_cancelled()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise RunCancelled(f"Run cancelled: {self.reason}")
