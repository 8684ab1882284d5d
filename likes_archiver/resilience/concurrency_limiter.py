"""
Admission control for concurrent media transfers.
Bounds in-flight operations and queues the rest in arrival order.
"""

import asyncio
from collections import deque
from typing import Awaitable, Callable, Deque, TypeVar

T = TypeVar("T")


class ConcurrencyLimiter:
    """Runs at most ``max_concurrency`` coroutines at once, FIFO for the rest."""

    def __init__(self, max_concurrency: int):
        """
        Initialize limiter.

        Args:
            max_concurrency: Fixed ceiling on simultaneously running tasks
        """
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self.max_concurrency = max_concurrency
        self._active = 0
        self._waiters: Deque[asyncio.Future] = deque()

    @property
    def active(self) -> int:
        """Number of tasks currently holding a slot."""
        return self._active

    @property
    def pending(self) -> int:
        """Number of callers queued for a slot."""
        return sum(1 for w in self._waiters if not w.done())

    async def run(self, fn: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``fn()`` once a slot is available.

        Args:
            fn: Zero-argument callable returning an awaitable

        Returns:
            Whatever the awaitable returns; its exception propagates unchanged
        """
        await self._acquire()
        try:
            return await fn()
        finally:
            self._release()

    async def _acquire(self):
        if self._active < self.max_concurrency and not self.pending:
            self._active += 1
            return

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            # Slot was handed over before the cancellation landed
            if waiter.done() and not waiter.cancelled():
                self._release()
            raise

    def _release(self):
        # Hand the slot straight to the oldest waiter so nobody can barge in
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self._active -= 1
