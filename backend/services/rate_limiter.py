"""
Per-source rate limiting for outbound page fetches.

One fetch per source is in flight at a time, and consecutive fetches to the same
source are spaced by at least the source's minimum interval.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Dict

logger = logging.getLogger(__name__)


class SourceRateLimiter:
    """Serializes fetches per source and enforces a minimum interval."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the rate limiter.

        Args:
            clock: Monotonic clock, injectable for tests
            sleep: Coroutine used to wait out the remaining interval
        """
        self._clock = clock
        self._sleep = sleep
        self._locks: Dict[str, asyncio.Lock] = {}
        self._last_fetch: Dict[str, float] = {}

    def _lock_for(self, source: str) -> asyncio.Lock:
        lock = self._locks.get(source)
        if lock is None:
            lock = self._locks[source] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def acquire(self, source: str, interval: float) -> AsyncIterator[float]:
        """
        Wait for permission to fetch from a source.

        The source lock is held for the whole ``async with`` body, so a second
        caller waits for the first fetch to finish and then for the interval.

        Args:
            source: Source name
            interval: Minimum seconds between fetches

        Yields:
            Seconds spent waiting for the interval
        """
        async with self._lock_for(source):
            waited = 0.0
            last = self._last_fetch.get(source)
            if last is not None:
                remaining = interval - (self._clock() - last)
                if remaining > 0:
                    logger.debug(f"Rate limit: waiting {remaining:.2f}s before fetching {source}")
                    await self._sleep(remaining)
                    waited = remaining
            self._last_fetch[source] = self._clock()
            yield waited

    def last_fetch(self, source: str):
        return self._last_fetch.get(source)
