"""Unit tests for SourceRateLimiter."""
import sys
sys.path.insert(0, 'backend')

import asyncio

import pytest
from services.rate_limiter import SourceRateLimiter


class FakeTime:
    """Clock and sleep pair where sleeping advances the clock."""

    def __init__(self):
        self.now = 100.0
        self.sleeps = []

    def clock(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class TestSourceRateLimiter:
    """Test suite for SourceRateLimiter."""

    @pytest.fixture
    def fake_time(self):
        return FakeTime()

    @pytest.fixture
    def limiter(self, fake_time):
        return SourceRateLimiter(clock=fake_time.clock, sleep=fake_time.sleep)

    @pytest.mark.asyncio
    async def test_first_fetch_does_not_wait(self, limiter, fake_time):
        """Test that the first fetch of a source proceeds immediately."""
        async with limiter.acquire("transport", 5) as waited:
            assert waited == 0.0
        assert fake_time.sleeps == []
        assert limiter.last_fetch("transport") == 100.0

    @pytest.mark.asyncio
    async def test_second_fetch_waits_remaining_interval(self, limiter, fake_time):
        """Test that a fetch inside the interval sleeps the remainder."""
        async with limiter.acquire("transport", 5):
            pass
        fake_time.now += 2

        async with limiter.acquire("transport", 5) as waited:
            assert waited == pytest.approx(3.0)
        assert fake_time.sleeps == [pytest.approx(3.0)]

    @pytest.mark.asyncio
    async def test_fetch_after_interval_does_not_wait(self, limiter, fake_time):
        """Test that no wait happens once the interval has passed."""
        async with limiter.acquire("transport", 5):
            pass
        fake_time.now += 6

        async with limiter.acquire("transport", 5) as waited:
            assert waited == 0.0

    @pytest.mark.asyncio
    async def test_sources_are_independent(self, limiter, fake_time):
        """Test that one source's interval does not delay another."""
        async with limiter.acquire("transport", 5):
            pass
        async with limiter.acquire("facilities", 5) as waited:
            assert waited == 0.0

    @pytest.mark.asyncio
    async def test_concurrent_callers_are_serialized(self, limiter, fake_time):
        """Test that two concurrent fetches of one source cannot both bypass the limit."""
        events = []

        async def fetch(name):
            async with limiter.acquire("transport", 5) as waited:
                events.append((name, "start", waited))
                await asyncio.sleep(0)
                events.append((name, "end", waited))

        await asyncio.gather(fetch("a"), fetch("b"))

        assert [e[:2] for e in events] == [("a", "start"), ("a", "end"), ("b", "start"), ("b", "end")]
        assert events[0][2] == 0.0
        assert events[2][2] == pytest.approx(5.0)
