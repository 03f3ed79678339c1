"""Unit tests for KnowledgeBase refresh behaviour and the in-memory seed provider."""
import sys
sys.path.insert(0, 'backend')

from unittest.mock import Mock

import pytest
from models.knowledge import KnowledgeEntry
from services.knowledge_base import KnowledgeBase
from services.knowledge_matcher import KnowledgeMatcher
from services.memory_store import DEFAULT_ENTRIES, StaticKnowledgeProvider


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def make_entry(entry_id):
    return KnowledgeEntry(id=entry_id, category="general", subcategory="", question="Q?", answer="A.")


class TestKnowledgeBase:
    """Test suite for KnowledgeBase."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.mark.asyncio
    async def test_loads_on_first_use(self, clock):
        """Test that entries are loaded lazily."""
        provider = Mock()
        provider.load_active_entries.return_value = [make_entry("a"), make_entry("b")]
        kb = KnowledgeBase(provider, refresh_seconds=300, clock=clock)

        entries = await kb.entries()

        assert [e.id for e in entries] == ["a", "b"]
        provider.load_active_entries.assert_called_once()

    @pytest.mark.asyncio
    async def test_refreshes_after_interval(self, clock):
        """Test that entries are reloaded once the refresh interval has passed."""
        provider = Mock()
        provider.load_active_entries.side_effect = [[make_entry("a")], [make_entry("b")]]
        kb = KnowledgeBase(provider, refresh_seconds=300, clock=clock)

        assert [e.id for e in await kb.entries()] == ["a"]
        clock.now += 100
        assert [e.id for e in await kb.entries()] == ["a"]
        clock.now += 300
        assert [e.id for e in await kb.entries()] == ["b"]
        assert provider.load_active_entries.call_count == 2

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_last_entries(self, clock):
        """Test that a provider failure keeps the last known good entries."""
        provider = Mock()
        provider.load_active_entries.side_effect = [[make_entry("a")], ConnectionError("down")]
        kb = KnowledgeBase(provider, refresh_seconds=300, clock=clock)

        await kb.entries()
        clock.now += 301
        entries = await kb.entries()

        assert [e.id for e in entries] == ["a"]

    @pytest.mark.asyncio
    async def test_failure_on_first_load_is_empty(self, clock):
        """Test that an unavailable provider yields no entries rather than an error."""
        provider = Mock()
        provider.load_active_entries.side_effect = ConnectionError("down")
        kb = KnowledgeBase(provider, refresh_seconds=300, clock=clock)

        assert await kb.entries() == []


class TestSeedKnowledge:
    """Test suite for the built-in seed entries."""

    def test_static_provider_returns_seed(self):
        """Test that the static provider serves the seed set."""
        entries = StaticKnowledgeProvider().load_active_entries()
        assert [e.id for e in entries] == [e.id for e in DEFAULT_ENTRIES]

    def test_seed_ids_unique(self):
        """Test that seed entry ids are unique."""
        ids = [e.id for e in DEFAULT_ENTRIES]
        assert len(ids) == len(set(ids))

    def test_seed_parking_rates_matches(self):
        """Test that the parking seed entry answers the parking rates question."""
        match = KnowledgeMatcher().best_match("What are the parking rates at the airport?", DEFAULT_ENTRIES)
        assert match is not None
        assert match.best.entry.id == "kb_parking_rates"
        assert "OMR 1.100" in match.best.entry.answer
