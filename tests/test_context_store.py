"""Unit tests for ContextStore."""
import sys
sys.path.insert(0, 'backend')

import asyncio
from datetime import datetime
from unittest.mock import Mock

import pytest
from models.conversation import Turn
from services.context_store import ContextStore
from services.memory_store import InMemoryHistoryProvider


def make_turn(text, role="user", intent=None):
    return Turn(role=role, text=text, timestamp=datetime(2024, 1, 1), intent=intent)


class TestContextStore:
    """Test suite for ContextStore."""

    @pytest.fixture
    def store(self):
        """Create a ContextStore without durable history."""
        return ContextStore()

    @pytest.mark.asyncio
    async def test_new_session_is_empty(self, store):
        """Test that an unknown session starts empty."""
        context = await store.get("sess_new")

        assert context.session_id == "sess_new"
        assert context.history == []
        assert context.current_topic is None
        assert context.language == "en"
        assert context.entities == {}

    @pytest.mark.asyncio
    async def test_pair_prepended_user_first(self, store):
        """Test that a user/bot pair is prepended as a unit."""
        await store.update("s1", make_turn("q1"), make_turn("a1", role="bot"))
        await store.update("s1", make_turn("q2"), make_turn("a2", role="bot"))

        context = await store.get("s1")
        assert [t.text for t in context.history] == ["q2", "a2", "q1", "a1"]

    @pytest.mark.asyncio
    async def test_eleventh_turn_evicts_oldest(self, store):
        """Test that the 11th turn evicts the first and keeps turns 2-11 in order."""
        for i in range(1, 12):
            await store.update("s1", make_turn(f"turn {i}"))

        context = await store.get("s1")
        assert len(context.history) == 10
        assert [t.text for t in context.history] == [f"turn {i}" for i in range(11, 1, -1)]

    @pytest.mark.asyncio
    async def test_history_never_exceeds_bound(self, store):
        """Test that history stays bounded after many exchanges."""
        for i in range(25):
            await store.update("s1", make_turn(f"q{i}"), make_turn(f"a{i}", role="bot"))
            context = await store.get("s1")
            assert len(context.history) <= 10

    @pytest.mark.asyncio
    async def test_topic_and_entities_merge(self, store):
        """Test that topics replace and entities merge."""
        await store.update("s1", make_turn("q1"), topic="parking", entities={"duration": "1 hour"})
        await store.update("s1", make_turn("q2"), topic="taxi", entities={"airport_code": "MCT"})

        context = await store.get("s1")
        assert context.current_topic == "taxi"
        assert context.entities == {"duration": "1 hour", "airport_code": "MCT"}

    @pytest.mark.asyncio
    async def test_get_returns_snapshot(self, store):
        """Test that callers cannot mutate the cached context."""
        context = await store.get("s1")
        context.history.append(make_turn("stray"))
        context.entities["x"] = "y"

        fresh = await store.get("s1")
        assert fresh.history == []
        assert fresh.entities == {}

    @pytest.mark.asyncio
    async def test_sessions_are_independent(self, store):
        """Test that sessions do not share state."""
        await store.update("s1", make_turn("for s1"))
        context = await store.get("s2")
        assert context.history == []

    @pytest.mark.asyncio
    async def test_lru_capacity(self):
        """Test that the cache evicts least recently used sessions."""
        store = ContextStore(capacity=2)
        for sid in ("s1", "s2", "s3"):
            await store.get(sid)
        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_session_scope_serializes_requests(self, store):
        """Test that turns of one session apply in request order."""
        async def request(text, delay):
            async with store.session("s1") as scope:
                await asyncio.sleep(delay)
                await scope.update(make_turn(text))

        await asyncio.gather(request("first", 0.05), request("second", 0))

        context = await store.get("s1")
        assert [t.text for t in context.history] == ["second", "first"]


class TestContextStoreWithHistory:
    """Test suite for ContextStore read-through over a history provider."""

    @pytest.mark.asyncio
    async def test_loads_history_once(self):
        """Test that history is loaded on first use and then served from cache."""
        provider = Mock()
        provider.load_history.return_value = [
            make_turn("older question", intent="parking"),
            make_turn("older answer", role="bot", intent="parking"),
        ]
        store = ContextStore(history_provider=provider)

        first = await store.get("s1")
        second = await store.get("s1")

        assert provider.load_history.call_count == 1
        provider.load_history.assert_called_with("s1", 10)
        assert len(first.history) == 2
        assert first.current_topic == "parking"
        assert second.history == first.history

    @pytest.mark.asyncio
    async def test_topic_taken_from_newest_user_turn(self):
        """Test that a reloaded history starting with a bot turn keeps the user's topic."""
        provider = Mock()
        provider.load_history.return_value = [
            make_turn("Free WiFi is available.", role="bot", intent="knowledge_base"),
            make_turn("Is there parking?", intent="parking"),
        ]
        store = ContextStore(history_provider=provider)

        context = await store.get("s1")

        assert context.current_topic == "parking"

    @pytest.mark.asyncio
    async def test_history_failure_is_stateless(self):
        """Test that an unavailable history store yields an empty context."""
        provider = Mock()
        provider.load_history.side_effect = ConnectionError("store down")
        store = ContextStore(history_provider=provider)

        context = await store.get("s1")
        assert context.history == []

    @pytest.mark.asyncio
    async def test_persist_failure_keeps_memory_update(self):
        """Test that a failed write is logged and the in-memory update kept."""
        provider = Mock()
        provider.load_history.return_value = []
        provider.append_turns.side_effect = ConnectionError("store down")
        store = ContextStore(history_provider=provider)

        await store.update("s1", make_turn("q1"))

        context = await store.get("s1")
        assert [t.text for t in context.history] == ["q1"]

    @pytest.mark.asyncio
    async def test_turns_persisted(self):
        """Test that turns reach the durable provider."""
        provider = InMemoryHistoryProvider()
        store = ContextStore(history_provider=provider)

        await store.update("s1", make_turn("q1"), make_turn("a1", role="bot"))

        persisted = provider.load_history("s1", 10)
        assert [t.text for t in persisted] == ["q1", "a1"]

        # A new process sees the persisted history
        restarted = ContextStore(history_provider=provider)
        context = await restarted.get("s1")
        assert [t.text for t in context.history] == ["q1", "a1"]
