"""Session-scoped conversation context with a read-through LRU cache."""
import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

from cachetools import LRUCache

from config import CONTEXT_CACHE_CAPACITY, CONTEXT_MAX_TURNS
from models.conversation import ConversationContext, Turn

logger = logging.getLogger(__name__)


class SessionScope:
    """Handle for one request that holds the session lock."""

    def __init__(self, store: "ContextStore", context: ConversationContext):
        self._store = store
        self.context = context

    async def update(self, *turns: Turn, topic: Optional[str] = None,
                     entities: Optional[Dict[str, str]] = None) -> None:
        await self._store._apply(self.context.session_id, turns, topic, entities)


class ContextStore:
    """
    Per-session conversation state.

    Contexts are held in an LRU cache of explicit capacity over an optional
    durable history provider. Updates to one session are serialized through a
    per-session lock; different sessions proceed independently.
    """

    def __init__(
        self,
        history_provider=None,
        capacity: int = CONTEXT_CACHE_CAPACITY,
        max_turns: int = CONTEXT_MAX_TURNS,
    ):
        """
        Initialize the context store.

        Args:
            history_provider: Object with ``load_history(session_id, limit)`` and
                ``append_turns(session_id, turns)``; None keeps contexts in memory only
            capacity: Maximum number of cached sessions
            max_turns: Hard bound on turns kept per session
        """
        self.history_provider = history_provider
        self.max_turns = max_turns
        self._cache: LRUCache = LRUCache(maxsize=capacity)
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()
        logger.info(f"ContextStore initialized (capacity={capacity}, max_turns={max_turns})")

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    async def get(self, session_id: str) -> ConversationContext:
        """
        Get the context for a session, loading it from history on first use.

        Args:
            session_id: Session identifier

        Returns:
            Snapshot of the session's ConversationContext
        """
        lock = self._lock_for(session_id)
        async with lock:
            context = await self._load(session_id)
            return context.snapshot()

    async def update(self, session_id: str, *turns: Turn, topic: Optional[str] = None,
                     entities: Optional[Dict[str, str]] = None) -> None:
        """
        Prepend turns to a session's history and merge entities.

        Args:
            session_id: Session identifier
            *turns: Turns in conversation order (user, then bot)
            topic: New current topic, if any
            entities: Entities to merge into the context's entity map
        """
        lock = self._lock_for(session_id)
        async with lock:
            await self._apply(session_id, turns, topic, entities)

    @asynccontextmanager
    async def session(self, session_id: str) -> AsyncIterator[SessionScope]:
        """
        Hold the session lock for a whole request.

        Yields a SessionScope whose ``context`` is the live context and whose
        ``update`` applies turns without re-acquiring the lock.
        """
        lock = self._lock_for(session_id)
        async with lock:
            context = await self._load(session_id)
            yield SessionScope(self, context)

    async def _load(self, session_id: str) -> ConversationContext:
        context = self._cache.get(session_id)
        if context is not None:
            return context

        context = ConversationContext(session_id=session_id)
        if self.history_provider is not None:
            try:
                turns = await asyncio.to_thread(
                    self.history_provider.load_history, session_id, self.max_turns
                )
                context.history = list(turns)[: self.max_turns]
                context.current_topic = context.last_user_intent()
                logger.debug(f"Loaded {len(context.history)} turns for session {session_id}")
            except Exception as e:
                logger.warning(f"History unavailable for session {session_id}, continuing stateless: {e}")

        self._cache[session_id] = context
        return context

    async def _apply(self, session_id: str, turns, topic: Optional[str],
                     entities: Optional[Dict[str, str]]) -> None:
        context = self._cache.get(session_id)
        if context is None:
            context = await self._load(session_id)

        # The pair is prepended as a unit: user turn at index 0, bot turn after it
        context.history[:0] = turns
        del context.history[self.max_turns:]

        if topic is not None:
            context.current_topic = topic
        if entities:
            context.entities.update(entities)

        if self.history_provider is not None and turns:
            try:
                await asyncio.to_thread(self.history_provider.append_turns, session_id, list(turns))
            except Exception as e:
                logger.warning(f"Lost history update for session {session_id}: {e}")

    def __len__(self) -> int:
        return len(self._cache)
