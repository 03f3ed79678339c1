"""Read-through view of the knowledge base provider with periodic refresh."""
import asyncio
import logging
import time
from typing import Callable, List, Optional

from config import KNOWLEDGE_REFRESH_SECONDS
from models.knowledge import KnowledgeEntry

logger = logging.getLogger(__name__)


class KnowledgeBase:
    """
    Caches active knowledge entries and reloads them when the refresh interval
    has elapsed. If the provider fails the last loaded entries stay in use.
    """

    def __init__(
        self,
        provider,
        refresh_seconds: float = KNOWLEDGE_REFRESH_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the knowledge base.

        Args:
            provider: Object with ``load_active_entries()``
            refresh_seconds: Minimum age of the loaded entries before reloading
            clock: Monotonic clock, injectable for tests
        """
        self.provider = provider
        self.refresh_seconds = refresh_seconds
        self._clock = clock
        self._entries: List[KnowledgeEntry] = []
        self._loaded_at: Optional[float] = None
        self._lock = asyncio.Lock()

    async def entries(self) -> List[KnowledgeEntry]:
        """Return active entries, refreshing them when stale."""
        if self._is_stale():
            async with self._lock:
                if self._is_stale():
                    await self.refresh()
        return list(self._entries)

    async def refresh(self) -> int:
        """
        Reload entries from the provider.

        Returns:
            Number of entries now loaded
        """
        try:
            entries = await asyncio.to_thread(self.provider.load_active_entries)
            self._entries = list(entries)
            logger.info(f"Loaded {len(self._entries)} knowledge entries")
        except Exception as e:
            logger.warning(f"Knowledge base refresh failed, keeping {len(self._entries)} entries: {e}")
        # A failed refresh still waits a full interval before retrying
        self._loaded_at = self._clock()
        return len(self._entries)

    def _is_stale(self) -> bool:
        if self._loaded_at is None:
            return True
        return self._clock() - self._loaded_at >= self.refresh_seconds
