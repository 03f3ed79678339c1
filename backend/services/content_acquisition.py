"""
Content Acquisition for the Muscat Airport query engine.

Fetches configured external pages under per-source rate limits, filters and
hashes their text blocks, and caches them with a time-to-live. A block whose
content hash is already cached (unexpired) for the same URL is reused, never
re-emitted as new.
"""

import asyncio
import dataclasses
import hashlib
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence

from config import CONTENT_TTL_HOURS, FETCH_TIMEOUT_SECONDS, SEARCH_LIMIT
from models.content import CacheEntry, ContentBlock, SourceConfig
from services.page_fetcher import PageFetchError
from services.rate_limiter import SourceRateLimiter
from services.relevance import coarse_filter, detect_category, is_official, score_relevance

logger = logging.getLogger(__name__)


# Query category -> source categories worth fetching first
RELATED_SOURCE_CATEGORIES: Dict[str, frozenset] = {
    "parking": frozenset({"parking", "transportation"}),
    "transportation": frozenset({"transportation", "parking"}),
    "flight": frozenset({"flight"}),
    "services": frozenset({"services"}),
}


def content_hash(title: str, body: str) -> str:
    """SHA-256 of the whitespace-normalized, lower-cased block text."""
    normalized = " ".join(f"{title}\n{body}".lower().split())
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


class ContentAcquisitionService:
    """Rate-limited, cached retrieval of content blocks from external sources."""

    def __init__(
        self,
        sources: Sequence[SourceConfig],
        fetcher,
        cache,
        rate_limiter: Optional[SourceRateLimiter] = None,
        ttl_hours: float = CONTENT_TTL_HOURS,
        fetch_timeout: float = FETCH_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        """
        Initialize the acquisition service.

        Args:
            sources: Configured sources, in priority order
            fetcher: Object with ``async fetch(url, selectors) -> List[RawBlock]``
            cache: Content cache provider (get, put, unexpired, delete_expired)
            rate_limiter: Shared per-source rate limiter
            ttl_hours: Lifetime of cached blocks
            fetch_timeout: Timeout in seconds for one source fetch
            clock: UTC clock, injectable for tests
        """
        self.sources = list(sources)
        self.fetcher = fetcher
        self.cache = cache
        self.rate_limiter = rate_limiter or SourceRateLimiter()
        self.ttl = timedelta(hours=ttl_hours)
        self.fetch_timeout = fetch_timeout
        self._clock = clock
        self._last_success: Dict[str, datetime] = {}
        logger.info(f"ContentAcquisitionService initialized with {len(self.sources)} sources")

    async def fetch(self, source: SourceConfig) -> List[ContentBlock]:
        """
        Fetch one source and return its filtered content blocks.

        Failures (timeout, HTTP error, parse error, network error) are logged
        and yield an empty list so other sources are unaffected.

        Args:
            source: Source to fetch

        Returns:
            List of ContentBlock objects with relevance 0.0
        """
        try:
            async with self.rate_limiter.acquire(source.name, source.rate_limit_seconds):
                raw_blocks = await asyncio.wait_for(
                    self.fetcher.fetch(source.url, source.selectors),
                    timeout=self.fetch_timeout,
                )
        except asyncio.TimeoutError:
            logger.warning(f"Source {source.name} timed out after {self.fetch_timeout}s, skipping")
            return []
        except PageFetchError as e:
            logger.warning(f"Source {source.name} failed ({e.error.code}): {e.error.message}")
            return []
        except Exception as e:
            logger.warning(f"Source {source.name} failed unexpectedly: {e}", exc_info=True)
            return []

        now = self._clock()
        blocks: List[ContentBlock] = []
        seen = set()
        reused = 0

        for raw in raw_blocks:
            text = coarse_filter(raw.text)
            if text is None:
                continue

            digest = content_hash(raw.title, text)
            if digest in seen:
                continue
            seen.add(digest)

            cached = await self._cache_get(source.url, digest)
            if cached is not None and not cached.is_expired(now):
                blocks.append(ContentBlock.from_payload(cached.payload))
                reused += 1
                continue

            category = detect_category(f"{raw.title}\n{text}")
            if category == "general":
                category = source.category
            block = ContentBlock(
                source_name=source.name,
                source_url=source.url,
                title=raw.title or source.name,
                body=text,
                category=category,
                relevance=0.0,
                content_hash=digest,
                last_updated=now,
            )
            await self._cache_put(CacheEntry(
                url=source.url,
                content_hash=digest,
                payload=block.to_payload(),
                expires_at=now + self.ttl,
            ))
            blocks.append(block)

        self._last_success[source.url] = now
        logger.info(
            f"Source {source.name}: {len(raw_blocks)} raw blocks, {len(blocks)} kept, {reused} from cache",
            extra={"source": source.name},
        )
        return blocks

    async def search(self, query: str, limit: int = SEARCH_LIMIT) -> List[ContentBlock]:
        """
        Find the content blocks most relevant to a query.

        The cache is consulted first; live fetches run one source at a time,
        sources matching the query's category first, and stop as soon as
        ``limit`` relevant blocks are known.

        Args:
            query: User question
            limit: Maximum number of blocks

        Returns:
            Blocks sorted by relevance (official sources win ties)
        """
        if not query or not query.strip():
            return []

        found: Dict[str, ContentBlock] = {}
        order: Dict[str, int] = {}
        now = self._clock()

        cached_entries = await self._cache_unexpired(now)
        for entry in cached_entries or []:
            self._consider(query, ContentBlock.from_payload(entry.payload), found, order)

        if len(found) >= limit:
            logger.info(f"Search served from cache: {len(found)} relevant blocks")
            return self._ranked(found, order)[:limit]

        for source in self._ordered_sources(query):
            if cached_entries is not None and self._is_fresh(source, now):
                continue
            for block in await self.fetch(source):
                self._consider(query, block, found, order)
            if len(found) >= limit:
                break

        results = self._ranked(found, order)[:limit]
        logger.info(f"Search found {len(results)} blocks for: {query[:50]}")
        return results

    async def refresh_all(self) -> Dict[str, int]:
        """Fetch every source once; returns the block count per source."""
        counts = {}
        for source in self.sources:
            counts[source.name] = len(await self.fetch(source))
        return counts

    async def purge_expired(self) -> int:
        """Delete expired cache entries; returns how many were removed."""
        try:
            return await asyncio.to_thread(self.cache.delete_expired, self._clock())
        except Exception as e:
            logger.warning(f"Cache purge failed: {e}")
            return 0

    def _consider(self, query: str, block: ContentBlock, found: Dict[str, ContentBlock],
                  order: Dict[str, int]) -> None:
        relevance = score_relevance(query, f"{block.title}\n{block.body}", block.category)
        if relevance is None:
            return
        existing = found.get(block.content_hash)
        if existing is None:
            order[block.content_hash] = len(order)
        elif existing.relevance >= relevance:
            return
        found[block.content_hash] = dataclasses.replace(block, relevance=relevance)

    @staticmethod
    def _ranked(found: Dict[str, ContentBlock], order: Dict[str, int]) -> List[ContentBlock]:
        return sorted(
            found.values(),
            key=lambda b: (-b.relevance, not is_official(b.source_url), order[b.content_hash]),
        )

    def _ordered_sources(self, query: str) -> List[SourceConfig]:
        related = RELATED_SOURCE_CATEGORIES.get(detect_category(query), frozenset())
        matching = [s for s in self.sources if s.category in related]
        others = [s for s in self.sources if s.category not in related]
        return matching + others

    def _is_fresh(self, source: SourceConfig, now: datetime) -> bool:
        last = self._last_success.get(source.url)
        return last is not None and now - last < self.ttl

    async def _cache_get(self, url: str, digest: str) -> Optional[CacheEntry]:
        try:
            return await asyncio.to_thread(self.cache.get, url, digest)
        except Exception as e:
            logger.warning(f"Cache read failed for {url}: {e}")
            return None

    async def _cache_put(self, entry: CacheEntry) -> None:
        try:
            await asyncio.to_thread(self.cache.put, entry)
        except Exception as e:
            logger.warning(f"Cache write failed for {entry.url}, block left uncached: {e}")

    async def _cache_unexpired(self, now: datetime) -> Optional[List[CacheEntry]]:
        try:
            return await asyncio.to_thread(self.cache.unexpired, now)
        except Exception as e:
            logger.warning(f"Cache unavailable, searching live sources only: {e}")
            return None
