"""Durable history, knowledge and content-cache providers backed by Supabase."""
import logging
from datetime import datetime
from typing import Any, Dict, List, NamedTuple, Optional

from supabase import create_client, Client

from config import SUPABASE_URL, SUPABASE_KEY
from models.content import CacheEntry
from models.conversation import Turn
from models.knowledge import KnowledgeEntry
from services.memory_store import InMemoryContentCache, InMemoryHistoryProvider, StaticKnowledgeProvider

logger = logging.getLogger(__name__)


def _parse_timestamp(value: Any) -> datetime:
    """Parse a Supabase timestamp string (ISO 8601, optional trailing Z)."""
    if isinstance(value, datetime):
        return value
    if not value:
        return datetime.utcnow()
    text = str(value).replace("Z", "+00:00")
    parsed = datetime.fromisoformat(text)
    # Stored values are UTC; compare as naive UTC elsewhere
    return parsed.replace(tzinfo=None)


def create_supabase_client(
    supabase_url: Optional[str] = SUPABASE_URL,
    supabase_key: Optional[str] = SUPABASE_KEY,
) -> Client:
    """
    Create a Supabase client.

    Raises:
        ValueError: If Supabase credentials are missing
    """
    if not supabase_url or not supabase_key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")
    return create_client(supabase_url, supabase_key)


class SupabaseHistoryProvider:
    """Conversation history stored in the ``chat_messages`` table."""

    def __init__(self, client: Client, table_name: str = "chat_messages"):
        self.client = client
        self.table_name = table_name
        logger.info(f"Initialized SupabaseHistoryProvider with table: {table_name}")

    def load_history(self, session_id: str, limit: int = 10) -> List[Turn]:
        """
        Load the most recent turns of a session, newest first.

        Args:
            session_id: Session identifier
            limit: Maximum number of turns

        Returns:
            List of Turn objects
        """
        result = (
            self.client.table(self.table_name)
            .select("role, content, intent, created_at")
            .eq("session_id", session_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [
            Turn(
                role=row["role"],
                text=row["content"],
                timestamp=_parse_timestamp(row.get("created_at")),
                intent=row.get("intent"),
            )
            for row in result.data or []
        ]

    def append_turns(self, session_id: str, turns: List[Turn]) -> None:
        """Persist new turns for a session."""
        records = [
            {
                "session_id": session_id,
                "role": turn.role,
                "content": turn.text,
                "intent": turn.intent,
                "created_at": turn.timestamp.isoformat(),
            }
            for turn in turns
        ]
        if records:
            self.client.table(self.table_name).insert(records).execute()


class SupabaseKnowledgeProvider:
    """Curated knowledge entries stored in the ``knowledge_base`` table."""

    def __init__(self, client: Client, table_name: str = "knowledge_base"):
        self.client = client
        self.table_name = table_name
        logger.info(f"Initialized SupabaseKnowledgeProvider with table: {table_name}")

    def load_active_entries(self) -> List[KnowledgeEntry]:
        """Load all active entries in insertion order."""
        result = (
            self.client.table(self.table_name)
            .select("*")
            .eq("is_active", True)
            .order("created_at")
            .execute()
        )
        return [self._to_entry(row) for row in result.data or []]

    @staticmethod
    def _to_entry(row: Dict[str, Any]) -> KnowledgeEntry:
        return KnowledgeEntry(
            id=str(row["id"]),
            category=row.get("category") or "general",
            subcategory=row.get("subcategory") or "",
            question=row["question"],
            answer=row["answer"],
            keywords=list(row.get("keywords") or []),
            priority=int(row.get("priority") or 0),
            source_url=row.get("source_url"),
        )


class SupabaseContentCache:
    """Scraped content blocks stored in the ``content_cache`` table."""

    def __init__(self, client: Client, table_name: str = "content_cache"):
        self.client = client
        self.table_name = table_name
        logger.info(f"Initialized SupabaseContentCache with table: {table_name}")

    def get(self, url: str, content_hash: str) -> Optional[CacheEntry]:
        result = (
            self.client.table(self.table_name)
            .select("*")
            .eq("url", url)
            .eq("content_hash", content_hash)
            .limit(1)
            .execute()
        )
        if not result.data:
            return None
        return self._to_entry(result.data[0])

    def put(self, entry: CacheEntry) -> None:
        self.client.table(self.table_name).upsert(
            {
                "url": entry.url,
                "content_hash": entry.content_hash,
                "payload": entry.payload,
                "expires_at": entry.expires_at.isoformat(),
            },
            on_conflict="url,content_hash",
        ).execute()

    def unexpired(self, now: Optional[datetime] = None) -> List[CacheEntry]:
        now = now or datetime.utcnow()
        result = (
            self.client.table(self.table_name)
            .select("*")
            .gt("expires_at", now.isoformat())
            .execute()
        )
        return [self._to_entry(row) for row in result.data or []]

    def delete_expired(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.utcnow()
        result = (
            self.client.table(self.table_name)
            .delete()
            .lte("expires_at", now.isoformat())
            .execute()
        )
        count = len(result.data or [])
        logger.info(f"Purged {count} expired cache entries")
        return count

    @staticmethod
    def _to_entry(row: Dict[str, Any]) -> CacheEntry:
        return CacheEntry(
            url=row["url"],
            content_hash=row["content_hash"],
            payload=row["payload"],
            expires_at=_parse_timestamp(row["expires_at"]),
        )


class Stores(NamedTuple):
    """Providers used by the query engine."""
    history: Any
    knowledge: Any
    cache: Any
    durable: bool


def create_stores(
    supabase_url: Optional[str] = SUPABASE_URL,
    supabase_key: Optional[str] = SUPABASE_KEY,
) -> Stores:
    """
    Build Supabase-backed providers, or in-memory ones when no credentials are set.

    Returns:
        Stores with history, knowledge and cache providers
    """
    if not supabase_url or not supabase_key:
        logger.warning("Supabase credentials not set, using in-memory history, cache and seed knowledge base")
        return Stores(
            history=InMemoryHistoryProvider(),
            knowledge=StaticKnowledgeProvider(),
            cache=InMemoryContentCache(),
            durable=False,
        )

    client = create_supabase_client(supabase_url, supabase_key)
    logger.info("Using Supabase providers")
    return Stores(
        history=SupabaseHistoryProvider(client),
        knowledge=SupabaseKnowledgeProvider(client),
        cache=SupabaseContentCache(client),
        durable=True,
    )
