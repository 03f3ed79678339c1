"""Content acquisition data models."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class SourceConfig:
    """External page the engine is allowed to fetch."""
    name: str
    url: str
    selectors: List[str] = field(default_factory=list)
    rate_limit_seconds: float = 5.0
    category: str = "general"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceConfig":
        return cls(
            name=data["name"],
            url=data["url"],
            selectors=list(data.get("selectors", [])),
            rate_limit_seconds=float(data.get("rate_limit_seconds", 5.0)),
            category=data.get("category", "general"),
        )


@dataclass(frozen=True)
class RawBlock:
    """Text block returned by a page fetcher before filtering."""
    title: str
    text: str


@dataclass
class ContentBlock:
    """One retrieved unit of external text with provenance."""
    source_name: str
    source_url: str
    title: str
    body: str
    category: str
    relevance: float
    content_hash: str
    last_updated: datetime

    def to_payload(self) -> Dict[str, Any]:
        return {
            "source_name": self.source_name,
            "source_url": self.source_url,
            "title": self.title,
            "body": self.body,
            "category": self.category,
            "relevance": self.relevance,
            "content_hash": self.content_hash,
            "last_updated": self.last_updated.isoformat(),
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ContentBlock":
        last_updated = payload["last_updated"]
        if isinstance(last_updated, str):
            last_updated = datetime.fromisoformat(last_updated)
        return cls(
            source_name=payload["source_name"],
            source_url=payload["source_url"],
            title=payload.get("title", ""),
            body=payload["body"],
            category=payload.get("category", "general"),
            relevance=float(payload.get("relevance", 0.0)),
            content_hash=payload["content_hash"],
            last_updated=last_updated,
        )


@dataclass
class CacheEntry:
    """Cached content block keyed by URL and content hash."""
    url: str
    content_hash: str
    payload: Dict[str, Any]
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.utcnow()) >= self.expires_at
