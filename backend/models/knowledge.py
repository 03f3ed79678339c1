"""Knowledge base data models."""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class KnowledgeEntry:
    """Curated question/answer fact."""
    id: str
    category: str
    subcategory: str
    question: str
    answer: str
    keywords: List[str] = field(default_factory=list)
    priority: int = 0
    source_url: Optional[str] = None


@dataclass
class ScoredEntry:
    """Knowledge entry with its raw score and normalized relevance."""
    entry: KnowledgeEntry
    score: int
    relevance: float


@dataclass
class KnowledgeMatch:
    """
    Outcome of matching a query against the knowledge base.

    Attributes:
        candidates: Ranked entries above the floor (at most top-k)
        short_circuit: True when the best entry is strong enough to answer alone
    """
    candidates: List[ScoredEntry]
    short_circuit: bool = False

    @property
    def best(self) -> ScoredEntry:
        return self.candidates[0]
