"""Response data models."""
from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class ResponseSource:
    """Provenance of an answer."""
    title: str
    url: str
    relevance: float


@dataclass(frozen=True)
class AssistantResponse:
    """Final answer returned to the request layer."""
    content: str
    confidence: float
    intent: str
    sources: List[ResponseSource] = field(default_factory=list)
    requires_human: bool = False
    suggested_actions: List[str] = field(default_factory=list)
    response_time_ms: int = 0
