"""Data models for the Muscat Airport query engine."""
from .intent import Intent, IntentType, Classification
from .conversation import ConversationContext, Turn
from .knowledge import KnowledgeEntry, ScoredEntry, KnowledgeMatch
from .content import SourceConfig, RawBlock, ContentBlock, CacheEntry
from .response import ResponseSource, AssistantResponse
from .api import ChatRequest, ChatResponse, SessionResponse, SourceSchema

__all__ = [
    "Intent",
    "IntentType",
    "Classification",
    "ConversationContext",
    "Turn",
    "KnowledgeEntry",
    "ScoredEntry",
    "KnowledgeMatch",
    "SourceConfig",
    "RawBlock",
    "ContentBlock",
    "CacheEntry",
    "ResponseSource",
    "AssistantResponse",
    "ChatRequest",
    "ChatResponse",
    "SessionResponse",
    "SourceSchema",
]
