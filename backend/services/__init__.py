"""Services for the Muscat Airport assistant."""
from .intent_classifier import IntentClassifier
from .context_store import ContextStore
from .knowledge_matcher import KnowledgeMatcher
from .knowledge_base import KnowledgeBase
from .rate_limiter import SourceRateLimiter
from .page_fetcher import PageFetcher, PageFetchError, FetchError
from .content_acquisition import ContentAcquisitionService
from .answer_synthesizer import AnswerSynthesizer, SynthesisResult
from .response_assembler import ResponseAssembler
from .query_engine import QueryEngine
from .query_logger import QueryLogger

__all__ = ['IntentClassifier', 'ContextStore', 'KnowledgeMatcher', 'KnowledgeBase', 'SourceRateLimiter', 'PageFetcher', 'PageFetchError', 'FetchError', 'ContentAcquisitionService', 'AnswerSynthesizer', 'SynthesisResult', 'ResponseAssembler', 'QueryEngine', 'QueryLogger']
