"""
Query Engine - the request pipeline for one user question.

context -> classification -> knowledge fast path or content acquisition and
synthesis -> response assembly -> context update. Every expected absence of data
degrades the answer; only an unexpected fault produces the fixed apology.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from config import OFFICIAL_SITE_URL
from models.content import ContentBlock
from models.conversation import ConversationContext, Turn
from models.intent import Classification, IntentType
from models.knowledge import KnowledgeMatch
from models.response import AssistantResponse, ResponseSource
from services.answer_templates import (
    COMPLAINT_MESSAGE,
    ERROR_MESSAGE,
    FLIGHT_DESK_MESSAGE,
    FLIGHTS_URL,
    GREETING_MESSAGE,
    REPHRASE_MESSAGE,
)

logger = logging.getLogger(__name__)


KNOWLEDGE_SOURCE_NAME = "Knowledge Base"

# Response confidence by how the answer was produced
CONTENT_CONFIDENCE = 0.9
TEMPLATE_CONFIDENCE = 0.7
REPHRASE_CONFIDENCE = 0.3


@dataclass
class _Outcome:
    response: AssistantResponse
    tier: str
    sub_type: Optional[str] = None


class QueryEngine:
    """Coordinates classification, retrieval, synthesis and context updates."""

    def __init__(
        self,
        classifier,
        context_store,
        knowledge_base,
        matcher,
        acquisition,
        synthesizer,
        assembler,
        query_logger=None,
    ):
        """
        Initialize the query engine.

        Args:
            classifier: IntentClassifier
            context_store: ContextStore
            knowledge_base: KnowledgeBase (async ``entries()``)
            matcher: KnowledgeMatcher
            acquisition: ContentAcquisitionService
            synthesizer: AnswerSynthesizer
            assembler: ResponseAssembler
            query_logger: Optional QueryLogger for analytics
        """
        self.classifier = classifier
        self.context_store = context_store
        self.knowledge_base = knowledge_base
        self.matcher = matcher
        self.acquisition = acquisition
        self.synthesizer = synthesizer
        self.assembler = assembler
        self.query_logger = query_logger

    async def process_query(self, query: str, session_id: str) -> AssistantResponse:
        """
        Answer one user question.

        Args:
            query: User question
            session_id: Session identifier

        Returns:
            AssistantResponse; never raises for pipeline faults
        """
        start_time = time.perf_counter()
        classification: Optional[Classification] = None
        outcome: Optional[_Outcome] = None

        try:
            async with self.context_store.session(session_id) as scope:
                classification = self.classifier.classify(query, scope.context)
                outcome = await self._answer(query, classification, start_time)

                now = datetime.utcnow()
                intent = classification.intent.type
                await scope.update(
                    Turn(role="user", text=query, timestamp=now, intent=intent),
                    # Strictly later so stores ordering by timestamp keep the pair ordered
                    Turn(role="bot", text=outcome.response.content,
                         timestamp=now + timedelta(milliseconds=1), intent=outcome.response.intent),
                    topic=self._next_topic(intent, scope.context),
                    entities=classification.entities,
                )
        except Exception as e:
            logger.error(f"Query processing failed for session {session_id}: {e}", exc_info=True,
                         extra={"session_id": session_id})
            outcome = _Outcome(self.assembler.error_response(ERROR_MESSAGE, start_time), tier="error")

        response = outcome.response
        logger.info(
            f"Answered with {response.intent} ({outcome.tier}) in {response.response_time_ms}ms",
            extra={"session_id": session_id, "intent": response.intent},
        )
        self._log(query, session_id, classification, outcome)
        return response

    async def _answer(self, query: str, classification: Classification, start_time: float) -> _Outcome:
        intent = classification.intent

        if intent.type == IntentType.GREETING:
            return self._fixed(intent.type, GREETING_MESSAGE, [], start_time, intent.confidence)
        if intent.type == IntentType.COMPLAINT:
            return self._fixed(intent.type, COMPLAINT_MESSAGE, [], start_time, intent.confidence)

        entries = await self.knowledge_base.entries()
        match = self.matcher.best_match(query, entries)
        if match is not None and match.short_circuit:
            best = match.best
            logger.info(f"Knowledge base fast path: {best.entry.id}")
            response = self.assembler.assemble(
                IntentType.KNOWLEDGE_BASE,
                best.entry.answer,
                [ResponseSource(
                    title=f"Knowledge Base - {best.entry.category}",
                    url=best.entry.source_url or OFFICIAL_SITE_URL,
                    relevance=best.relevance,
                )],
                start_time,
                confidence=best.relevance,
            )
            return _Outcome(response, tier="knowledge_base")

        flight_number = classification.entities.get("flight_number")
        if intent.type == IntentType.FLIGHT_INQUIRY and flight_number:
            return self._fixed(
                intent.type,
                FLIGHT_DESK_MESSAGE.format(flight_number=flight_number),
                [ResponseSource("Oman Airports Flights", FLIGHTS_URL, intent.confidence)],
                start_time,
                intent.confidence,
            )

        blocks = list(await self.acquisition.search(query)) + self._knowledge_blocks(match)

        result = self.synthesizer.synthesize(query, blocks)
        if result is None:
            logger.info(f"No usable content for: {query[:50]}")
            response = self.assembler.assemble(intent.type, REPHRASE_MESSAGE, [], start_time,
                                               confidence=REPHRASE_CONFIDENCE)
            return _Outcome(response, tier="fallback")

        confidence = CONTENT_CONFIDENCE if result.used_blocks else TEMPLATE_CONFIDENCE
        response = self.assembler.assemble(
            intent.type,
            result.text,
            result.sources,
            start_time,
            confidence=confidence,
            escalate=result.escalate,
        )
        return _Outcome(response, tier=result.tier, sub_type=result.sub_type)

    def _fixed(self, intent: str, content: str, sources: List[ResponseSource],
               start_time: float, confidence: float) -> _Outcome:
        return _Outcome(self.assembler.assemble(intent, content, sources, start_time, confidence=confidence),
                        tier="fixed")

    @staticmethod
    def _knowledge_blocks(match: Optional[KnowledgeMatch]) -> List[ContentBlock]:
        """Knowledge candidates below the fast-path threshold, as synthesizer input."""
        if match is None:
            return []
        now = datetime.utcnow()
        return [
            ContentBlock(
                source_name=KNOWLEDGE_SOURCE_NAME,
                source_url=scored.entry.source_url or OFFICIAL_SITE_URL,
                title=scored.entry.question,
                body=scored.entry.answer,
                category=scored.entry.category,
                relevance=scored.relevance,
                content_hash=f"kb:{scored.entry.id}",
                last_updated=now,
            )
            for scored in match.candidates
        ]

    @staticmethod
    def _next_topic(intent: str, context: ConversationContext) -> Optional[str]:
        # A general question continues the previous topic
        if intent == IntentType.GENERAL_INFO and context.history:
            return context.last_user_intent() or intent
        return intent

    def _log(self, query: str, session_id: str, classification: Optional[Classification],
             outcome: _Outcome) -> None:
        if self.query_logger is None:
            return
        response = outcome.response
        self.query_logger.log_response(
            query=query,
            session_id=session_id,
            intent=response.intent,
            confidence=response.confidence,
            rule_triggered=classification.rule_triggered if classification else "error",
            latency_ms=response.response_time_ms,
            sub_type=outcome.sub_type,
            tier=outcome.tier,
            source_count=len(response.sources),
            requires_human=response.requires_human,
            entities=classification.entities if classification else {},
        )
