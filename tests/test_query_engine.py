"""
Integration tests for QueryEngine.

Uses the real classifier, context store, knowledge matcher, synthesizer and
assembler; only content acquisition and the query logger are mocked.
"""

import sys
sys.path.insert(0, 'backend')

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock, Mock

import pytest
from config import OFFICIAL_SITE_URL, TRANSPORT_PAGE_URL
from models.content import ContentBlock
from models.conversation import ConversationContext, Turn
from services.answer_synthesizer import AnswerSynthesizer
from services.answer_templates import (
    ERROR_MESSAGE,
    FLIGHTS_URL,
    GREETING_MESSAGE,
    REPHRASE_MESSAGE,
)
from services.context_store import ContextStore
from services.intent_classifier import IntentClassifier
from services.knowledge_base import KnowledgeBase
from services.knowledge_matcher import KnowledgeMatcher
from services.memory_store import DEFAULT_ENTRIES, StaticKnowledgeProvider
from services.query_engine import QueryEngine
from services.response_assembler import ResponseAssembler


WIFI_ENTRY = next(e for e in DEFAULT_ENTRIES if e.id == "kb_wifi")

TARIFF_BLOCK = ContentBlock(
    source_name="Muscat Airport - To & From",
    source_url=TRANSPORT_PAGE_URL,
    title="Parking Tariff",
    body="0-30 minutes | OMR 0.600\n30 minutes - 1 hour | OMR 1.100",
    category="parking",
    relevance=0.9,
    content_hash="tariff",
    last_updated=datetime(2024, 6, 1),
)


def make_engine(entries=(), matcher=None, blocks=(), classifier=None):
    acquisition = Mock()
    acquisition.search = AsyncMock(return_value=list(blocks))
    engine = QueryEngine(
        classifier=classifier or IntentClassifier(),
        context_store=ContextStore(),
        knowledge_base=KnowledgeBase(StaticKnowledgeProvider(list(entries))),
        matcher=matcher or KnowledgeMatcher(),
        acquisition=acquisition,
        synthesizer=AnswerSynthesizer(),
        assembler=ResponseAssembler(),
        query_logger=Mock(),
    )
    return engine, acquisition


class TestQueryEngine:
    """Test suite for QueryEngine.process_query."""

    @pytest.mark.asyncio
    async def test_car_rental_template_answer(self):
        """Test that a car rental question is answered from its template."""
        engine, acquisition = make_engine()

        response = await engine.process_query("Is car rental available at the airport?", "s1")

        assert response.intent == "car_rental"
        assert "Avis" in response.content
        assert response.confidence == 0.7
        assert response.sources[0].url == TRANSPORT_PAGE_URL
        assert response.requires_human is False
        assert response.suggested_actions == ["book_taxi", "view_parking_rates", "check_bus_schedule"]
        acquisition.search.assert_awaited_once_with("Is car rental available at the airport?")

    @pytest.mark.asyncio
    async def test_parking_rate_from_content(self):
        """Test that a duration question gets the literal rate from retrieved content."""
        engine, _ = make_engine(blocks=[TARIFF_BLOCK])

        response = await engine.process_query("What is the parking rate for 30 minutes?", "s1")

        assert response.intent == "parking"
        assert "**OMR 0.600**" in response.content
        assert response.confidence == 0.9
        assert response.sources[0].url == TRANSPORT_PAGE_URL

    @pytest.mark.asyncio
    async def test_greeting_skips_retrieval(self):
        """Test that greetings are answered without touching content sources."""
        engine, acquisition = make_engine()

        response = await engine.process_query("Hello there", "s1")

        assert response.intent == "greeting"
        assert response.content == GREETING_MESSAGE
        assert response.confidence == 0.7
        acquisition.search.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_complaint_requires_human(self):
        """Test that complaints are escalated."""
        engine, _ = make_engine()

        response = await engine.process_query("The staff were rude and I want to complain", "s1")

        assert response.intent == "complaint"
        assert response.requires_human is True
        assert response.confidence == 0.8

    @pytest.mark.asyncio
    async def test_flight_number_answer(self):
        """Test that flight questions with a flight number point to the flights page."""
        engine, acquisition = make_engine()

        response = await engine.process_query("What is the status of flight WY123?", "s1")

        assert response.intent == "flight_inquiry"
        assert "WY123" in response.content
        assert response.sources[0].url == FLIGHTS_URL
        acquisition.search.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_knowledge_short_circuit(self):
        """Test that a strong knowledge match answers without content acquisition."""
        engine, acquisition = make_engine(
            entries=[WIFI_ENTRY],
            matcher=KnowledgeMatcher(short_circuit_relevance=0.4),
        )

        response = await engine.process_query("Where can I find WiFi at the airport?", "s1")

        assert response.intent == "knowledge_base"
        assert response.content == WIFI_ENTRY.answer
        assert response.sources[0].title == "Knowledge Base - services"
        assert response.sources[0].url == OFFICIAL_SITE_URL
        assert response.confidence == pytest.approx(52 / 120)
        acquisition.search.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_knowledge_candidates_feed_synthesis(self):
        """Test that weaker knowledge matches are used as content blocks."""
        engine, acquisition = make_engine(entries=[WIFI_ENTRY])

        response = await engine.process_query("Where can I find WiFi at the airport?", "s1")

        assert response.intent == "airport_services"
        assert "Free WiFi is available throughout all terminals." in response.content
        assert response.sources[0].title == WIFI_ENTRY.question
        assert response.confidence == 0.9
        acquisition.search.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rephrase_when_nothing_found(self):
        """Test the rephrase fallback when no content and no template apply."""
        engine, _ = make_engine()

        response = await engine.process_query("Tell me something nice", "s1")

        assert response.intent == "general_info"
        assert response.content == REPHRASE_MESSAGE
        assert response.confidence == 0.3
        assert response.sources == []

    @pytest.mark.asyncio
    async def test_pipeline_fault_returns_error_response(self):
        """Test that unexpected faults produce the fixed apology and leave context untouched."""
        classifier = Mock()
        classifier.classify.side_effect = RuntimeError("boom")
        engine, _ = make_engine(classifier=classifier)

        response = await engine.process_query("Is car rental available?", "s1")

        assert response.intent == "error"
        assert response.content == ERROR_MESSAGE
        assert response.confidence == 0.1
        assert response.requires_human is True

        context = await engine.context_store.get("s1")
        assert context.history == []

        kwargs = engine.query_logger.log_response.call_args.kwargs
        assert kwargs["rule_triggered"] == "error"
        assert kwargs["tier"] == "error"

    @pytest.mark.asyncio
    async def test_context_updated_and_topic_continued(self):
        """Test that each exchange is recorded and a bare follow-up keeps the topic."""
        engine, _ = make_engine()

        await engine.process_query("Is car rental available at the airport?", "s1")
        context = await engine.context_store.get("s1")

        assert [t.role for t in context.history] == ["user", "bot"]
        assert context.history[0].text == "Is car rental available at the airport?"
        assert context.history[0].intent == "car_rental"
        assert context.current_topic == "car_rental"

        response = await engine.process_query("Does Avis have a desk?", "s1")
        context = await engine.context_store.get("s1")

        assert response.intent == "car_rental"
        assert "Avis" in response.content
        assert len(context.history) == 4
        assert context.history[0].text == "Does Avis have a desk?"

    @pytest.mark.asyncio
    async def test_concurrent_queries_same_session(self):
        """Test that concurrent requests for one session both land in its history."""
        engine, _ = make_engine()

        await asyncio.gather(
            engine.process_query("Hello there", "s1"),
            engine.process_query("Is car rental available at the airport?", "s1"),
        )
        context = await engine.context_store.get("s1")

        assert len(context.history) == 4
        assert [t.role for t in context.history] == ["user", "bot", "user", "bot"]

    @pytest.mark.asyncio
    async def test_query_logged(self):
        """Test that each answered query is handed to the query logger."""
        engine, _ = make_engine()

        await engine.process_query("Is car rental available at the airport?", "s1")

        engine.query_logger.log_response.assert_called_once()
        kwargs = engine.query_logger.log_response.call_args.kwargs
        assert kwargs["session_id"] == "s1"
        assert kwargs["intent"] == "car_rental"
        assert kwargs["rule_triggered"] == "car_rental"
        assert kwargs["sub_type"] == "car_rental"
        assert kwargs["tier"] == "template"
        assert kwargs["source_count"] == 1
        assert kwargs["requires_human"] is False

    @pytest.mark.asyncio
    async def test_bot_turn_stamped_after_user_turn(self):
        """Test that the bot turn of an exchange sorts after its user turn."""
        engine, _ = make_engine()

        await engine.process_query("Is car rental available at the airport?", "s1")
        context = await engine.context_store.get("s1")

        user_turn, bot_turn = context.history
        assert bot_turn.timestamp > user_turn.timestamp

    def test_general_follow_up_keeps_user_topic(self):
        """Test that a general follow-up continues the user's topic, not the bot's intent."""
        context = ConversationContext(session_id="s1", history=[
            Turn(role="bot", text="Free WiFi is available.", timestamp=datetime(2024, 6, 1, 12, 0, 1),
                 intent="knowledge_base"),
            Turn(role="user", text="Is there parking?", timestamp=datetime(2024, 6, 1, 12), intent="parking"),
        ])

        assert QueryEngine._next_topic("general_info", context) == "parking"
