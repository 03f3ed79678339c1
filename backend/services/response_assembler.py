"""Response Assembler - turns synthesized content into the final response object."""
import logging
import time
from typing import Dict, List, Optional, Sequence

from models.intent import IntentType
from models.response import AssistantResponse, ResponseSource

logger = logging.getLogger(__name__)


_TRANSPORT_ACTIONS = ["book_taxi", "view_parking_rates", "check_bus_schedule"]

SUGGESTED_ACTIONS: Dict[str, List[str]] = {
    IntentType.FLIGHT_INQUIRY: ["track_flight", "set_notification", "view_terminal_map"],
    IntentType.AIRPORT_SERVICES: ["view_terminal_map", "download_app", "contact_info_desk"],
    IntentType.TRANSPORTATION: _TRANSPORT_ACTIONS,
    IntentType.TAXI: _TRANSPORT_ACTIONS,
    IntentType.CAR_RENTAL: _TRANSPORT_ACTIONS,
    IntentType.PARKING: _TRANSPORT_ACTIONS,
    IntentType.DIRECTIONS: _TRANSPORT_ACTIONS,
    IntentType.GREETING: ["check_flights", "airport_services", "transportation_info"],
    IntentType.COMPLAINT: ["contact_customer_service", "file_complaint", "speak_to_manager"],
    IntentType.KNOWLEDGE_BASE: ["browse_more_info", "related_questions", "contact_support"],
    IntentType.ERROR: ["contact_support", "try_again"],
}
DEFAULT_ACTIONS = ["browse_services", "check_flights", "contact_support"]

# Confidence used when the caller does not supply one
DEFAULT_CONFIDENCE = 0.5


class ResponseAssembler:
    """Pure combination of intent, content and sources into an AssistantResponse."""

    def __init__(self, clock=time.perf_counter):
        self._clock = clock

    def suggested_actions(self, intent: str) -> List[str]:
        return list(SUGGESTED_ACTIONS.get(intent, DEFAULT_ACTIONS))

    def assemble(
        self,
        intent: str,
        content: str,
        sources: Sequence[ResponseSource],
        start_time: float,
        confidence: Optional[float] = None,
        escalate: bool = False,
    ) -> AssistantResponse:
        """
        Build the final response.

        Args:
            intent: Response intent label
            content: Rendered answer text
            sources: Provenance of the answer
            start_time: Value of the assembler clock when the query arrived
            confidence: Response confidence, clamped to [0, 1]
            escalate: Synthesizer asked for a human hand-off

        Returns:
            Immutable AssistantResponse
        """
        elapsed_ms = max(int((self._clock() - start_time) * 1000), 0)
        if confidence is None:
            confidence = DEFAULT_CONFIDENCE

        return AssistantResponse(
            content=content,
            confidence=min(max(confidence, 0.0), 1.0),
            intent=intent,
            sources=list(sources),
            requires_human=intent == IntentType.COMPLAINT or escalate,
            suggested_actions=self.suggested_actions(intent),
            response_time_ms=elapsed_ms,
        )

    def error_response(self, content: str, start_time: float) -> AssistantResponse:
        """Fixed low-confidence apology used when the pipeline fails unexpectedly."""
        response = self.assemble(IntentType.ERROR, content, [], start_time, confidence=0.1, escalate=True)
        logger.debug(f"Assembled error response in {response.response_time_ms}ms")
        return response
