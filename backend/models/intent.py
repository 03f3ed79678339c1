"""Intent data models."""
from dataclasses import dataclass, field
from typing import Dict


class IntentType:
    """Intent labels produced by the classifier."""
    FLIGHT_INQUIRY = "flight_inquiry"
    TAXI = "taxi"
    CAR_RENTAL = "car_rental"
    PARKING = "parking"
    DIRECTIONS = "directions"
    TRANSPORTATION = "transportation"
    AIRPORT_SERVICES = "airport_services"
    GREETING = "greeting"
    COMPLAINT = "complaint"
    GENERAL_INFO = "general_info"
    KNOWLEDGE_BASE = "knowledge_base"
    ERROR = "error"

    # Intents that share the transportation family for follow-up questions
    TRANSPORT_FAMILY = frozenset({TAXI, CAR_RENTAL, PARKING, DIRECTIONS, TRANSPORTATION})


@dataclass(frozen=True)
class Intent:
    """Detected intent with a fixed rule confidence."""
    type: str
    confidence: float


@dataclass(frozen=True)
class Classification:
    """
    Result of query classification.

    Attributes:
        intent: Detected intent and confidence
        entities: Entities extracted from the query, first match per type
        rule_triggered: Name of the rule that produced the intent
    """
    intent: Intent
    entities: Dict[str, str] = field(default_factory=dict)
    rule_triggered: str = ""
