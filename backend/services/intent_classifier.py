"""
Intent Classifier for the Muscat Airport query engine.

This module implements deterministic, pattern-based intent detection. Rules are
evaluated in a fixed priority order and the first rule that fires wins; there is
no scoring across rules. Entity extraction is a separate pass that always runs.
"""

from dataclasses import dataclass
import logging
import re
from typing import Dict, List, Optional, Pattern, Tuple

from models.conversation import ConversationContext
from models.intent import Classification, Intent, IntentType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntentRule:
    """One entry of the ordered rule table."""
    name: str
    intent: str
    confidence: float
    patterns: Tuple[Pattern, ...]

    def matches(self, query_lower: str) -> bool:
        return any(p.search(query_lower) for p in self.patterns)


def _rule(name: str, intent: str, confidence: float, *patterns: str) -> IntentRule:
    return IntentRule(name, intent, confidence, tuple(re.compile(p, re.IGNORECASE) for p in patterns))


_FLIGHT_NO = r"\b[a-z]{2}\d{3,4}\b"
_DURATION_UNIT = r"(?:minutes?|mins?|hours?|hrs?|hr)\b"
_PRICE_WORD = r"\b(?:rates?|costs?|prices?|fees?|charges?|tariffs?)\b"


class IntentClassifier:
    """
    Deterministic intent classifier.

    Priority order: flight inquiries, transportation sub-types (taxi, car rental,
    parking, directions), generic transportation, airport services, greetings,
    complaints, then topic continuation from the conversation context.
    """

    RULES: List[IntentRule] = [
        _rule(
            "flight", IntentType.FLIGHT_INQUIRY, 0.9,
            rf"\bflight\s+{_FLIGHT_NO}",
            rf"\bstatus\b.*{_FLIGHT_NO}",
            rf"\b(?:departure|arrival|gate|terminal)s?\b.*{_FLIGHT_NO}",
            r"\b(?:delayed|cancelled|canceled|on time)\b.*\bflights?\b",
            r"\bflight\s+(?:status|number|info|information|details|schedule)\b",
            r"\bcheck\b.*\bflights?\b",
        ),
        _rule(
            "taxi", IntentType.TAXI, 0.8,
            r"\b(?:taxis?|cabs?|uber|careem|otaxi|mwasalat taxi)\b",
        ),
        _rule(
            "car_rental", IntentType.CAR_RENTAL, 0.8,
            r"\b(?:rental\s+cars?|car\s+rentals?|rent(?:ing)?\s+(?:a\s+)?cars?|car\s+hire|hire\s+(?:a\s+)?cars?)\b",
            r"\b(?:can|do|is|are)\b.*\b(?:i|you|there)\b.*\b(?:rent|rental|hire)\b.*\bcars?\b",
            r"\b(?:rent|rental|hire)\b.*\b(?:available|service|services|companies|desk)\b",
        ),
        _rule(
            "parking", IntentType.PARKING, 0.8,
            r"\bparking\b",
            r"\bcar\s*parks?\b",
            r"\bpark\b.*\bcar\b",
            r"\bwhere\b.*\b(?:can\s+i\s+)?park\b",
            r"\bpark\s+(?:at|in|near)\b",
        ),
        _rule(
            "directions", IntentType.DIRECTIONS, 0.8,
            r"\b(?:how\b.*\bget\s+to|directions?\s+to|route\s+to|drive\s+to|way\s+to)\b.*\bairport\b",
            r"\b(?:how\b.*\bget\s+from|directions?\s+from|route\s+from|drive\s+from)\b.*\b(?:city|center|centre|muscat|seeb)\b",
            r"\b(?:access\s+roads?|highway|sultan\s+qaboos)\b",
            r"\b(?:what|which)\b.*\broads?\b.*\b(?:connect|airport)\b",
            r"\b(?:reach|find)\s+(?:the\s+)?airport\b",
            r"\bdirections?\b",
        ),
        _rule(
            "transport_generic", IntentType.TRANSPORTATION, 0.8,
            r"\b(?:business|first)\s+class\b.*\b(?:drop[\s-]*off|pick[\s-]*up|dedicated|special|area)\b",
            r"\b(?:drop[\s-]*off|pick[\s-]*up)\b.*\b(?:business|first)\s+class\b",
            r"\b(?:bus|buses|shuttle|transport|transportation|metro|train|mwasalat)\b",
            r"\b(?:pick[\s-]*up|drop[\s-]*off|forecourt)\b",
            rf"{_PRICE_WORD}.*\b\d*\s*{_DURATION_UNIT}",
            rf"\b{_DURATION_UNIT}.*{_PRICE_WORD}",
            rf"\bafter\b.*\b{_DURATION_UNIT}",
            rf"\bhow\s+much\b.*\b{_DURATION_UNIT}",
        ),
        _rule(
            "services", IntentType.AIRPORT_SERVICES, 0.8,
            r"\b(?:restaurants?|food|dining|eat|cafes?|coffee)\b",
            r"\b(?:shops?|shopping|stores?|duty\s+free)\b",
            r"\b(?:wi-?fi|internet|charging)\b",
            r"\b(?:lounges?|vip|business\s+class)\b",
            r"\b(?:prayer|mosque|religious)\b",
            r"\b(?:bathrooms?|restrooms?|toilets?)\b",
            r"\b(?:medical|pharmacy|doctor|clinic)\b",
            r"\blost\b.*\bfound\b",
            r"\bbaggage\b",
            r"\b(?:facilities|amenities)\b",
            r"\bwhat\b.*\b(?:is|are)\b.*\b(?:available|there)\b.*\b(?:airport|muscat)\b",
            r"\b(?:atm|currency\s+exchange|money\s+exchange|hotel|aerotel|e-?gates?|smoking|spa|massage)\b",
        ),
        _rule(
            "greeting", IntentType.GREETING, 0.7,
            r"\b(?:hello|hi|hey|salam|marhaba|good\s+(?:morning|afternoon|evening))\b",
            r"\bhow\s+are\s+you\b",
            r"\bwhat'?s\s+up\b",
            r"\b(?:thank\s+you|thanks|appreciate)\b",
        ),
        _rule(
            "complaint", IntentType.COMPLAINT, 0.8,
            r"\b(?:complain|complaint|problem|issue)s?\b",
            r"\b(?:bad|terrible|awful|disappointed|disappointing)\b",
            r"\b(?:delay|delayed|late|waiting)\b",
            r"\b(?:rude|unprofessional|poor\s+service)\b",
        ),
    ]

    # Follow-up cues that keep a transportation topic alive
    TRANSPORT_CONTINUATION_CUES = re.compile(
        r"\b(?:rates?|costs?|prices?|fees?|charges?|minutes?|mins?|hours?|hrs?|after)\b"
    )

    # Topics that are never continued
    NON_CONTINUABLE = frozenset({
        IntentType.GREETING,
        IntentType.COMPLAINT,
        IntentType.GENERAL_INFO,
        IntentType.ERROR,
    })

    AIRPORT_CODES = ("MCT", "SLL", "MSH", "DQM", "KHS")
    AIRPORT_NAMES = {
        "muscat": "MCT",
        "salalah": "SLL",
        "masirah": "MSH",
        "duqm": "DQM",
        "khasab": "KHS",
    }

    FLIGHT_NUMBER_PATTERN = re.compile(r"\b([A-Z]{2}\d{3,4})\b", re.IGNORECASE)
    TIME_REFERENCE_PATTERNS = (
        re.compile(r"\b(?:today|tomorrow|yesterday|tonight)\b", re.IGNORECASE),
        re.compile(r"\b\d{1,2}[/-]\d{1,2}[/-]\d{2,4}\b"),
        re.compile(r"\b\d{1,2}:\d{2}(?:\s*(?:am|pm))?", re.IGNORECASE),
    )
    DURATION_PATTERN = re.compile(
        r"\b((?:\d+(?:\.\d+)?|half|one|two|three|four|five|six|twelve|an?)\s*"
        r"(?:an?\s+)?(?:minutes?|mins?|hours?|hrs?|hr|days?))\b",
        re.IGNORECASE,
    )

    def classify(self, query: str, context: Optional[ConversationContext] = None) -> Classification:
        """
        Classify a query into an intent and extract its entities.

        Args:
            query: Raw user question
            context: Conversation context used for topic continuation

        Returns:
            Classification with intent, entities and the rule that fired
        """
        if not query or not query.strip():
            logger.warning("Empty query received, classifying as general_info")
            return Classification(
                intent=Intent(IntentType.GENERAL_INFO, 0.5),
                entities={},
                rule_triggered="empty",
            )

        query_lower = query.lower().strip()
        entities = self.extract_entities(query)

        for rule in self.RULES:
            if rule.matches(query_lower):
                logger.info(f"Classification: {rule.intent} ({rule.name}) - {query[:50]}")
                return Classification(
                    intent=Intent(rule.intent, rule.confidence),
                    entities=entities,
                    rule_triggered=rule.name,
                )

        continued = self._continue_topic(query_lower, context)
        if continued is not None:
            logger.info(f"Classification: {continued.type} (topic continuation) - {query[:50]}")
            return Classification(intent=continued, entities=entities, rule_triggered="continuation")

        logger.info(f"Classification: {IntentType.GENERAL_INFO} (default) - {query[:50]}")
        return Classification(
            intent=Intent(IntentType.GENERAL_INFO, 0.5),
            entities=entities,
            rule_triggered="default",
        )

    def extract_entities(self, query: str) -> Dict[str, str]:
        """
        Extract entities from the query. The first match per entity type wins.

        Args:
            query: Raw user question

        Returns:
            Dictionary of entity name to value
        """
        entities: Dict[str, str] = {}
        if not query:
            return entities

        flight_match = self.FLIGHT_NUMBER_PATTERN.search(query)
        if flight_match:
            entities["flight_number"] = flight_match.group(1).upper()

        query_upper = query.upper()
        for code in self.AIRPORT_CODES:
            if re.search(rf"\b{code}\b", query_upper):
                entities["airport_code"] = code
                break

        query_lower = query.lower()
        for name, code in self.AIRPORT_NAMES.items():
            if re.search(rf"\b{name}\b", query_lower):
                entities["airport_name"] = name
                entities.setdefault("airport_code", code)
                break

        for pattern in self.TIME_REFERENCE_PATTERNS:
            match = pattern.search(query)
            if match:
                entities["time_reference"] = match.group(0)
                break

        duration_match = self.DURATION_PATTERN.search(query)
        if duration_match:
            entities["duration"] = duration_match.group(1).lower()

        return entities

    def _continue_topic(self, query_lower: str, context: Optional[ConversationContext]) -> Optional[Intent]:
        """Re-use the previous topic for bare follow-up questions."""
        if context is None or not context.current_topic:
            return None

        topic = context.current_topic
        if topic in self.NON_CONTINUABLE:
            return None

        if topic in IntentType.TRANSPORT_FAMILY and self.TRANSPORT_CONTINUATION_CUES.search(query_lower):
            return Intent(topic, 0.8)

        return Intent(topic, 0.6)
