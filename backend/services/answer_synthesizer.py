"""
Answer Synthesizer for the Muscat Airport query engine.

Two tiers: a specific-answer tier for narrowly scoped rate questions (parking
duration, taxi fare) that reads the literal figure out of content blocks, and a
query-type tier that routes the query through an ordered sub-type rule table to
an extractor. Extractors lead with facts pulled from the blocks and fall back to
the sub-type's static template.
"""

from dataclasses import dataclass, field
import logging
import re
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from config import AIRPORT_NAME, SYNTHESIS_MIN_RELEVANCE, TRANSPORT_PAGE_URL
from models.content import ContentBlock
from models.response import ResponseSource
from services.answer_templates import (
    LONG_TERM_EXTRA_DAY,
    PARKING_RATES,
    PARKING_URL,
    TAXI_DESTINATION_ALIASES,
    TAXI_FARES,
    TAXI_FLAG_FALL,
    TEMPLATES,
    RateBracket,
    find_bracket,
    render,
)
from services.relevance import REJECT_TERMS

logger = logging.getLogger(__name__)


@dataclass
class SynthesisResult:
    """
    Synthesized answer.

    Attributes:
        text: Rendered answer
        sub_type: Detected sub-type (or "specific_parking_rate", "specific_taxi_fare", "general")
        tier: "specific", "extracted", "template" or "combined"
        sources: Provenance of the answer
        used_blocks: Number of content blocks that contributed facts
        escalate: True when the user should be handed to a human
    """
    text: str
    sub_type: str
    tier: str
    sources: List[ResponseSource] = field(default_factory=list)
    used_blocks: int = 0
    escalate: bool = False


def _terms(*terms: str) -> Tuple[str, ...]:
    return terms


PICKUP = _terms("pick-up", "pick up", "pickup", "collect", "collecting")
DROPOFF = _terms("drop-off", "drop off", "dropoff", "drop")
PARKING = _terms("parking", "park", "car park")
PREMIUM = _terms("business class", "first class", "vip", "premium passenger")
PRICE = _terms("rate", "cost", "price", "tariff", "charge", "fee", "much")


@dataclass(frozen=True)
class SubTypeRule:
    """
    One row of the sub-type table.

    Every group must contribute at least one term found in the query. ``focus``
    terms select the lines pulled from content blocks (defaults to the first group).
    """
    name: str
    groups: Tuple[Tuple[str, ...], ...]
    focus: Tuple[str, ...] = ()
    escalate: bool = False

    def matches(self, query_lower: str) -> bool:
        return all(any(_has_term(query_lower, term) for term in group) for group in self.groups)

    @property
    def focus_terms(self) -> Tuple[str, ...]:
        return self.focus or self.groups[0]


def _has_term(text_lower: str, term: str) -> bool:
    return re.search(rf"\b{re.escape(term)}(?:s|es)?\b", text_lower) is not None


# Ordered, most specific first; the first matching rule wins
SUB_TYPE_RULES: Tuple[SubTypeRule, ...] = (
    SubTypeRule("human_assistance", (_terms(
        "talk to a human", "speak to a human", "speak to an agent", "talk to an agent",
        "live agent", "human agent", "real person", "customer service representative",
        "speak to someone", "talk to someone", "speak to a person", "talk to a person",
        "speak to a staff member", "talk to a staff member",
    ),), escalate=True),
    SubTypeRule("forecourt_charges", (_terms("forecourt"), PRICE + ("pay",)), focus=("forecourt", "omr", "free")),
    SubTypeRule("unattended_vehicle", (_terms("unattended", "leave my car", "leave the car", "leave my vehicle"),)),
    SubTypeRule("business_pickup", (PREMIUM, PICKUP), focus=("business", "first class", "premium", "pick")),
    SubTypeRule("business_dropoff", (PREMIUM, DROPOFF + ("dedicated", "special", "area")), focus=("business", "first class", "premium", "drop")),
    SubTypeRule("pickup_timing", (PICKUP, _terms("how long", "wait", "free", "minute", "time", "charge", "early"))),
    SubTypeRule("dropoff_timing", (DROPOFF, _terms("how long", "stay", "minute", "time", "charge", "longer", "free"))),
    SubTypeRule("pickup_location", (PICKUP, _terms("where", "area", "zone", "level", "location"))),
    SubTypeRule("dropoff_location", (DROPOFF, _terms("where", "area", "zone", "level", "location", "passenger"))),
    SubTypeRule("parking_payment", (PARKING, _terms("pay", "payment", "paying", "method", "card", "cash")), focus=("pay", "payment", "card", "cash")),
    SubTypeRule("long_term_parking", (_terms("long-term", "long term", "p3", "week", "weekly", "per day", "daily", "several days"), PARKING + PRICE + ("p3",)), focus=("p3", "long", "day", "omr")),
    SubTypeRule("parking_24h", (PARKING, _terms("24-hour", "24 hour", "24/7", "overnight", "all night")), focus=("24", "hour", "omr")),
    SubTypeRule("parking_areas", (_terms("p1", "p2", "p3", "parking"), _terms("difference", "between", "compare", "area", "zone", "different", "type", "which")), focus=("p1", "p2", "p3")),
    SubTypeRule("parking_rates", (PARKING, PRICE), focus=("omr", "tariff", "rate")),
    SubTypeRule("parking_info", (PARKING,)),
    SubTypeRule("map_directions", (_terms("map"),)),
    SubTypeRule("taxi_fares", (_terms("taxi", "cab"), _terms("cost", "fare", "price", "much", "rate", "city")), focus=("taxi", "fare", "omr")),
    SubTypeRule("taxi_meter", (_terms("taxi", "cab"), _terms("meter", "metered"))),
    SubTypeRule("car_rental", (_terms(
        "car rental", "rent a car", "rental car", "car hire", "hire a car", "rent", "rental",
        "europcar", "thrifty", "budget", "avis", "hertz", "sixt", "dollar",
    ),), focus=("rental", "rent", "hire", "avis", "budget", "europcar", "dollar", "thrifty", "hertz", "sixt")),
    SubTypeRule("taxi_info", (_terms("taxi", "cab", "careem", "uber"),)),
    SubTypeRule("hotel_shuttle", (_terms("hotel"), _terms("shuttle", "transfer", "bus")), focus=("hotel", "shuttle")),
    SubTypeRule("public_transport", (_terms("bus", "shuttle", "public transport", "public transportation", "mwasalat", "metro", "train"),)),
    SubTypeRule("private_driver", (_terms("private driver", "private transfer", "chauffeur", "limousine"),)),
    SubTypeRule("directions", (_terms(
        "get to", "direction", "route", "highway", "access road", "drive to", "from city", "from muscat",
        "from seeb", "sultan qaboos", "which road", "what road", "road", "driving from", "reach the airport",
    ),), focus=("highway", "road", "route", "exit", "sultan qaboos")),
    SubTypeRule("facilities", (_terms("facilities", "facility", "amenities", "available at", "what services"),)),
    SubTypeRule("dining", (_terms("restaurant", "food", "dining", "eat", "cafe", "coffee"),)),
    SubTypeRule("shopping", (_terms("shop", "shopping", "store", "duty free", "duty-free"),)),
    SubTypeRule("connectivity", (_terms("wifi", "wi-fi", "internet", "charging"),)),
    SubTypeRule("lounge", (_terms("lounge", "vip", "business class", "primeclass"),)),
    SubTypeRule("prayer", (_terms("prayer", "mosque", "religious"),)),
    SubTypeRule("restrooms", (_terms("bathroom", "restroom", "toilet"),)),
    SubTypeRule("medical", (_terms("medical", "pharmacy", "doctor", "clinic"),)),
    SubTypeRule("baggage", (_terms("lost", "baggage", "luggage"),)),
    SubTypeRule("flight_info", (_terms("flight", "departure", "arrival", "gate", "check-in", "boarding"),)),
)

NUMBER_WORDS: Dict[str, float] = {
    "a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6,
    "twelve": 12, "half": 0.5,
}
UNIT_MINUTES: Dict[str, int] = {"min": 1, "hour": 60, "hr": 60, "day": 1440}

DURATION_PATTERN = re.compile(
    r"\b(after\s+)?(\d+(?:\.\d+)?|half|one|two|three|four|five|six|twelve|an?)\s*(?:an?\s+)?"
    r"(minutes?|mins?|hours?|hrs?|hr|days?)\b",
    re.IGNORECASE,
)
RATE_LINE_PATTERN = re.compile(
    r"(?P<label>[^\n|:]{2,80}?)\s*[|:]\s*(?:omr|ro)\s*(?P<amount>\d+(?:\.\d+)?)",
    re.IGNORECASE,
)
LABEL_NUMBER_PATTERN = re.compile(
    r"(?<![a-z\d.])(\d+(?:\.\d+)?)\s*(minutes?|mins?|hours?|hrs?|hr|days?)?",
    re.IGNORECASE,
)
TAXI_RATE_PATTERN = re.compile(
    r"(?:taxi|fare|cost)[^\n]*?omr\s*(\d+(?:\.\d+)?(?:\s*-\s*\d+(?:\.\d+)?)?)",
    re.IGNORECASE,
)
AMOUNT_PATTERN = re.compile(r"omr\s*(\d+(?:\.\d+)?(?:\s*-\s*\d+(?:\.\d+)?)?)", re.IGNORECASE)


def _unit_minutes(unit: str) -> int:
    unit = unit.lower()
    for prefix, minutes in UNIT_MINUTES.items():
        if unit.startswith(prefix):
            return minutes
    return 1


def parse_duration(query: str) -> Optional[Tuple[float, bool]]:
    """
    Extract a parking duration from a query.

    Returns:
        (minutes, after) where ``after`` marks phrasing such as "after 30 minutes",
        or None when the query names no duration
    """
    match = DURATION_PATTERN.search(query)
    if not match:
        return None
    amount_text = match.group(2).lower()
    amount = NUMBER_WORDS.get(amount_text)
    if amount is None:
        amount = float(amount_text)
    return amount * _unit_minutes(match.group(3)), bool(match.group(1))


def parse_rate_label(label: str) -> Optional[Tuple[float, float]]:
    """
    Turn a tariff label such as "30 min - 1 hr" or "1-2 hours" into a minute range.

    Numbers without a unit take the unit of the next number that has one.
    """
    tokens = LABEL_NUMBER_PATTERN.findall(label)
    if not tokens:
        return None

    values: List[Optional[float]] = []
    next_unit: Optional[str] = None
    for number, unit in reversed(tokens):
        unit = unit or next_unit
        if unit is None:
            values.append(None)
            continue
        next_unit = unit
        values.append(float(number) * _unit_minutes(unit))
    values.reverse()
    values = [v for v in values if v is not None]

    if len(values) >= 2:
        return values[0], values[1]
    label_lower = label.lower()
    if len(values) == 1 and any(cue in label_lower for cue in ("up to", "upto", "first", "less than")):
        return 0.0, values[0]
    return None


def parse_rate_table(body: str) -> List[RateBracket]:
    """Parse ``<duration> | OMR <amount>`` fragments of a block into brackets."""
    brackets = []
    for match in RATE_LINE_PATTERN.finditer(body):
        label = match.group("label").strip(" -•*\t")
        bounds = parse_rate_label(label)
        if bounds is None:
            continue
        brackets.append(RateBracket(label, int(bounds[0]), int(bounds[1]), match.group("amount")))
    return brackets


def _describe_duration(minutes: float, after: bool) -> str:
    if minutes >= 60 and minutes % 60 == 0:
        hours = int(minutes // 60)
        text = f"{hours} hour" + ("s" if hours != 1 else "")
    else:
        text = f"{int(minutes)} minutes"
    return f"after {text}" if after else f"for {text}"


def _source(block: ContentBlock) -> ResponseSource:
    return ResponseSource(title=block.title or block.source_name, url=block.source_url, relevance=block.relevance)


class AnswerSynthesizer:
    """Turns ranked content blocks into a structured, sourced answer."""

    def __init__(self, min_relevance: float = SYNTHESIS_MIN_RELEVANCE, max_fact_lines: int = 4):
        self.min_relevance = min_relevance
        self.max_fact_lines = max_fact_lines
        self._specific: List[Callable[[str, str, List[ContentBlock]], Optional[SynthesisResult]]] = [
            self._specific_parking_rate,
            self._specific_taxi_fare,
        ]

    def synthesize(self, query: str, blocks: Sequence[ContentBlock]) -> Optional[SynthesisResult]:
        """
        Build an answer for a query from candidate content blocks.

        Args:
            query: User question
            blocks: Candidate blocks (any order)

        Returns:
            SynthesisResult, or None when there is no usable content and no
            sub-type template applies
        """
        if not query or not query.strip():
            return None

        query_lower = query.lower()
        usable = sorted(
            (b for b in blocks if b.relevance > self.min_relevance),
            key=lambda b: b.relevance,
            reverse=True,
        )

        for specific in self._specific:
            result = specific(query, query_lower, usable)
            if result is not None:
                logger.info(f"Specific answer: {result.sub_type} ({result.tier})", extra={"sub_type": result.sub_type})
                return result

        rule = self.detect_sub_type(query)
        if rule is None:
            return self._combine(usable)

        logger.info(f"Detected sub-type: {rule.name}", extra={"sub_type": rule.name})
        return self._extract(rule, usable)

    def detect_sub_type(self, query: str) -> Optional[SubTypeRule]:
        """Return the first sub-type rule matching the query, or None."""
        query_lower = query.lower()
        for rule in SUB_TYPE_RULES:
            if rule.matches(query_lower):
                return rule
        return None

    def _specific_parking_rate(self, query: str, query_lower: str,
                               blocks: List[ContentBlock]) -> Optional[SynthesisResult]:
        if any(_has_term(query_lower, t) for t in ("forecourt", "taxi", "cab", "rental") + PICKUP + DROPOFF):
            return None
        asks_price = any(_has_term(query_lower, t) for t in PRICE)
        if not asks_price or not any(_has_term(query_lower, t) for t in PARKING):
            return None

        duration = parse_duration(query)
        if duration is None:
            return None
        minutes, after = duration
        # "after 30 minutes" falls into the next bracket
        target = minutes + 1 if after else minutes
        phrase = _describe_duration(minutes, after)

        for block in blocks:
            if "forecourt" in block.title.lower():
                continue
            bracket = find_bracket(parse_rate_table(block.body), target)
            if bracket is not None:
                text = (
                    f"The parking rate {phrase} at {AIRPORT_NAME} is **OMR {bracket.amount}** "
                    f"({bracket.label} bracket).\n\n"
                    f"**More Information:** [{block.title or block.source_name}]({block.source_url})"
                )
                return SynthesisResult(text, "specific_parking_rate", "specific", [_source(block)], used_blocks=1)

        if target > PARKING_RATES[-1].max_minutes:
            text = (
                f"For stays longer than 24 hours, P3 Long Term Parking at {AIRPORT_NAME} costs "
                f"**OMR {LONG_TERM_EXTRA_DAY}** per additional day after the first "
                f"24 hours (OMR {PARKING_RATES[-1].amount}).\n\n"
                f"**More Information:** [{AIRPORT_NAME} Parking]({PARKING_URL})"
            )
        else:
            bracket = find_bracket(PARKING_RATES, target)
            if bracket is None:
                return None
            text = (
                f"The parking rate {phrase} at {AIRPORT_NAME} is **OMR {bracket.amount}** "
                f"({bracket.label} bracket, P1 and P2 short-term parking).\n\n"
                f"**More Information:** [{AIRPORT_NAME} Parking]({PARKING_URL})"
            )
        source = ResponseSource(f"{AIRPORT_NAME} Parking", PARKING_URL, 0.7)
        return SynthesisResult(text, "specific_parking_rate", "template", [source])

    def _specific_taxi_fare(self, query: str, query_lower: str,
                            blocks: List[ContentBlock]) -> Optional[SynthesisResult]:
        if not any(_has_term(query_lower, t) for t in ("taxi", "cab")):
            return None
        if not any(_has_term(query_lower, t) for t in ("rate", "cost", "fare", "price", "much")):
            return None

        destination = None
        for alias, name in TAXI_DESTINATION_ALIASES.items():
            if _has_term(query_lower, alias):
                destination = name
                break

        dest_aliases = [a for a, name in TAXI_DESTINATION_ALIASES.items() if name == destination]

        for block in blocks:
            heading_and_body = f"{block.title}\n{block.body}".lower()
            if not any(_has_term(heading_and_body, t) for t in ("taxi", "cab", "fare")):
                continue
            lines = block.body.split("\n")
            if destination is not None:
                # Fare tables list one destination per row, often without the word "taxi"
                lines = [line for line in lines if any(_has_term(line.lower(), a) for a in dest_aliases)]
            for line in lines:
                match = TAXI_RATE_PATTERN.search(line)
                if match is None and destination is not None:
                    match = AMOUNT_PATTERN.search(line)
                if match:
                    where = f" to {destination}" if destination else ""
                    text = (
                        f"Taxi fares from {AIRPORT_NAME}{where}: **OMR {match.group(1)}**.\n\n"
                        f"**More Information:** [{block.title or block.source_name}]({block.source_url})"
                    )
                    return SynthesisResult(text, "specific_taxi_fare", "specific", [_source(block)], used_blocks=1)

        if destination is not None:
            text = (
                f"A taxi from {AIRPORT_NAME} to {destination} costs approximately "
                f"**OMR {TAXI_FARES[destination]}** (meters start at OMR {TAXI_FLAG_FALL}).\n\n"
                f"**More Information:** [{AIRPORT_NAME} Transportation]({TRANSPORT_PAGE_URL})"
            )
            source = ResponseSource(f"{AIRPORT_NAME} Transportation", TRANSPORT_PAGE_URL, 0.7)
            return SynthesisResult(text, "specific_taxi_fare", "template", [source])
        return None

    def _extract(self, rule: SubTypeRule, blocks: List[ContentBlock]) -> SynthesisResult:
        template = TEMPLATES[rule.name]
        facts: List[str] = []
        contributing: List[ContentBlock] = []

        for block in blocks:
            lines = self._focus_lines(block, rule.focus_terms)
            new_lines = [line for line in lines if line not in facts]
            if not new_lines:
                continue
            contributing.append(block)
            facts.extend(new_lines[: self.max_fact_lines - len(facts)])
            if len(facts) >= self.max_fact_lines:
                break

        if contributing:
            text = render(template, facts=facts, source_url=contributing[0].source_url)
            sources = [_source(b) for b in contributing]
            tier = "extracted"
        else:
            text = render(template)
            sources = [ResponseSource(template.link_label, template.url, 0.7)]
            tier = "template"

        return SynthesisResult(
            text=text,
            sub_type=rule.name,
            tier=tier,
            sources=sources,
            used_blocks=len(contributing),
            escalate=rule.escalate,
        )

    def _focus_lines(self, block: ContentBlock, focus_terms: Sequence[str]) -> List[str]:
        lines = []
        for raw_line in re.split(r"\n|(?<=[.!?])\s+(?=[A-Z])", block.body):
            line = raw_line.strip(" -•*\t")
            if len(line) < 8 or len(line) > 240:
                continue
            line_lower = line.lower()
            if any(_has_term(line_lower, term) for term in REJECT_TERMS):
                continue
            if any(_has_term(line_lower, term) for term in focus_terms):
                lines.append(line)
        return lines

    def _combine(self, blocks: List[ContentBlock]) -> Optional[SynthesisResult]:
        if not blocks:
            return None
        top = blocks[:3]
        sections = []
        for block in top:
            body = block.body if len(block.body) <= 600 else block.body[:600].rsplit(" ", 1)[0] + "..."
            sections.append(f"**{block.title or block.source_name}**\n{body}")
        links = "\n".join(f"- [{b.title or b.source_name}]({b.source_url})" for b in top)
        text = "\n\n".join(sections) + f"\n\n**More Information:**\n{links}"
        return SynthesisResult(text, "general", "combined", [_source(b) for b in top], used_blocks=len(top))
