"""Category detection, coarse filtering and relevance scoring for scraped content."""
import logging
import re
from typing import Dict, List, Optional, Sequence
from urllib.parse import urlparse

from config import MAX_BLOCK_CHARS, MIN_BLOCK_CHARS, MIN_WORD_OVERLAP, OFFICIAL_DOMAINS
from services.knowledge_matcher import content_words

logger = logging.getLogger(__name__)


# Ordered: earlier categories win ties
CATEGORY_KEYWORDS: Dict[str, List[str]] = {
    "parking": [
        "parking", "park", "car park", "p1", "p2", "p3", "p5", "short term", "long term",
        "forecourt", "tariff", "vehicle",
    ],
    "transportation": [
        "taxi", "cab", "bus", "shuttle", "transport", "car rental", "rent", "hire", "drive",
        "road", "highway", "directions", "pick up", "pickup", "drop off", "dropoff", "mwasalat",
        "careem", "uber", "chauffeur",
    ],
    "flight": [
        "flight", "flights", "departure", "departures", "arrival", "arrivals", "gate", "boarding",
        "check-in", "airline", "delayed", "cancelled",
    ],
    "services": [
        "restaurant", "restaurants", "cafe", "dining", "food", "shop", "shopping", "duty free",
        "lounge", "wifi", "prayer", "restroom", "toilet", "pharmacy", "medical", "baggage",
        "luggage", "atm", "currency", "exchange", "spa", "hotel", "facilities", "amenities",
    ],
    "general": [
        "airport", "terminal", "information", "contact", "help", "hours",
    ],
}

ALLOW_TERMS = (
    "airport", "terminal", "flight", "gate", "parking", "taxi", "bus", "shuttle", "rental",
    "car", "omr", "rate", "lounge", "restaurant", "cafe", "shop", "baggage", "luggage",
    "check-in", "arrival", "departure", "passenger", "prayer", "wifi", "service", "facility",
    "facilities", "pick", "drop", "forecourt", "level", "minutes", "hours",
)

REJECT_TERMS = (
    "vacation", "holiday package", "captcha", "advertisement", "sponsored", "cookie", "cookies",
    "subscribe", "newsletter", "privacy policy", "terms and conditions", "all rights reserved",
    "sign up", "javascript",
)


def _count_terms(text_lower: str, terms: Sequence[str]) -> int:
    return sum(1 for term in terms if re.search(rf"\b{re.escape(term)}\b", text_lower))


def detect_category(text: str) -> str:
    """
    Pick the category with the most keyword hits.

    Ties go to the category listed first; no hits at all gives ``general``.
    """
    text_lower = text.lower()
    best, best_hits = "general", 0
    for category, keywords in CATEGORY_KEYWORDS.items():
        hits = _count_terms(text_lower, keywords)
        if hits > best_hits:
            best, best_hits = category, hits
    return best


def coarse_filter(text: str, min_chars: int = MIN_BLOCK_CHARS, max_chars: int = MAX_BLOCK_CHARS) -> Optional[str]:
    """
    Apply the length bound and allow/reject lists to a raw block.

    Returns:
        The (possibly truncated) text when the block is kept, otherwise None
    """
    text = text.strip()
    if len(text) < min_chars:
        return None

    text_lower = text.lower()
    allow_hits = _count_terms(text_lower, ALLOW_TERMS)
    reject_hits = _count_terms(text_lower, REJECT_TERMS)
    if allow_hits == 0 or reject_hits >= allow_hits:
        return None

    if len(text) > max_chars:
        cut = text.rfind("\n", 0, max_chars)
        text = text[: cut if cut > min_chars else max_chars].rstrip()
    return text


def score_relevance(query: str, text: str, category: str, min_overlap: int = MIN_WORD_OVERLAP) -> Optional[float]:
    """
    Score a block against a query.

    Combines the share of query words found in the block, a bonus when the
    block's category matches the query's detected category, and a penalty per
    reject-list term.

    Args:
        query: User question
        text: Block text (title and body)
        category: Category tag of the block
        min_overlap: Minimum number of shared content words

    Returns:
        Relevance in [0, 1], or None when the block fails the overlap threshold
    """
    query_words = content_words(query)
    if not query_words:
        return None

    overlap = len(query_words & content_words(text))
    if overlap < min_overlap:
        return None

    score = 0.6 * overlap / len(query_words)

    query_category = detect_category(query)
    if query_category != "general" and query_category == category:
        score += 0.3

    text_lower = text.lower()
    score += min(0.1, 0.02 * _count_terms(text_lower, ALLOW_TERMS))
    score -= 0.2 * _count_terms(text_lower, REJECT_TERMS)

    return min(max(score, 0.0), 1.0)


def is_official(url: str, domains: Sequence[str] = OFFICIAL_DOMAINS) -> bool:
    """True when the URL's host is one of the official airport domains."""
    host = (urlparse(url).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return any(host == d or host.endswith("." + d) for d in domains)
