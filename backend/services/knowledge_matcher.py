"""Scored matching of queries against the curated knowledge base."""
import logging
import re
from typing import Dict, FrozenSet, List, Optional, Sequence, Set

from config import (
    MATCHER_CONCEPT_WEIGHT,
    MATCHER_KEYWORD_WEIGHT,
    MATCHER_MAX_SCORE,
    MATCHER_MIN_RELEVANCE,
    MATCHER_MIN_SCORE,
    MATCHER_QUESTION_FORM_WEIGHT,
    MATCHER_QUESTION_WORD_WEIGHT,
    MATCHER_SHORT_CIRCUIT_RELEVANCE,
    MATCHER_TOP_K,
)
from models.knowledge import KnowledgeEntry, KnowledgeMatch, ScoredEntry

logger = logging.getLogger(__name__)


# Canonical concept -> phrasings that refer to it
CONCEPT_ALIASES: Dict[str, List[str]] = {
    "parking rates": [
        "parking charges", "parking fees", "parking tariff", "car park rates",
        "car park charges", "parking cost", "rate for 1 hr", "1 hr rate", "one hour rate",
    ],
    "currency exchange": [
        "money exchange", "foreign exchange", "forex counter", "exchange money", "exchange currency",
    ],
    "banking": ["atm", "cash withdrawal", "bank counter", "banks"],
    "hotel": ["aerotel", "airport hotel"],
    "e-gates": ["egates", "e gate", "electronic gate", "automated immigration"],
    "smoking": ["smoking area", "smoking zone"],
    "spa": ["spa services", "be relax", "berelax", "massage", "relaxation", "be relax spa"],
}

STOPWORDS: FrozenSet[str] = frozenset({
    "the", "and", "for", "are", "is", "was", "what", "which", "where", "when", "who",
    "how", "can", "does", "did", "there", "any", "with", "from", "into", "your", "you",
    "our", "this", "that", "these", "those", "have", "has", "will", "would", "should",
    "could", "about", "much", "many", "some", "get", "i", "my", "me", "a", "an", "at",
    "in", "on", "of", "to", "do", "be", "it", "or", "by", "as", "if", "not",
})

YES_NO_LEADS = (
    "is", "are", "can", "do", "does", "did", "will", "would", "should", "could",
    "may", "was", "were", "have", "has",
)

WORD_PATTERN = re.compile(r"[a-z0-9][a-z0-9\-']*")


def _stem(word: str) -> str:
    """Crude plural folding so 'rates' and 'rate' compare equal."""
    if len(word) > 4 and word.endswith("ies"):
        return word[:-3] + "y"
    if len(word) > 3 and word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def tokenize(text: str) -> List[str]:
    return WORD_PATTERN.findall(text.lower())


def content_words(text: str) -> Set[str]:
    """Stemmed words longer than two characters that are not stopwords."""
    return {_stem(w) for w in tokenize(text) if len(w) > 2 and w not in STOPWORDS}


def question_form(text: str) -> Optional[str]:
    """
    Detect the grammatical form of a question.

    Returns:
        One of yes_no, how_much, how_many, how, which, where, what, when, who, or None
    """
    words = tokenize(text)
    if not words:
        return None
    lead = words[0]
    if lead == "how" and len(words) > 1 and words[1] in ("much", "many"):
        return f"how_{words[1]}"
    if lead in ("how", "which", "where", "what", "when", "who"):
        return lead
    if lead in YES_NO_LEADS:
        return "yes_no"
    return None


class KnowledgeMatcher:
    """
    Scores a query against knowledge entries.

    Weights and thresholds default to config values and can be overridden per
    instance.
    """

    def __init__(
        self,
        keyword_weight: int = MATCHER_KEYWORD_WEIGHT,
        question_word_weight: int = MATCHER_QUESTION_WORD_WEIGHT,
        concept_weight: int = MATCHER_CONCEPT_WEIGHT,
        question_form_weight: int = MATCHER_QUESTION_FORM_WEIGHT,
        max_score: float = MATCHER_MAX_SCORE,
        min_score: int = MATCHER_MIN_SCORE,
        min_relevance: float = MATCHER_MIN_RELEVANCE,
        short_circuit_relevance: float = MATCHER_SHORT_CIRCUIT_RELEVANCE,
        top_k: int = MATCHER_TOP_K,
        concepts: Optional[Dict[str, List[str]]] = None,
    ):
        self.keyword_weight = keyword_weight
        self.question_word_weight = question_word_weight
        self.concept_weight = concept_weight
        self.question_form_weight = question_form_weight
        self.max_score = max_score
        self.min_score = min_score
        self.min_relevance = min_relevance
        self.short_circuit_relevance = short_circuit_relevance
        self.top_k = top_k
        self.concepts = concepts if concepts is not None else CONCEPT_ALIASES

    def score(self, query: str, entry: KnowledgeEntry) -> int:
        """
        Compute the raw score of an entry for a query.

        Args:
            query: User question
            entry: Knowledge entry to score

        Returns:
            Raw integer score
        """
        query_lower = query.lower()
        score = 0

        # Keywords as whole words, plural tolerant
        for keyword in entry.keywords:
            kw = keyword.lower().strip()
            if kw and re.search(rf"\b{re.escape(kw)}(?:s|es)?\b", query_lower):
                score += self.keyword_weight

        # Content words shared with the entry's question
        shared = content_words(query) & content_words(entry.question)
        score += self.question_word_weight * len(shared)

        # Concepts mentioned in the query that line up with the entry's keywords
        entry_keywords = {_stem(w) for kw in entry.keywords for w in tokenize(kw)}
        for concept in self._concepts_in(query_lower):
            concept_words = {_stem(w) for phrase in [concept, *self.concepts[concept]] for w in tokenize(phrase)}
            if concept_words & entry_keywords:
                score += self.concept_weight

        form = question_form(query)
        if form is not None and form == question_form(entry.question):
            score += self.question_form_weight

        return score

    def relevance(self, score: int) -> float:
        return min(max(score / self.max_score, 0.0), 1.0)

    def rank(self, query: str, entries: Sequence[KnowledgeEntry]) -> List[ScoredEntry]:
        """
        Score and rank every entry above the floor.

        Ties on score are broken by priority (higher first), then insertion order.
        """
        if not query or not query.strip():
            return []

        ranked = []
        for index, entry in enumerate(entries):
            raw = self.score(query, entry)
            relevance = self.relevance(raw)
            if raw < self.min_score or relevance <= self.min_relevance:
                continue
            ranked.append((raw, entry.priority, index, ScoredEntry(entry=entry, score=raw, relevance=relevance)))

        ranked.sort(key=lambda item: (-item[0], -item[1], item[2]))
        return [item[3] for item in ranked]

    def best_match(self, query: str, entries: Sequence[KnowledgeEntry]) -> Optional[KnowledgeMatch]:
        """
        Find the best knowledge entries for a query.

        Args:
            query: User question
            entries: Active knowledge entries

        Returns:
            KnowledgeMatch holding only the top entry when it is strong enough to
            short-circuit content acquisition, otherwise the top-k entries; None
            when nothing clears the floor
        """
        ranked = self.rank(query, entries)
        if not ranked:
            logger.debug(f"No knowledge match for: {query[:50]}")
            return None

        top = ranked[0]
        if top.relevance > self.short_circuit_relevance:
            logger.info(f"Knowledge short-circuit: {top.entry.id} (relevance={top.relevance:.2f})")
            return KnowledgeMatch(candidates=[top], short_circuit=True)

        logger.info(f"Knowledge candidates: {len(ranked[:self.top_k])} (top={top.entry.id}, relevance={top.relevance:.2f})")
        return KnowledgeMatch(candidates=ranked[: self.top_k], short_circuit=False)

    def _concepts_in(self, query_lower: str) -> List[str]:
        found = []
        for concept, aliases in self.concepts.items():
            for phrase in [concept, *aliases]:
                if re.search(rf"\b{re.escape(phrase)}\b", query_lower):
                    found.append(concept)
                    break
        return found
