"""In-memory providers used when no durable store is configured."""
import logging
import threading
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from models.content import CacheEntry
from models.conversation import Turn
from models.knowledge import KnowledgeEntry
from services.answer_templates import PARKING_RATES, PARKING_URL, rate_lines

logger = logging.getLogger(__name__)


DEFAULT_ENTRIES: List[KnowledgeEntry] = [
    KnowledgeEntry(
        id="kb_flight_status",
        category="flights",
        subcategory="status",
        question="How do I check my flight status?",
        answer=(
            "You can check your flight status by providing your flight number (e.g., WY123) "
            "or by visiting the flight information displays throughout the airport."
        ),
        keywords=["flight status", "check flight", "flight information"],
        priority=2,
        source_url="https://omanairports.co.om/flights",
    ),
    KnowledgeEntry(
        id="kb_wifi",
        category="services",
        subcategory="connectivity",
        question="Where can I find WiFi at the airport?",
        answer=(
            'Free WiFi is available throughout all terminals. Connect to the "OmanAirports_Free_WiFi" '
            "network and follow the instructions to get online."
        ),
        keywords=["wifi", "internet", "connection", "free wifi"],
        priority=1,
    ),
    KnowledgeEntry(
        id="kb_taxi",
        category="transportation",
        subcategory="taxi",
        question="How do I get a taxi from the airport?",
        answer=(
            "Official airport taxis are available outside the arrivals hall 24/7. "
            "You can also use ride-hailing apps like Careem and Uber."
        ),
        keywords=["taxi", "transportation", "careem", "uber", "ride"],
        priority=1,
    ),
    KnowledgeEntry(
        id="kb_prayer",
        category="services",
        subcategory="prayer",
        question="Where are the prayer rooms located?",
        answer=(
            "Prayer rooms are available in all terminals. Look for the prayer room signs "
            "or ask at the information desk for directions."
        ),
        keywords=["prayer room", "mosque", "religious", "prayer"],
        priority=1,
    ),
    KnowledgeEntry(
        id="kb_lost_baggage",
        category="baggage",
        subcategory="lost",
        question="What should I do if my baggage is lost?",
        answer=(
            "Report lost baggage immediately at the baggage claim area. Our staff will help "
            "you file a report and track your luggage."
        ),
        keywords=["lost baggage", "missing luggage", "baggage claim"],
        priority=2,
    ),
    KnowledgeEntry(
        id="kb_carry_on",
        category="security",
        subcategory="restrictions",
        question="What items are not allowed in carry-on luggage?",
        answer=(
            "Liquids over 100ml, sharp objects and flammable items are not allowed in carry-on "
            "baggage. Check the security guidelines for a complete list."
        ),
        keywords=["security", "prohibited items", "carry-on", "banned items"],
        priority=1,
    ),
    KnowledgeEntry(
        id="kb_arrival_time",
        category="flights",
        subcategory="check-in",
        question="When should I arrive at the airport for my flight?",
        answer=(
            "Arrive 2 hours early for domestic flights and 3 hours early for international "
            "flights to allow time for check-in and security."
        ),
        keywords=["check-in time", "arrival time", "how early"],
        priority=1,
    ),
    KnowledgeEntry(
        id="kb_dining",
        category="services",
        subcategory="dining",
        question="Are there restaurants and shops at the airport?",
        answer=(
            "Yes, the terminal has restaurants, cafes, duty-free shops and retail stores "
            "offering local and international options."
        ),
        keywords=["restaurants", "food", "shops", "duty free", "dining"],
        priority=1,
    ),
    KnowledgeEntry(
        id="kb_parking_rates",
        category="transportation",
        subcategory="parking",
        question="What are the parking rates?",
        answer="Short-term parking rates (P1 and P2):\n" + "\n".join(rate_lines(PARKING_RATES)),
        keywords=["parking", "rate", "car park", "parking fee"],
        priority=2,
        source_url=PARKING_URL,
    ),
]


class InMemoryHistoryProvider:
    """Conversation history kept in process memory, newest turn first."""

    def __init__(self):
        self._turns: Dict[str, List[Turn]] = defaultdict(list)
        self._lock = threading.Lock()

    def load_history(self, session_id: str, limit: int = 10) -> List[Turn]:
        with self._lock:
            return list(self._turns.get(session_id, [])[:limit])

    def append_turns(self, session_id: str, turns: List[Turn]) -> None:
        with self._lock:
            self._turns[session_id][:0] = turns


class StaticKnowledgeProvider:
    """Knowledge provider backed by a fixed list of entries."""

    def __init__(self, entries: Optional[List[KnowledgeEntry]] = None):
        self._entries = list(entries) if entries is not None else list(DEFAULT_ENTRIES)

    def load_active_entries(self) -> List[KnowledgeEntry]:
        return list(self._entries)


class InMemoryContentCache:
    """Content cache keyed by (url, content hash)."""

    def __init__(self):
        self._entries: Dict[Tuple[str, str], CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, url: str, content_hash: str) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get((url, content_hash))

    def put(self, entry: CacheEntry) -> None:
        with self._lock:
            self._entries[(entry.url, entry.content_hash)] = entry

    def unexpired(self, now: Optional[datetime] = None) -> List[CacheEntry]:
        now = now or datetime.utcnow()
        with self._lock:
            return [e for e in self._entries.values() if not e.is_expired(now)]

    def delete_expired(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.utcnow()
        with self._lock:
            expired = [key for key, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info(f"Purged {len(expired)} expired cache entries")
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
