"""Configuration management for the Muscat Airport query engine."""
import os
import json
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Storage
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")
QUERY_LOG_PATH = os.getenv("QUERY_LOG_PATH", "logs/query_log.jsonl")

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173"
).split(",")

# Airport
AIRPORT_NAME = os.getenv("AIRPORT_NAME", "Muscat Airport")
OFFICIAL_SITE_URL = os.getenv("OFFICIAL_SITE_URL", "https://www.muscatairport.co.om")
TRANSPORT_PAGE_URL = f"{OFFICIAL_SITE_URL}/en/content/to-from"
OFFICIAL_DOMAINS = ("muscatairport.co.om", "omanairports.co.om")
SUPPORT_PHONE = "+968 2451 9223"

# Context Store Configuration
CONTEXT_CACHE_CAPACITY = int(os.getenv("CONTEXT_CACHE_CAPACITY", "1000"))
CONTEXT_MAX_TURNS = 10  # 5 exchanges, hard bound

# Knowledge Base Configuration
KNOWLEDGE_REFRESH_SECONDS = int(os.getenv("KNOWLEDGE_REFRESH_SECONDS", "300"))
MATCHER_KEYWORD_WEIGHT = 3
MATCHER_QUESTION_WORD_WEIGHT = 8
MATCHER_CONCEPT_WEIGHT = 20
MATCHER_QUESTION_FORM_WEIGHT = 25
MATCHER_MAX_SCORE = 120.0
MATCHER_MIN_SCORE = 15
MATCHER_MIN_RELEVANCE = 0.25
MATCHER_SHORT_CIRCUIT_RELEVANCE = 0.8
MATCHER_TOP_K = 3

# Content Acquisition Configuration
CONTENT_TTL_HOURS = int(os.getenv("CONTENT_TTL_HOURS", "24"))
FETCH_TIMEOUT_SECONDS = float(os.getenv("FETCH_TIMEOUT_SECONDS", "30"))
DEFAULT_RATE_LIMIT_SECONDS = float(os.getenv("DEFAULT_RATE_LIMIT_SECONDS", "5"))
SEARCH_LIMIT = 3
MIN_BLOCK_CHARS = 40
MAX_BLOCK_CHARS = 2000
MIN_WORD_OVERLAP = 1
SYNTHESIS_MIN_RELEVANCE = 0.3
USER_AGENT = "Mozilla/5.0 (compatible; OmanAirportsBot/1.0)"
CONTENT_SOURCES_FILE = os.getenv("CONTENT_SOURCES_FILE")

DEFAULT_CONTENT_SOURCES = [
    {
        "name": "Muscat Airport - To & From",
        "url": f"{OFFICIAL_SITE_URL}/en/content/to-from",
        "selectors": ["main", ".content", "article"],
        "category": "transportation",
        "rate_limit_seconds": DEFAULT_RATE_LIMIT_SECONDS,
    },
    {
        "name": "Muscat Airport - Facilities",
        "url": f"{OFFICIAL_SITE_URL}/en/content/facilities",
        "selectors": ["main", ".content", "article"],
        "category": "services",
        "rate_limit_seconds": DEFAULT_RATE_LIMIT_SECONDS,
    },
    {
        "name": "Muscat Airport - Restaurants",
        "url": f"{OFFICIAL_SITE_URL}/en/content/restaurants-quick-bites",
        "selectors": ["main", ".content", "article"],
        "category": "services",
        "rate_limit_seconds": DEFAULT_RATE_LIMIT_SECONDS,
    },
    {
        "name": "Muscat Airport - Primeclass Lounge",
        "url": f"{OFFICIAL_SITE_URL}/en/content/primeclass-lounge",
        "selectors": ["main", ".content", "article"],
        "category": "services",
        "rate_limit_seconds": DEFAULT_RATE_LIMIT_SECONDS,
    },
    {
        "name": "Muscat Airport - Baggage",
        "url": f"{OFFICIAL_SITE_URL}/en/content/baggage",
        "selectors": ["main", ".content", "article"],
        "category": "services",
        "rate_limit_seconds": DEFAULT_RATE_LIMIT_SECONDS,
    },
    {
        "name": "Oman Airports - Flights",
        "url": "https://omanairports.co.om/flights",
        "selectors": ["main", "table"],
        "category": "flight",
        "rate_limit_seconds": DEFAULT_RATE_LIMIT_SECONDS,
    },
]


def load_content_sources(path=None):
    """
    Load the content source definitions.

    Args:
        path: Optional JSON file holding a list of source objects

    Returns:
        List of source dictionaries

    Raises:
        ValueError: If the file does not hold a list of objects with name and url
    """
    path = path or CONTENT_SOURCES_FILE
    if not path:
        return list(DEFAULT_CONTENT_SOURCES)

    with open(path, "r", encoding="utf-8") as f:
        sources = json.load(f)

    if not isinstance(sources, list) or not all(
        isinstance(s, dict) and s.get("name") and s.get("url") for s in sources
    ):
        raise ValueError(f"Content sources file {path} must hold a list of objects with 'name' and 'url'")
    return sources


# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
