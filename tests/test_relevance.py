"""Unit tests for category detection, coarse filtering and relevance scoring."""
import sys
sys.path.insert(0, 'backend')

import pytest
from services.relevance import coarse_filter, detect_category, is_official, score_relevance


class TestDetectCategory:
    """Test suite for detect_category."""

    @pytest.mark.parametrize("text,expected", [
        ("What is the parking rate for 30 minutes?", "parking"),
        ("How much is a taxi to the city?", "transportation"),
        ("Is my flight delayed at the gate?", "flight"),
        ("Where is the pharmacy and the prayer room?", "services"),
        ("Hello there", "general"),
    ])
    def test_categories(self, text, expected):
        """Test that the category with the most hits wins."""
        assert detect_category(text) == expected

    def test_tie_goes_to_first_category(self):
        """Test that ties are broken by table order."""
        # one parking hit, one transportation hit
        assert detect_category("parking and taxi") == "parking"


class TestCoarseFilter:
    """Test suite for coarse_filter."""

    def test_keeps_relevant_block(self):
        """Test that airport content passes."""
        text = "Parking at the airport terminal costs OMR 0.600 for the first 30 minutes."
        assert coarse_filter(text) == text

    def test_drops_short_block(self):
        """Test the minimum length bound."""
        assert coarse_filter("Airport parking") is None

    def test_drops_block_without_allow_terms(self):
        """Test that text without any allow-list term is dropped."""
        assert coarse_filter("Lorem ipsum dolor sit amet, consectetur adipiscing elit, sed do.") is None

    def test_drops_reject_dominated_block(self):
        """Test that reject-list terms outweighing allow-list terms drop the block."""
        text = "Subscribe to our newsletter for holiday package offers and cookie settings at the airport."
        assert coarse_filter(text) is None

    def test_truncates_long_block_at_line(self):
        """Test the maximum length bound."""
        line = "Airport parking is available in the P1 short term car park area."
        text = "\n".join([line] * 50)
        result = coarse_filter(text, max_chars=200)

        assert len(result) <= 200
        assert result.endswith("area.")


class TestScoreRelevance:
    """Test suite for score_relevance."""

    def test_relevance_bounded(self):
        """Test that scores stay within [0, 1]."""
        queries = ["parking rate", "taxi fare to the city", "wifi", "parking parking parking"]
        texts = [
            "Parking rates: 0-30 minutes OMR 0.600. Parking parking parking airport terminal car.",
            "Taxi fare to the city is OMR 10. Advertisement. Subscribe. Cookie.",
            "Free wifi throughout the terminal.",
        ]
        for query in queries:
            for text in texts:
                for category in ("parking", "transportation", "services", "general"):
                    score = score_relevance(query, text, category)
                    if score is not None:
                        assert 0.0 <= score <= 1.0

    def test_no_overlap_discarded(self):
        """Test that blocks failing the overlap threshold are discarded."""
        assert score_relevance("parking rate", "Free wifi in the terminal", "services") is None

    def test_category_bonus(self):
        """Test that a matching category scores higher."""
        text = "Parking rates are shown at the pay station."
        matching = score_relevance("parking rates", text, "parking")
        other = score_relevance("parking rates", text, "services")
        assert matching == pytest.approx(other + 0.3)

    def test_reject_penalty(self):
        """Test that reject-list terms lower the score."""
        clean = score_relevance("taxi fare", "Taxi fare to the city is OMR 10.", "transportation")
        noisy = score_relevance("taxi fare", "Taxi fare to the city is OMR 10. Sponsored advertisement.", "transportation")
        assert noisy < clean

    def test_stopword_only_query(self):
        """Test that a query without content words is not scored."""
        assert score_relevance("what is the", "Airport terminal parking", "parking") is None


class TestIsOfficial:
    """Test suite for is_official."""

    @pytest.mark.parametrize("url,expected", [
        ("https://www.muscatairport.co.om/en/content/to-from", True),
        ("https://omanairports.co.om/flights", True),
        ("https://news.example.com/muscatairport.co.om", False),
        ("not a url", False),
    ])
    def test_official_domains(self, url, expected):
        """Test host matching against official domains."""
        assert is_official(url) is expected
