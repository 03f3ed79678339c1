"""Unit tests for QueryLogger and the JSON log formatter."""
import sys
sys.path.insert(0, 'backend')

import json
import logging
import pytest
from pathlib import Path
from logger import JSONFormatter
from services.query_logger import QueryLogger


@pytest.fixture
def temp_log_file(tmp_path):
    """Create a temporary log file path in a directory that does not exist yet."""
    return str(tmp_path / "logs" / "test_query_log.jsonl")


@pytest.fixture
def query_logger(temp_log_file):
    """Create a QueryLogger instance with temporary log file."""
    logger = QueryLogger(log_file_path=temp_log_file)
    yield logger
    logger.close()


def read_entries(path):
    with open(path, 'r') as f:
        return [json.loads(line) for line in f if line.strip()]


def test_log_response_creates_file(query_logger, temp_log_file):
    """Test that the log file and its parent directory are created."""
    assert Path(temp_log_file).exists()


def test_log_response_json_format(query_logger, temp_log_file):
    """Test that entries are written as JSON Lines with all fields."""
    query_logger.log_response(
        query="What is the parking rate for 30 minutes?",
        session_id="sess_abc",
        intent="parking",
        confidence=0.9,
        rule_triggered="parking",
        latency_ms=42,
        sub_type="specific_parking_rate",
        tier="specific",
        source_count=1,
        entities={"duration": "30 minutes"},
    )

    entries = read_entries(temp_log_file)
    assert len(entries) == 1
    entry = entries[0]

    assert "timestamp" in entry
    assert entry["query"] == "What is the parking rate for 30 minutes?"
    assert entry["session_id"] == "sess_abc"
    assert entry["intent"] == "parking"
    assert entry["confidence"] == 0.9
    assert entry["rule_triggered"] == "parking"
    assert entry["latency_ms"] == 42
    assert entry["sub_type"] == "specific_parking_rate"
    assert entry["tier"] == "specific"
    assert entry["source_count"] == 1
    assert entry["requires_human"] is False
    assert entry["entities"] == {"duration": "30 minutes"}


def test_optional_fields_default(query_logger, temp_log_file):
    """Test defaults for fields not supplied."""
    query_logger.log_response(
        query="Hello",
        session_id="sess_abc",
        intent="greeting",
        confidence=0.7,
        rule_triggered="greeting",
        latency_ms=3,
    )

    entry = read_entries(temp_log_file)[0]
    assert entry["sub_type"] is None
    assert entry["tier"] is None
    assert entry["source_count"] == 0
    assert entry["entities"] == {}


def test_multiple_entries_appended(query_logger, temp_log_file):
    """Test that each call appends one line."""
    for i in range(3):
        query_logger.log_response(
            query=f"question {i}",
            session_id="sess_abc",
            intent="general_info",
            confidence=0.3,
            rule_triggered="default",
            latency_ms=i,
        )

    entries = read_entries(temp_log_file)
    assert [e["query"] for e in entries] == ["question 0", "question 1", "question 2"]


def test_existing_file_is_appended(temp_log_file):
    """Test that a new logger keeps earlier entries."""
    first = QueryLogger(log_file_path=temp_log_file)
    first.log_response("q1", "s", "greeting", 0.7, "greeting", 1)
    first.close()

    second = QueryLogger(log_file_path=temp_log_file)
    second.log_response("q2", "s", "greeting", 0.7, "greeting", 1)
    second.close()

    assert [e["query"] for e in read_entries(temp_log_file)] == ["q1", "q2"]


def test_write_after_close_does_not_raise(temp_log_file):
    """Test that a failed write is logged rather than raised."""
    logger = QueryLogger(log_file_path=temp_log_file)
    logger.close()

    logger.log_response("q", "s", "greeting", 0.7, "greeting", 1)


class TestJSONFormatter:
    """Test suite for the structured log formatter."""

    def test_format_includes_context_fields(self):
        record = logging.LogRecord("services.query_engine", logging.INFO, __file__, 1, "Answered", None, None)
        record.session_id = "sess_abc"
        record.intent = "parking"

        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["logger"] == "services.query_engine"
        assert data["message"] == "Answered"
        assert data["session_id"] == "sess_abc"
        assert data["intent"] == "parking"
        assert "sub_type" not in data
