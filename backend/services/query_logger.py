"""Query Logger - appends one JSON line per answered query for offline analysis."""
import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from config import QUERY_LOG_PATH

logger = logging.getLogger(__name__)


class QueryLogger:
    """Writes query outcomes to a JSON Lines file."""

    def __init__(self, log_file_path: str = QUERY_LOG_PATH):
        """
        Initialize the query logger.

        Args:
            log_file_path: Path of the JSONL file; parent directories are created
        """
        self.log_file_path = Path(log_file_path)
        self.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.log_file_path, "a", encoding="utf-8")
        self._lock = threading.Lock()
        logger.info(f"QueryLogger writing to {self.log_file_path}")

    def log_response(
        self,
        query: str,
        session_id: str,
        intent: str,
        confidence: float,
        rule_triggered: str,
        latency_ms: int,
        sub_type: Optional[str] = None,
        tier: Optional[str] = None,
        source_count: int = 0,
        requires_human: bool = False,
        entities: Optional[Dict[str, str]] = None,
    ) -> None:
        """
        Append one query outcome.

        Args:
            query: User question
            session_id: Session the query belongs to
            intent: Final response intent
            confidence: Final response confidence
            rule_triggered: Classifier rule that fired
            latency_ms: End-to-end processing time
            sub_type: Synthesizer sub-type, when synthesis ran
            tier: Answer tier (specific, extracted, template, combined, knowledge_base, fixed, fallback)
            source_count: Number of sources attached to the answer
            requires_human: Whether the query was escalated
            entities: Entities extracted from the query
        """
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "session_id": session_id,
            "query": query,
            "intent": intent,
            "confidence": confidence,
            "rule_triggered": rule_triggered,
            "sub_type": sub_type,
            "latency_ms": latency_ms,
            "tier": tier,
            "source_count": source_count,
            "requires_human": requires_human,
            "entities": entities or {},
        }
        try:
            with self._lock:
                self._file.write(json.dumps(entry) + "\n")
                self._file.flush()
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to write query log entry: {e}")

    def close(self) -> None:
        with self._lock:
            if not self._file.closed:
                self._file.close()
