"""Structured logging configuration for the Muscat Airport query engine."""
import json
import logging
from datetime import datetime
from typing import Any, Dict

# Fields passed through ``extra=`` that are copied into the JSON record
CONTEXT_FIELDS = ("session_id", "intent", "source", "url", "sub_type")


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """
    Set up root logging.

    ``log_format="json"`` replaces the root handlers with a JSON stream handler;
    any other value keeps the plain text format installed by config.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level))

    if log_format != "json":
        return

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
