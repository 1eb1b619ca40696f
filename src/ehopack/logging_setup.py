"""
Structured logging for the EHO pack service.

Library modules only ever call ``logging.getLogger(__name__)``; handlers are
installed here, once, by the service entry point.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

# Extra attributes copied onto the JSON record when present
_EXTRA_FIELDS = (
    "request_id",
    "site_id",
    "source_kind",
    "section",
    "duration_ms",
    "status_code",
)


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in _EXTRA_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a JSON stream handler to the ``ehopack`` logger (idempotent)."""
    logger = logging.getLogger("ehopack")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not any(isinstance(h.formatter, JSONFormatter) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
    return logger
