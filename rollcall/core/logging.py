# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Structured JSON logging: one JSON line per record.

Command context passed through ``extra=`` is lifted into top-level keys so
log queries can filter on it without parsing the message text.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from rollcall.core.config import settings

# Keys copied from ``extra=`` into the JSON line when present.
CONTEXT_FIELDS = ("request_id", "command", "outcome", "kind", "member_id", "members")


class JSONFormatter(logging.Formatter):
    """Render a record and its command context as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": settings.SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value
        if record.exc_info and record.exc_info[1]:
            exc = record.exc_info[1]
            entry["error"] = str(exc)
            entry["error_type"] = type(exc).__name__
        return json.dumps(entry, ensure_ascii=False, default=str)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger writing JSON lines to stdout, configured once per name."""
    logger = logging.getLogger(name or settings.SERVICE_NAME)
    if logger.handlers:
        return logger
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger
