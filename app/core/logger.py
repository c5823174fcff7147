"""
Application logging and audit trail.
Emits single-line records tagged with the request Correlation ID so a request
can be followed across modules.
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from app.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(correlation_id)s | %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Guarantees every record has a correlation_id attribute for the formatter."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = "-"
        return True


def _build_logger(name: str) -> logging.Logger:
    built = logging.getLogger(name)
    if not built.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.addFilter(CorrelationIdFilter())
        built.addHandler(handler)
    built.setLevel(settings.LOG_LEVEL.upper())
    built.propagate = False
    return built


logger = _build_logger("comarc_fluxo")
audit_logger = _build_logger("comarc_fluxo.audit")


def get_logger_with_correlation(correlation_id: Optional[str]) -> logging.LoggerAdapter:
    """Returns a logger adapter that stamps every record with the given Correlation ID."""
    return logging.LoggerAdapter(logger, {"correlation_id": correlation_id or "-"})


def audit_log(action: str, user: str, resource: str, details: Optional[Dict[str, Any]] = None) -> None:
    """
    Writes an immutable audit entry as JSON.
    `details` must be JSON serializable; non serializable values are stringified.
    """
    details = details or {}
    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "action": action,
        "user": user,
        "resource": resource,
        "details": details,
    }
    audit_logger.info(
        json.dumps(entry, default=str, ensure_ascii=False),
        extra={"correlation_id": details.get("correlation_id", "-")}
    )
