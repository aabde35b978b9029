"""Structured logging helpers for bot requests."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from core.models import RequestLog
from core.structured_logging import emit_json_event


def _isoformat(value: datetime | None) -> str | None:
    """Serialize datetimes for logs."""
    if value is None:
        return None
    return value.isoformat()


def request_log_to_dict(request_log: RequestLog) -> dict[str, Any]:
    """Convert RequestLog to a JSON-safe dictionary."""
    return {
        "id": request_log.id,
        "url": request_log.url,
        "origin": request_log.origin,
        "status_code": request_log.status_code,
        "latency_ms": request_log.latency_ms,
        "waited_ms": request_log.waited_ms,
        "streamed": request_log.streamed,
        "error_kind": request_log.error_kind.value if request_log.error_kind else None,
        "created_at": _isoformat(request_log.created_at),
    }


def emit_event(event_type: str, **payload: Any) -> str:
    """Emit a structured event log line and return it for testability."""
    return emit_json_event(event_type, **payload)


def emit_request_log(request_log: RequestLog) -> str:
    """Emit one request_log line and return it for testability."""
    level = "warning" if request_log.error_kind else "info"
    return emit_json_event("request_log", level=level, **request_log_to_dict(request_log))
