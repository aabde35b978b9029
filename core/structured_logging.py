"""Shared structured JSON logging helpers."""

from __future__ import annotations

import json
import sys
from datetime import UTC, datetime
from typing import Any, TextIO


def render_json_event(event_type: str, *, level: str = "info", **payload: Any) -> str:
    """Render one event as a single sorted JSON line."""
    event: dict[str, Any] = {
        "event_type": event_type,
        "level": level,
        "timestamp": datetime.now(UTC).isoformat(),
    }
    event.update(payload)
    return json.dumps(event, ensure_ascii=True, sort_keys=True, default=str)


def emit_json_event(
    event_type: str,
    *,
    level: str = "info",
    stream: TextIO | None = None,
    **payload: Any,
) -> str:
    """Write one JSON event line (stdout by default) and return the rendered line."""
    line = render_json_event(event_type, level=level, **payload)
    print(line, file=stream or sys.stdout)
    return line
