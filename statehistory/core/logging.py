"""Structured logging helpers for transition events."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class LogContext:
    """Normalized context fields expected in transition logs."""

    model_type: str | None = None
    model_id: str | None = None
    field: str | None = None
    from_state: str | None = None
    to_state: str | None = None


def build_log_event(event: str, context: LogContext, **fields: Any) -> dict[str, Any]:
    """Build a normalized structured log payload."""
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event": event,
        "model_type": context.model_type,
        "model_id": context.model_id,
        "field": context.field,
        "from_state": context.from_state,
        "to_state": context.to_state,
    }
    payload.update(fields)
    return payload
