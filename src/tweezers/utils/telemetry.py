"""One-line JSON events for staging and undo, written to ``tweezers.telemetry``."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

TELEMETRY_LOGGER = logging.getLogger("tweezers.telemetry")


def _event_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, bool)):
        return value
    if isinstance(value, (list, tuple)):
        return [_event_value(item) for item in value]
    return str(value)


def emit_event(event: str, **fields: Any) -> None:
    """Log ``event`` with ``fields`` as a compact JSON object at INFO."""
    if not TELEMETRY_LOGGER.isEnabledFor(logging.INFO):
        return
    payload = {"event": event, "timestamp": datetime.now(timezone.utc).isoformat()}
    payload.update((key, _event_value(value)) for key, value in fields.items())
    TELEMETRY_LOGGER.info(json.dumps(payload, separators=(",", ":"), ensure_ascii=True))


__all__ = ["TELEMETRY_LOGGER", "emit_event"]
