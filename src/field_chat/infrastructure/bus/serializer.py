from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import UUID


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, UUID):
            return str(o)
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


def serialize_event(event_type: str, payload: dict[str, Any]) -> dict[str, str]:
    """Flatten an event into Redis stream fields."""
    return {"event_type": event_type, "data": json.dumps(payload, cls=_Encoder)}


def deserialize_event(fields: dict[str, str]) -> tuple[str, dict[str, Any]]:
    event_type = fields.get("event_type", "unknown")
    raw = fields.get("data")
    if raw is None:
        # Producers that write flat fields instead of a JSON document
        data = {k: v for k, v in fields.items() if k != "event_type"}
        return event_type, data
    return event_type, json.loads(raw)
