from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol


@dataclass(frozen=True, slots=True)
class OutboxRecord:
    """Pending event as handed to the outbox worker."""

    id: int
    event_type: str
    attempts: int
    payload: dict[str, Any] = field(default_factory=dict)

    def message(self) -> dict[str, Any]:
        """Stream message body: the payload tagged with its event type."""
        return {"event_type": self.event_type, **self.payload}


class OutboxWriter(Protocol):
    async def add(self, event_type: str, payload: dict[str, Any]) -> None:
        """Stage an event in the current transaction."""
        ...

    async def fetch_pending(self, batch_size: int) -> list[OutboxRecord]:
        """Lock and return due records (pending, or failed with an elapsed retry time)."""
        ...

    async def mark_sent(self, ids: list[int]) -> None: ...

    async def mark_failed(self, record_id: int, next_retry_at: datetime) -> None: ...

    async def mark_dead(self, ids: list[int]) -> None: ...
