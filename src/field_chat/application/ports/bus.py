from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol

# (event_type, fields) -> None; raising leaves the entry pending for redelivery
StreamEventHandler = Callable[[str, dict[str, Any]], Awaitable[None]]


class EventPublisher(Protocol):
    async def publish(self, stream: str, payload: dict[str, Any]) -> None:
        """Append ``payload`` (which must carry ``event_type``) to ``stream``."""
        ...
