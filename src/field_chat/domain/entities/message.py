from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Message:
    id: UUID
    conversation_id: UUID
    business_id: UUID
    sender_kind: str
    sender_id: UUID | None
    body: str
    client_msg_id: UUID
    created_at: datetime
    attachment_asset_ids: list[UUID] = field(default_factory=list)
    mentions: list[str] = field(default_factory=list)
    edited_at: datetime | None = None
    deleted: bool = False

    @property
    def sender_key(self) -> tuple[str, UUID | None]:
        """Identity used to decide whether two messages share a sender."""
        return (self.sender_kind, self.sender_id)
