from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from field_chat.domain.value_objects.enums import ConversationKind


@dataclass(frozen=True, slots=True)
class Conversation:
    """A thread inside one business: staff-only (team) or with a single customer."""

    id: UUID
    business_id: UUID
    title: str
    kind: str
    customer_id: UUID | None
    created_by: UUID
    last_message_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @property
    def is_customer_thread(self) -> bool:
        return self.kind == ConversationKind.CUSTOMER

    def open_to_customer(self, customer_id: UUID) -> bool:
        return self.is_customer_thread and self.customer_id == customer_id
