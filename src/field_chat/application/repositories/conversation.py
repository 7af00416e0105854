from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from field_chat.domain.entities.conversation import Conversation


class ConversationReader(Protocol):
    async def get_by_id(self, conversation_id: UUID) -> Conversation | None: ...

    async def get_for_customer(
        self, business_id: UUID, customer_id: UUID
    ) -> Conversation | None:
        """Find the customer conversation of a business, if one exists."""
        ...

    async def list_for_business(
        self, business_id: UUID, *, cursor: str | None = None, limit: int = 20
    ) -> list[Conversation]: ...

    async def list_for_customer(
        self,
        business_id: UUID,
        customer_id: UUID,
        *,
        cursor: str | None = None,
        limit: int = 20,
    ) -> list[Conversation]: ...


class ConversationWriter(Protocol):
    async def create(self, conversation: Conversation) -> Conversation: ...

    async def touch_last_message_at(
        self, conversation_id: UUID, ts: datetime
    ) -> None: ...
