from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from field_chat.domain.entities.message import Message


class MessageReader(Protocol):
    async def get_by_id(self, message_id: UUID) -> Message | None: ...

    async def list_messages(
        self,
        conversation_id: UUID,
        *,
        cursor: str | None = None,
        limit: int = 50,
    ) -> list[Message]:
        """Chronological, non-deleted messages of a conversation."""
        ...

    async def list_latest(self, conversation_id: UUID, *, limit: int) -> list[Message]:
        """The newest ``limit`` non-deleted messages, returned in chronological order."""
        ...

    async def list_mentioning(
        self,
        business_id: UUID,
        subject_id: str,
        *,
        limit: int = 100,
    ) -> list[Message]:
        """Newest-first, non-deleted messages whose mentions contain subject_id."""
        ...


class MessageWriter(Protocol):
    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        """Insert message. Return (message, created). If conflict on client_msg_id → return existing."""
        ...

    async def get_by_client_msg_id(
        self,
        conversation_id: UUID,
        sender_kind: str,
        sender_id: UUID | None,
        client_msg_id: UUID,
    ) -> Message | None: ...

    async def update_body(
        self,
        message_id: UUID,
        body: str,
        mentions: list[str],
        edited_at: datetime,
    ) -> None: ...

    async def mark_deleted(self, message_id: UUID) -> None: ...
