from __future__ import annotations

from typing import Protocol

from field_chat.application.repositories.asset import AssetReader, AssetWriter
from field_chat.application.repositories.conversation import (
    ConversationReader,
    ConversationWriter,
)
from field_chat.application.repositories.message import MessageReader, MessageWriter
from field_chat.application.repositories.outbox import OutboxWriter


class UnitOfWork(Protocol):
    """Repositories sharing one transaction.

    Services stage rows and outbox events, then ``commit`` once; ``flush`` is
    used where a constraint (message idempotency, asset content claim) must be
    checked before the transaction ends.
    """

    conversations: ConversationReader
    conversations_w: ConversationWriter
    messages: MessageReader
    messages_w: MessageWriter
    assets: AssetReader
    assets_w: AssetWriter
    outbox: OutboxWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...
