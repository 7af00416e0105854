from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from field_chat.infrastructure.db.repositories.asset import AssetReaderRepo, AssetWriterRepo
from field_chat.infrastructure.db.repositories.conversation import (
    ConversationReaderRepo,
    ConversationWriterRepo,
)
from field_chat.infrastructure.db.repositories.message import (
    MessageReaderRepo,
    MessageWriterRepo,
)
from field_chat.infrastructure.db.repositories.outbox import OutboxWriterRepo
from field_chat.infrastructure.db.session import AsyncSessionLocal


class SqlAlchemyUoW:
    """Repositories for conversations, messages, assets and the outbox sharing one AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.conversations = ConversationReaderRepo(session)
        self.conversations_w = ConversationWriterRepo(session)
        self.messages = MessageReaderRepo(session)
        self.messages_w = MessageWriterRepo(session)
        self.assets = AssetReaderRepo(session)
        self.assets_w = AssetWriterRepo(session)
        self.outbox = OutboxWriterRepo(session)

    async def flush(self) -> None:
        await self._session.flush()

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()


@asynccontextmanager
async def open_uow(
    session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
) -> AsyncIterator[SqlAlchemyUoW]:
    """Yield a UoW on a fresh session; anything left uncommitted after an error is rolled back."""
    async with session_factory() as session:
        uow = SqlAlchemyUoW(session)
        try:
            yield uow
        except BaseException:
            await uow.rollback()
            raise
