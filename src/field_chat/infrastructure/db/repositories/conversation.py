from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Select, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from field_chat.domain.entities.conversation import Conversation
from field_chat.domain.value_objects.enums import ConversationKind
from field_chat.infrastructure.db.mappers import conversation as mapper
from field_chat.infrastructure.db.models.conversation import ConversationModel
from field_chat.infrastructure.db.repositories._cursor import decode_cursor


class ConversationReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        result = await self._session.get(ConversationModel, conversation_id)
        return mapper.model_to_entity(result) if result else None

    async def get_for_customer(
        self, business_id: UUID, customer_id: UUID
    ) -> Conversation | None:
        stmt = select(ConversationModel).where(
            ConversationModel.business_id == business_id,
            ConversationModel.customer_id == customer_id,
            ConversationModel.kind == ConversationKind.CUSTOMER,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_for_business(
        self,
        business_id: UUID,
        *,
        cursor: str | None = None,
        limit: int = 20,
    ) -> list[Conversation]:
        stmt = select(ConversationModel).where(ConversationModel.business_id == business_id)
        return await self._page(stmt, cursor, limit)

    async def list_for_customer(
        self,
        business_id: UUID,
        customer_id: UUID,
        *,
        cursor: str | None = None,
        limit: int = 20,
    ) -> list[Conversation]:
        stmt = select(ConversationModel).where(
            ConversationModel.business_id == business_id,
            ConversationModel.customer_id == customer_id,
        )
        return await self._page(stmt, cursor, limit)

    async def _page(
        self,
        stmt: Select[tuple[ConversationModel]],
        cursor: str | None,
        limit: int,
    ) -> list[Conversation]:
        stmt = stmt.order_by(
            ConversationModel.last_message_at.desc().nullslast(),
            ConversationModel.id,
        ).limit(limit)
        if cursor:
            ts, cid = decode_cursor(cursor)
            lma = ConversationModel.last_message_at
            if ts is None:
                stmt = stmt.where(lma.is_(None) & (ConversationModel.id > cid))
            else:
                stmt = stmt.where(
                    (lma < ts) | ((lma == ts) & (ConversationModel.id > cid)) | lma.is_(None)
                )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class ConversationWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, conversation: Conversation) -> Conversation:
        model = mapper.entity_to_model(conversation)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def touch_last_message_at(
        self, conversation_id: UUID, ts: datetime
    ) -> None:
        stmt = (
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(last_message_at=ts)
        )
        await self._session.execute(stmt)
