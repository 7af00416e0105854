from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, Response

from field_chat.api.deps import CurrentPrincipal, UoWDep
from field_chat.api.v1.schemas.common import Page
from field_chat.api.v1.schemas.conversation import (
    ConversationResponse,
    CreateConversationRequest,
    CreateConversationResponse,
)
from field_chat.infrastructure.db.repositories._cursor import encode_cursor
from field_chat.services import conversation_service

router = APIRouter(prefix="/api/v1/chat/conversations", tags=["conversations"])


@router.post("", response_model=CreateConversationResponse, status_code=201)
async def create_conversation(
    body: CreateConversationRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    response: Response,
) -> CreateConversationResponse:
    conv, created = await conversation_service.create_conversation(
        principal, body.title, body.customer_id, uow,
    )
    if not created:
        response.status_code = 200
    base = ConversationResponse.model_validate(conv, from_attributes=True)
    return CreateConversationResponse(**base.model_dump(), existed=not created)


@router.get("", response_model=Page[ConversationResponse])
async def list_conversations(
    principal: CurrentPrincipal,
    uow: UoWDep,
    cursor: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
) -> Page[ConversationResponse]:
    convs = await conversation_service.list_conversations(
        principal, cursor, limit, uow,
    )
    return Page[ConversationResponse].build(
        convs,
        limit,
        item=lambda c: ConversationResponse.model_validate(c, from_attributes=True),
        cursor=lambda c: encode_cursor(c.last_message_at, c.id),
    )


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ConversationResponse:
    conv = await conversation_service.get_conversation(conversation_id, principal, uow)
    return ConversationResponse.model_validate(conv, from_attributes=True)
