from __future__ import annotations

from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Query, Response

from field_chat.api.deps import CurrentPrincipal, UoWDep
from field_chat.api.v1.schemas.common import Page
from field_chat.api.v1.schemas.message import (
    EditMessageRequest,
    MessageResponse,
    SendMessageRequest,
    TimelineGroupResponse,
)
from field_chat.application.exceptions import ValidationError
from field_chat.config import settings
from field_chat.infrastructure.db.repositories._cursor import encode_cursor
from field_chat.services import message_service

router = APIRouter(prefix="/api/v1/chat", tags=["messages"])


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=Page[MessageResponse],
)
async def list_messages(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    cursor: str | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
) -> Page[MessageResponse]:
    messages = await message_service.list_messages(
        conversation_id, principal, cursor, limit, uow,
    )
    return Page[MessageResponse].build(
        messages,
        limit,
        item=lambda m: MessageResponse.model_validate(m, from_attributes=True),
        cursor=lambda m: encode_cursor(m.created_at, m.id),
    )


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=201,
)
async def send_message(
    conversation_id: UUID,
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    response: Response,
) -> MessageResponse:
    msg, created = await message_service.send_message(
        conversation_id,
        principal,
        body.client_msg_id,
        body.body,
        body.attachment_asset_ids,
        uow,
    )
    if not created:
        response.status_code = 200
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.get(
    "/conversations/{conversation_id}/timeline",
    response_model=list[TimelineGroupResponse],
)
async def get_timeline(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    tz: str = Query(settings.TIMELINE_DEFAULT_TZ),
) -> list[TimelineGroupResponse]:
    try:
        zone = ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(f"Unknown time zone: {tz}") from exc
    groups = await message_service.get_timeline(
        conversation_id, principal, uow, tz=zone, limit=settings.TIMELINE_MAX_MESSAGES,
    )
    return [TimelineGroupResponse.from_group(g) for g in groups]


@router.patch("/messages/{message_id}", response_model=MessageResponse)
async def edit_message(
    message_id: UUID,
    body: EditMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> MessageResponse:
    msg = await message_service.edit_message(message_id, principal, body.body, uow)
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.delete("/messages/{message_id}", status_code=204)
async def delete_message(
    message_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> Response:
    await message_service.delete_message(message_id, principal, uow)
    return Response(status_code=204)


@router.get("/mentions", response_model=list[MessageResponse])
async def list_mentions(
    principal: CurrentPrincipal,
    uow: UoWDep,
    limit: int = Query(100, ge=1, le=200),
) -> list[MessageResponse]:
    messages = await message_service.list_mentions(principal, limit, uow)
    return [MessageResponse.model_validate(m, from_attributes=True) for m in messages]
