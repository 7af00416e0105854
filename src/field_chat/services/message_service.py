from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone, tzinfo

from field_chat.application.content.codec import extract_mentions
from field_chat.application.dto.principal import Principal
from field_chat.application.exceptions import NotFoundError, ValidationError
from field_chat.application.policies.permissions import (
    assert_conversation_access,
    assert_message_author,
)
from field_chat.application.ports.clock import Clock, SystemClock
from field_chat.application.timeline import TimelineGroup, assemble
from field_chat.application.uow import UnitOfWork
from field_chat.domain.entities.message import Message
from field_chat.domain.value_objects.scope import conversation_scope, is_unscoped

EDIT_WINDOW = timedelta(minutes=15)


async def send_message(
    conversation_id: uuid.UUID,
    principal: Principal,
    client_msg_id: uuid.UUID,
    body: str | None,
    attachment_asset_ids: list[uuid.UUID],
    uow: UnitOfWork,
) -> tuple[Message, bool]:
    """Create a message idempotently.

    Returns (message, created). If a message with the same client_msg_id
    already exists the existing one is returned with created=False.
    """
    conversation = await uow.conversations.get_by_id(conversation_id)
    assert_conversation_access(principal, conversation)

    body = body or ""
    asset_ids = list(dict.fromkeys(attachment_asset_ids))
    if not body.strip() and not asset_ids:
        raise ValidationError("Message must have text or attachments")
    await _check_attachments(asset_ids, conversation_id, principal, uow)

    now = datetime.now(timezone.utc)
    msg = Message(
        id=uuid.uuid4(),
        conversation_id=conversation_id,
        business_id=principal.business_id,
        sender_kind=principal.kind.value,
        sender_id=principal.subject_id,
        body=body,
        client_msg_id=client_msg_id,
        created_at=now,
        attachment_asset_ids=asset_ids,
        mentions=extract_mentions(body),
    )

    msg, created = await uow.messages_w.create_if_not_exists(msg)

    if created:
        await uow.conversations_w.touch_last_message_at(conversation_id, msg.created_at)
        await uow.outbox.add(
            "chat.message_created",
            {
                "message_id": str(msg.id),
                "conversation_id": str(msg.conversation_id),
                "business_id": str(msg.business_id),
                "sender_kind": msg.sender_kind,
                "sender_id": str(msg.sender_id) if msg.sender_id else None,
                "body": msg.body,
                "mentions": msg.mentions,
                "attachment_asset_ids": [str(a) for a in msg.attachment_asset_ids],
            },
        )
        await uow.commit()

    return msg, created


async def _check_attachments(
    asset_ids: list[uuid.UUID],
    conversation_id: uuid.UUID,
    principal: Principal,
    uow: UnitOfWork,
) -> None:
    if not asset_ids:
        return
    found = {a.id: a for a in await uow.assets.get_many(asset_ids)}
    allowed_scope = conversation_scope(conversation_id)
    for asset_id in asset_ids:
        asset = found.get(asset_id)
        if asset is None or asset.business_id != principal.business_id:
            raise ValidationError(f"Unknown attachment {asset_id}")
        if not asset.is_usable:
            raise ValidationError(f"Attachment {asset_id} failed to upload")
        if asset.scope_key != allowed_scope and not is_unscoped(asset.scope_key):
            raise ValidationError(f"Attachment {asset_id} belongs to another conversation")


async def list_messages(
    conversation_id: uuid.UUID,
    principal: Principal,
    cursor: str | None,
    limit: int,
    uow: UnitOfWork,
) -> list[Message]:
    conversation = await uow.conversations.get_by_id(conversation_id)
    assert_conversation_access(principal, conversation)
    return await uow.messages.list_messages(
        conversation_id, cursor=cursor, limit=limit,
    )


async def edit_message(
    message_id: uuid.UUID,
    principal: Principal,
    body: str | None,
    uow: UnitOfWork,
    *,
    clock: Clock = SystemClock(),
) -> Message:
    """Replace the body of the caller's own message within the edit window."""
    message = assert_message_author(principal, await uow.messages.get_by_id(message_id))
    if message.deleted:
        raise NotFoundError("Message not found")

    now = clock.now()
    if now - message.created_at > EDIT_WINDOW:
        raise ValidationError("Message can only be edited within 15 minutes")

    body = body or ""
    if not body.strip() and not message.attachment_asset_ids:
        raise ValidationError("Message must have text or attachments")

    mentions = extract_mentions(body)
    await uow.messages_w.update_body(message.id, body, mentions, now)
    await uow.outbox.add(
        "chat.message_edited",
        {
            "message_id": str(message.id),
            "conversation_id": str(message.conversation_id),
            "mentions": mentions,
        },
    )
    await uow.commit()
    return replace(message, body=body, mentions=mentions, edited_at=now)


async def delete_message(
    message_id: uuid.UUID,
    principal: Principal,
    uow: UnitOfWork,
) -> None:
    message = assert_message_author(principal, await uow.messages.get_by_id(message_id))
    if message.deleted:
        return

    await uow.messages_w.mark_deleted(message.id)
    await uow.outbox.add(
        "chat.message_deleted",
        {
            "message_id": str(message.id),
            "conversation_id": str(message.conversation_id),
        },
    )
    await uow.commit()


async def list_mentions(
    principal: Principal,
    limit: int,
    uow: UnitOfWork,
) -> list[Message]:
    return await uow.messages.list_mentioning(
        principal.business_id, principal.mention_key, limit=limit,
    )


async def get_timeline(
    conversation_id: uuid.UUID,
    principal: Principal,
    uow: UnitOfWork,
    *,
    tz: tzinfo = timezone.utc,
    limit: int = 500,
    clock: Clock = SystemClock(),
) -> list[TimelineGroup]:
    conversation = await uow.conversations.get_by_id(conversation_id)
    assert_conversation_access(principal, conversation)
    messages = await uow.messages.list_latest(conversation_id, limit=limit)
    return assemble(messages, clock.now(), tz)
