from __future__ import annotations

import uuid
from datetime import datetime, timezone

from field_chat.application.dto.principal import Principal
from field_chat.application.exceptions import ValidationError
from field_chat.application.policies.permissions import (
    assert_conversation_access,
    assert_staff,
)
from field_chat.application.uow import UnitOfWork
from field_chat.domain.entities.conversation import Conversation
from field_chat.domain.value_objects.enums import ConversationKind


async def create_conversation(
    principal: Principal,
    title: str,
    customer_id: uuid.UUID | None,
    uow: UnitOfWork,
) -> tuple[Conversation, bool]:
    """Create a team conversation, or the customer conversation for customer_id.

    Returns (conversation, created). A business has at most one conversation
    per customer; asking for it again returns the existing one with created=False.
    """
    assert_staff(principal)
    title = (title or "").strip()
    if not title:
        raise ValidationError("Conversation title is required")

    if customer_id is not None:
        existing = await uow.conversations.get_for_customer(principal.business_id, customer_id)
        if existing is not None:
            return existing, False

    now = datetime.now(timezone.utc)
    conversation = Conversation(
        id=uuid.uuid4(),
        business_id=principal.business_id,
        title=title,
        kind=ConversationKind.CUSTOMER if customer_id is not None else ConversationKind.TEAM,
        customer_id=customer_id,
        created_by=principal.subject_id,
        last_message_at=None,
        created_at=now,
        updated_at=now,
    )
    conversation = await uow.conversations_w.create(conversation)

    await uow.outbox.add(
        "chat.conversation_created",
        {
            "conversation_id": str(conversation.id),
            "business_id": str(conversation.business_id),
            "kind": conversation.kind,
            "customer_id": str(customer_id) if customer_id else None,
        },
    )
    await uow.commit()
    return conversation, True


async def list_conversations(
    principal: Principal,
    cursor: str | None,
    limit: int,
    uow: UnitOfWork,
) -> list[Conversation]:
    if principal.is_staff:
        return await uow.conversations.list_for_business(
            principal.business_id, cursor=cursor, limit=limit,
        )
    return await uow.conversations.list_for_customer(
        principal.business_id, principal.subject_id, cursor=cursor, limit=limit,
    )


async def get_conversation(
    conversation_id: uuid.UUID,
    principal: Principal,
    uow: UnitOfWork,
) -> Conversation:
    conversation = await uow.conversations.get_by_id(conversation_id)
    return assert_conversation_access(principal, conversation)
