from __future__ import annotations

from field_chat.domain.entities.message import Message
from field_chat.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        conversation_id=model.conversation_id,
        business_id=model.business_id,
        sender_kind=model.sender_kind,
        sender_id=model.sender_id,
        body=model.body,
        client_msg_id=model.client_msg_id,
        created_at=model.created_at,
        attachment_asset_ids=list(model.attachment_asset_ids or []),
        mentions=list(model.mentions or []),
        edited_at=model.edited_at,
        deleted=model.deleted,
    )


def entity_to_values(entity: Message) -> dict:
    return {
        "id": entity.id,
        "conversation_id": entity.conversation_id,
        "business_id": entity.business_id,
        "sender_kind": entity.sender_kind,
        "sender_id": entity.sender_id,
        "body": entity.body,
        "attachment_asset_ids": list(entity.attachment_asset_ids),
        "mentions": list(entity.mentions),
        "client_msg_id": entity.client_msg_id,
        "created_at": entity.created_at,
        "edited_at": entity.edited_at,
        "deleted": entity.deleted,
    }
