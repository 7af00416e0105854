from __future__ import annotations

from field_chat.domain.entities.conversation import Conversation
from field_chat.infrastructure.db.models.conversation import ConversationModel


def model_to_entity(model: ConversationModel) -> Conversation:
    return Conversation(
        id=model.id,
        business_id=model.business_id,
        title=model.title,
        kind=model.kind,
        customer_id=model.customer_id,
        created_by=model.created_by,
        last_message_at=model.last_message_at,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def entity_to_model(entity: Conversation) -> ConversationModel:
    return ConversationModel(
        id=entity.id,
        business_id=entity.business_id,
        title=entity.title,
        kind=entity.kind,
        customer_id=entity.customer_id,
        created_by=entity.created_by,
        last_message_at=entity.last_message_at,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
    )
