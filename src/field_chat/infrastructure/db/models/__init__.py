"""Import all models so Alembic can discover them via Base.metadata."""
from field_chat.infrastructure.db.models.asset import AssetModel
from field_chat.infrastructure.db.models.conversation import ConversationModel
from field_chat.infrastructure.db.models.message import MessageModel
from field_chat.infrastructure.db.models.outbox import OutboxMessageModel

__all__ = [
    "AssetModel",
    "ConversationModel",
    "MessageModel",
    "OutboxMessageModel",
]
