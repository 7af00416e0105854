from __future__ import annotations

from field_chat.application.dto.principal import Principal
from field_chat.application.exceptions import ForbiddenError, NotFoundError
from field_chat.domain.entities.conversation import Conversation
from field_chat.domain.entities.message import Message


def assert_conversation_access(
    principal: Principal,
    conversation: Conversation | None,
) -> Conversation:
    """Raise if conversation doesn't exist or principal has no access."""
    # Other businesses' conversations are reported as missing
    if conversation is None or conversation.business_id != principal.business_id:
        raise NotFoundError("Conversation not found")

    if principal.is_staff:
        return conversation

    if not conversation.open_to_customer(principal.subject_id):
        raise ForbiddenError("Not a participant of this conversation")

    return conversation


def assert_staff(principal: Principal) -> None:
    if not principal.is_staff:
        raise ForbiddenError("Staff access required")


def assert_message_author(principal: Principal, message: Message | None) -> Message:
    if message is None or message.business_id != principal.business_id:
        raise NotFoundError("Message not found")
    if not principal.sent(message):
        raise ForbiddenError("Only the sender can change this message")
    return message
