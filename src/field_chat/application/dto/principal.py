from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from field_chat.domain.entities.message import Message
from field_chat.domain.value_objects.enums import SenderKind


@dataclass(frozen=True, slots=True)
class Principal:
    """Caller identity from the bearer token: a staff member or a customer of one business."""

    kind: SenderKind
    subject_id: UUID
    business_id: UUID
    roles: list[str] = field(default_factory=list)

    @property
    def is_staff(self) -> bool:
        return self.kind == SenderKind.STAFF

    @property
    def mention_key(self) -> str:
        """How this caller appears in a message's ``mentions``."""
        return str(self.subject_id)

    def sent(self, message: Message) -> bool:
        return message.sender_kind == self.kind and message.sender_id == self.subject_id
