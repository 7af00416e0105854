from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union
from uuid import UUID

from pydantic import BaseModel, Field

from field_chat.application.content.codec import decode, split_chips
from field_chat.application.content.segments import (
    MentionSegment,
    ReferenceSegment,
    Segment,
    TextSegment,
)
from field_chat.application.timeline import TimelineGroup
from field_chat.domain.entities.message import Message


class SendMessageRequest(BaseModel):
    client_msg_id: UUID
    body: str = ""
    attachment_asset_ids: list[UUID] = Field(default_factory=list)


class EditMessageRequest(BaseModel):
    body: str


class MessageResponse(BaseModel):
    id: UUID
    conversation_id: UUID
    sender_kind: str
    sender_id: UUID | None
    body: str
    attachment_asset_ids: list[UUID]
    mentions: list[str]
    client_msg_id: UUID
    created_at: datetime
    edited_at: datetime | None

    model_config = {"from_attributes": True}


class TextSegmentOut(BaseModel):
    type: Literal["text"] = "text"
    text: str


class MentionSegmentOut(BaseModel):
    type: Literal["mention"] = "mention"
    display_name: str
    subject_id: str


class ReferenceSegmentOut(BaseModel):
    type: Literal["reference"] = "reference"
    entity_kind: str
    title: str
    entity_id: str


SegmentOut = Annotated[
    Union[TextSegmentOut, MentionSegmentOut, ReferenceSegmentOut],
    Field(discriminator="type"),
]


def segment_out(segment: Segment) -> TextSegmentOut | MentionSegmentOut | ReferenceSegmentOut:
    if isinstance(segment, MentionSegment):
        return MentionSegmentOut(display_name=segment.display_name, subject_id=segment.subject_id)
    if isinstance(segment, ReferenceSegment):
        return ReferenceSegmentOut(
            entity_kind=segment.entity_kind.value,
            title=segment.title,
            entity_id=segment.entity_id,
        )
    assert isinstance(segment, TextSegment)
    return TextSegmentOut(text=segment.text)


class RenderedMessage(MessageResponse):
    """Message plus its decoded body: prose segments and reference chips."""

    segments: list[SegmentOut]
    references: list[ReferenceSegmentOut]
    is_grouped_with_previous: bool = False

    @classmethod
    def render(cls, message: Message, *, grouped: bool = False) -> RenderedMessage:
        prose, references = split_chips(decode(message.body))
        base = MessageResponse.model_validate(message, from_attributes=True)
        return cls(
            **base.model_dump(),
            segments=[segment_out(s) for s in prose],
            references=[segment_out(r) for r in references],  # type: ignore[misc]
            is_grouped_with_previous=grouped,
        )


class TimelineGroupResponse(BaseModel):
    date_label: str
    messages: list[RenderedMessage]

    @classmethod
    def from_group(cls, group: TimelineGroup) -> TimelineGroupResponse:
        return cls(
            date_label=group.date_label,
            messages=[
                RenderedMessage.render(e.message, grouped=e.is_grouped_with_previous)
                for e in group.entries
            ],
        )
