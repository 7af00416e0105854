from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from field_chat.domain.value_objects.enums import EntityKind


@dataclass(frozen=True, slots=True)
class TextSegment:
    text: str

    @property
    def raw(self) -> str:
        return self.text


@dataclass(frozen=True, slots=True)
class MentionSegment:
    display_name: str
    subject_id: str

    @property
    def raw(self) -> str:
        return f"@[{self.display_name}]({self.subject_id})"


@dataclass(frozen=True, slots=True)
class ReferenceSegment:
    entity_kind: EntityKind
    title: str
    entity_id: str

    @property
    def raw(self) -> str:
        return f"/{self.entity_kind.value}[{self.title}]({self.entity_id})"


Segment = Union[TextSegment, MentionSegment, ReferenceSegment]
