"""Mention and entity-reference picker for the message composer."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Protocol, Union

from field_chat.application.content.codec import (
    MENTION_TRIGGER,
    REFERENCE_TRIGGER,
    Trigger,
    clean_label,
    detect_trigger,
    encode_mention,
    encode_reference,
    insert_token,
)
from field_chat.application.exceptions import AppError, ValidationError
from field_chat.client.api import ChatApiClient

logger = logging.getLogger(__name__)

MEMBER_KIND = "member"


@dataclass(frozen=True, slots=True)
class Candidate:
    id: str
    label: str
    kind: str = MEMBER_KIND
    secondary: str | None = None

    def matches(self, query: str) -> bool:
        needle = query.casefold()
        if needle in self.label.casefold():
            return True
        return self.secondary is not None and needle in self.secondary.casefold()


class CandidateDirectory(Protocol):
    async def candidates(self, trigger: str) -> list[Candidate]: ...


class StaticCandidateDirectory:
    def __init__(
        self,
        members: Iterable[Candidate] = (),
        entities: Iterable[Candidate] = (),
    ) -> None:
        self._members = list(members)
        self._entities = list(entities)

    async def candidates(self, trigger: str) -> list[Candidate]:
        if trigger == MENTION_TRIGGER:
            return list(self._members)
        return list(self._entities)


class HttpCandidateDirectory:
    """Team members for ``@``, the customer's jobs/quotes/invoices for ``/``."""

    def __init__(self, api: ChatApiClient, customer_id: str | None = None) -> None:
        self._api = api
        self._customer_id = customer_id

    async def candidates(self, trigger: str) -> list[Candidate]:
        if trigger == MENTION_TRIGGER:
            rows = await self._api.list_members()
            return [
                Candidate(
                    id=str(row["id"]),
                    label=row["name"],
                    kind=MEMBER_KIND,
                    secondary=row.get("email"),
                )
                for row in rows
            ]
        if self._customer_id is None:
            return []
        rows = await self._api.list_customer_entities(self._customer_id)
        return [
            Candidate(
                id=str(row["id"]),
                label=row["title"],
                kind=row["kind"],
                secondary=row.get("number"),
            )
            for row in rows
        ]


@dataclass(frozen=True, slots=True)
class Closed:
    pass


@dataclass(frozen=True, slots=True)
class Open:
    trigger: Trigger
    candidates: list[Candidate] = field(default_factory=list)
    selected_index: int = 0

    @property
    def selected(self) -> Candidate | None:
        if not self.candidates:
            return None
        return self.candidates[self.selected_index]


PickerState = Union[Closed, Open]


@dataclass(frozen=True, slots=True)
class Selection:
    body: str
    caret: int
    candidate: Candidate


class ComposerPicker:
    """Keyboard-driven picker that inserts encoded tokens into a draft body."""

    def __init__(self, directory: CandidateDirectory) -> None:
        self._directory = directory
        self._pools: dict[str, list[Candidate]] = {}
        self.state: PickerState = Closed()

    @property
    def is_open(self) -> bool:
        return isinstance(self.state, Open)

    async def handle_input(self, body: str, caret: int) -> PickerState:
        trigger = detect_trigger(body, caret, triggers=MENTION_TRIGGER + REFERENCE_TRIGGER)
        if trigger is None:
            self.state = Closed()
            return self.state

        pool = await self._pool(trigger.char)
        filtered = [c for c in pool if c.matches(trigger.query)]

        index = 0
        previous = self.state
        if (
            isinstance(previous, Open)
            and previous.trigger.char == trigger.char
            and previous.candidates == filtered
        ):
            index = previous.selected_index
        self.state = Open(trigger=trigger, candidates=filtered, selected_index=index)
        return self.state

    def handle_key(self, key: str, body: str, caret: int) -> Selection | None:
        """Apply a navigation key. Returns the edit when ``Enter`` picks a candidate."""
        state = self.state
        if not isinstance(state, Open):
            return None

        if key == "Escape":
            self.blur()
            return None
        if key in ("ArrowDown", "ArrowUp"):
            last = max(len(state.candidates) - 1, 0)
            step = 1 if key == "ArrowDown" else -1
            index = max(0, min(state.selected_index + step, last))
            self.state = Open(state.trigger, state.candidates, index)
            return None
        if key != "Enter":
            return None

        candidate = state.selected
        if candidate is None:
            return None
        token = _encode(state.trigger.char, candidate)
        new_body, new_caret = insert_token(body, caret, token, state.trigger.char)
        self.blur()
        return Selection(body=new_body, caret=new_caret, candidate=candidate)

    def blur(self) -> None:
        self.state = Closed()

    async def _pool(self, trigger: str) -> list[Candidate]:
        if trigger not in self._pools:
            try:
                loaded = await self._directory.candidates(trigger)
            except AppError as exc:
                logger.warning("Could not load %r candidates: %s", trigger, exc.detail)
                return []
            self._pools[trigger] = [c for c in loaded if _encodable(trigger, c)]
        return self._pools[trigger]


def _encode(trigger: str, candidate: Candidate) -> str:
    label = clean_label(candidate.label)
    if trigger == MENTION_TRIGGER:
        return encode_mention(label, candidate.id)
    return encode_reference(candidate.kind, label, candidate.id)


def _encodable(trigger: str, candidate: Candidate) -> bool:
    try:
        _encode(trigger, candidate)
    except ValidationError as exc:
        logger.warning("Skipping candidate %r: %s", candidate.id, exc.detail)
        return False
    return True
