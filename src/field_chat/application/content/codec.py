"""Inline token syntax for message bodies.

Mentions:    ``@[Display Name](subject-id)``
References:  ``/job[Title](entity-id)`` (also ``quote`` and ``invoice``)

Decoding is total: anything that is not a well-formed token stays literal text.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from field_chat.application.content.segments import (
    MentionSegment,
    ReferenceSegment,
    Segment,
    TextSegment,
)
from field_chat.application.exceptions import ValidationError
from field_chat.domain.value_objects.enums import EntityKind

MENTION_TRIGGER = "@"
REFERENCE_TRIGGER = "/"

MENTION_PATTERN = re.compile(r"@\[(?P<name>[^\[\]]+)\]\((?P<id>[^()\[\]\s]+)\)")
REFERENCE_PATTERN = re.compile(
    r"/(?P<kind>job|quote|invoice)\[(?P<title>[^\[\]]+)\]\((?P<id>[^()\[\]\s]+)\)"
)

_ID_FORBIDDEN = re.compile(r"[\[\]()\s]")
_RUN_BREAKERS = re.compile(r"[\[\]()]")


def decode(body: str) -> list[Segment]:
    """Split *body* into text, mention and reference segments in body order."""
    if not body:
        return []

    segments: list[Segment] = []
    pos = 0
    for match in REFERENCE_PATTERN.finditer(body):
        segments.extend(_split_mentions(body[pos:match.start()]))
        segments.append(
            ReferenceSegment(
                entity_kind=EntityKind(match["kind"]),
                title=match["title"],
                entity_id=match["id"],
            )
        )
        pos = match.end()
    segments.extend(_split_mentions(body[pos:]))
    return segments


def _split_mentions(text: str) -> list[Segment]:
    segments: list[Segment] = []
    pos = 0
    for match in MENTION_PATTERN.finditer(text):
        if match.start() > pos:
            segments.append(TextSegment(text[pos:match.start()]))
        segments.append(MentionSegment(display_name=match["name"], subject_id=match["id"]))
        pos = match.end()
    if pos < len(text):
        segments.append(TextSegment(text[pos:]))
    return segments


def encode_segments(segments: list[Segment]) -> str:
    return "".join(segment.raw for segment in segments)


def split_chips(segments: list[Segment]) -> tuple[list[Segment], list[ReferenceSegment]]:
    """Separate reference chips from the prose they were embedded in.

    Returns ``(prose, references)``. References are taken out before mentions
    are matched, so a mention split by a chip is whole again in the prose.
    Whitespace around a removed chip collapses to one space, and the prose is
    trimmed at its outer edges.
    """
    references: list[ReferenceSegment] = []
    text = ""
    # Whitespace seen around the chips removed since the last kept text
    gap: str | None = None
    for segment in segments:
        if isinstance(segment, ReferenceSegment):
            references.append(segment)
            if gap is None:
                kept = text.rstrip()
                gap, text = text[len(kept):], kept
            continue
        raw = segment.raw
        if gap is not None:
            stripped = raw.lstrip()
            gap += raw[:len(raw) - len(stripped)]
            if not stripped:
                continue
            raw = (" " if gap else "") + stripped
            gap = None
        text += raw
    return _split_mentions(text.strip()), references


def extract_mentions(body: str) -> list[str]:
    """Subject ids mentioned in *body*, first occurrence order, no repeats."""
    seen: dict[str, None] = {}
    for segment in decode(body):
        if isinstance(segment, MentionSegment):
            seen.setdefault(segment.subject_id, None)
    return list(seen)


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _check_label(label: str, what: str) -> None:
    if not label or not label.strip():
        raise ValidationError(f"{what} must not be empty")
    if "[" in label or "]" in label:
        raise ValidationError(f"{what} must not contain square brackets: {label!r}")


def _check_id(value: str, what: str) -> None:
    if not value:
        raise ValidationError(f"{what} must not be empty")
    if _ID_FORBIDDEN.search(value):
        raise ValidationError(f"{what} contains reserved characters: {value!r}")


def clean_label(label: str) -> str:
    """Make a directory label encodable by swapping square brackets for parentheses."""
    return label.replace("[", "(").replace("]", ")").strip()


def encode_mention(display_name: str, subject_id: object) -> str:
    subject = str(subject_id)
    _check_label(display_name, "Display name")
    _check_id(subject, "Subject id")
    return MentionSegment(display_name=display_name, subject_id=subject).raw


def encode_reference(kind: EntityKind | str, title: str, entity_id: object) -> str:
    try:
        entity_kind = EntityKind(kind)
    except ValueError:
        raise ValidationError(f"Unknown entity kind: {kind!r}") from None
    entity = str(entity_id)
    _check_label(title, "Title")
    _check_id(entity, "Entity id")
    return ReferenceSegment(entity_kind=entity_kind, title=title, entity_id=entity).raw


# ---------------------------------------------------------------------------
# Composing
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Trigger:
    """An in-progress ``@query`` or ``/query`` run ending at the caret."""

    char: str
    start: int
    query: str


def detect_trigger(body: str, caret: int, triggers: str = "@/") -> Trigger | None:
    caret = max(0, min(caret, len(body)))
    head = body[:caret]
    start = caret
    while start > 0 and not head[start - 1].isspace():
        start -= 1
    run = head[start:]
    if not run or run[0] not in triggers:
        return None
    if _RUN_BREAKERS.search(run):
        return None
    return Trigger(char=run[0], start=start, query=run[1:])


def insert_token(body: str, caret: int, token: str, trigger: str) -> tuple[str, int]:
    """Replace the trigger run ending at *caret* with ``token + " "``.

    Returns ``(new_body, new_caret)``. Without a trigger run the token is
    inserted at the caret, or right after the encoded token the caret sits in.
    """
    caret = max(0, min(caret, len(body)))
    if body[:caret].endswith(token + " "):
        return body, caret

    found = detect_trigger(body, caret, triggers=trigger)
    token_end = _token_end_around(body, caret)
    if token_end != caret:
        start = end = token_end
    elif found is not None:
        start, end = found.start, caret
    else:
        start = end = caret
    new_head = body[:start] + token + " "
    return new_head + body[end:], len(new_head)


def _token_end_around(body: str, caret: int) -> int:
    for pattern in (MENTION_PATTERN, REFERENCE_PATTERN):
        for match in pattern.finditer(body):
            if match.start() < caret < match.end():
                return match.end()
    return caret


def insert_mention(body: str, caret: int, token: str) -> tuple[str, int]:
    return insert_token(body, caret, token, MENTION_TRIGGER)


def insert_reference(body: str, caret: int, token: str) -> tuple[str, int]:
    return insert_token(body, caret, token, REFERENCE_TRIGGER)
