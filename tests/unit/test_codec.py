from __future__ import annotations

import uuid

import pytest

from field_chat.application.content.codec import (
    clean_label,
    decode,
    detect_trigger,
    encode_mention,
    encode_reference,
    encode_segments,
    extract_mentions,
    insert_mention,
    insert_reference,
    split_chips,
)
from field_chat.application.content.segments import (
    MentionSegment,
    ReferenceSegment,
    TextSegment,
)
from field_chat.application.exceptions import ValidationError
from field_chat.domain.value_objects.enums import EntityKind


def test_decode_empty_body():
    assert decode("") == []


def test_decode_plain_text():
    assert decode("Gate code is 4411") == [TextSegment("Gate code is 4411")]


def test_decode_keeps_body_order():
    body = "Hi @[Ana Ruiz](u-1), see /job[Roof repair](j-9) today"

    assert decode(body) == [
        TextSegment("Hi "),
        MentionSegment(display_name="Ana Ruiz", subject_id="u-1"),
        TextSegment(", see "),
        ReferenceSegment(entity_kind=EntityKind.JOB, title="Roof repair", entity_id="j-9"),
        TextSegment(" today"),
    ]


def test_decode_adjacent_tokens():
    body = "@[Ana](u1)@[Bob](u2)/invoice[INV-7](i7)"

    assert [type(s) for s in decode(body)] == [MentionSegment, MentionSegment, ReferenceSegment]


def test_decode_label_with_parentheses():
    assert decode("@[Bob (Ops)](u2)") == [MentionSegment(display_name="Bob (Ops)", subject_id="u2")]


@pytest.mark.parametrize(
    "body",
    [
        "@[unclosed(foo",
        "@[Ana](u 1)",
        "@[](u1)",
        "@[Ana]()",
        "/task[Foo](t1)",
        "@[a[b]](x)",
        "half typed @[Ana](",
        "/job[Roof",
    ],
)
def test_malformed_tokens_stay_literal(body):
    assert decode(body) == [TextSegment(body)]


@pytest.mark.parametrize(
    "body",
    [
        "",
        "plain",
        "Hi @[Ana Ruiz](u-1), see /job[Roof repair](j-9) today",
        "@[a[b]](x) and /quote[Q-12](q12)",
        "  leading and trailing  /job[J](1)  ",
        "emoji 🔧 @[Zoë](u9)\nnext line",
    ],
)
def test_encode_segments_restores_body(body):
    assert encode_segments(decode(body)) == body


def test_split_chips_removes_references_from_prose():
    prose, references = split_chips(decode("Check /job[Roof](j1) please"))

    assert prose == [TextSegment("Check please")]
    assert references == [ReferenceSegment(EntityKind.JOB, "Roof", "j1")]


def test_split_chips_reference_only_body():
    prose, references = split_chips(decode("/quote[Q-12](q12)"))

    assert prose == []
    assert [r.entity_id for r in references] == ["q12"]


def test_split_chips_keeps_mentions_in_place():
    prose, references = split_chips(decode("@[Ana](u1) /job[Roof](j1) on it"))

    assert prose == [MentionSegment("Ana", "u1"), TextSegment(" on it")]
    assert len(references) == 1


def test_split_chips_rejoins_mention_interrupted_by_reference():
    prose, references = split_chips(decode("ping @[Bob]/job[T](j1)(u1) now"))

    assert prose == [TextSegment("ping "), MentionSegment("Bob", "u1"), TextSegment(" now")]
    assert [r.entity_id for r in references] == ["j1"]


def test_split_chips_collapses_gap_between_adjacent_chips():
    prose, references = split_chips(decode("Hello /job[A](j1) /invoice[B](i2)\n world"))

    assert prose == [TextSegment("Hello world")]
    assert len(references) == 2


def test_extract_mentions_ordered_and_unique():
    body = "@[Bob](u2) and @[Ana](u1) and @[Bob](u2) again"

    assert extract_mentions(body) == ["u2", "u1"]


def test_extract_mentions_ignores_references():
    assert extract_mentions("/job[Roof](j1)") == []


def test_encode_mention():
    subject = uuid.uuid4()

    assert encode_mention("Ana Ruiz", subject) == f"@[Ana Ruiz]({subject})"


def test_encode_reference():
    assert encode_reference(EntityKind.INVOICE, "INV-7", "i7") == "/invoice[INV-7](i7)"
    assert encode_reference("quote", "Deck", "q1") == "/quote[Deck](q1)"


@pytest.mark.parametrize(
    ("name", "subject"),
    [
        ("", "u1"),
        ("   ", "u1"),
        ("Bob [Ops]", "u1"),
        ("x](evil", "u1"),
        ("Ana", ""),
        ("Ana", "u 1"),
        ("Ana", "u(1)"),
    ],
)
def test_encode_mention_rejects_unencodable_input(name, subject):
    with pytest.raises(ValidationError):
        encode_mention(name, subject)


def test_encode_reference_rejects_unknown_kind():
    with pytest.raises(ValidationError):
        encode_reference("task", "Foo", "t1")


def test_clean_label_makes_label_encodable():
    label = clean_label("Bob [Ops]")

    assert label == "Bob (Ops)"
    assert decode(encode_mention(label, "u2")) == [MentionSegment("Bob (Ops)", "u2")]


def test_detect_trigger():
    trigger = detect_trigger("Hello @an", 9)

    assert trigger is not None
    assert (trigger.char, trigger.start, trigger.query) == ("@", 6, "an")


def test_detect_trigger_at_body_start():
    trigger = detect_trigger("/ro", 3)

    assert trigger is not None
    assert (trigger.char, trigger.query) == ("/", "ro")


@pytest.mark.parametrize(
    ("body", "caret"),
    [
        ("mail me at a@b", 14),
        ("@[Ana](u1)", 10),
        ("hi ", 3),
        ("", 0),
        ("and/or", 6),
    ],
)
def test_detect_trigger_none(body, caret):
    assert detect_trigger(body, caret) is None


def test_insert_mention_replaces_query():
    body, caret = insert_mention("Hello @an", 9, "@[Ana](u1)")

    assert body == "Hello @[Ana](u1) "
    assert caret == len(body)


def test_insert_mention_keeps_tail():
    body, caret = insert_mention("Hello @an there", 9, "@[Ana](u1)")

    assert body == "Hello @[Ana](u1)  there"
    assert caret == len("Hello @[Ana](u1) ")


def test_insert_mention_is_idempotent():
    once = insert_mention("Hello @an", 9, "@[Ana](u1)")
    twice = insert_mention(*once, "@[Ana](u1)")

    assert twice == once


def test_insert_without_trigger_inserts_at_caret():
    assert insert_mention("Hi ", 3, "@[Ana](u1)") == ("Hi @[Ana](u1) ", 14)


def test_insert_leaves_earlier_tokens_untouched():
    body, _ = insert_mention("@[Bob](u2) @al", 14, "@[Ana](u1)")

    assert body == "@[Bob](u2) @[Ana](u1) "
    assert extract_mentions(body) == ["u2", "u1"]


@pytest.mark.parametrize("caret", [4, 6, 12])
def test_insert_inside_existing_token_goes_after_it(caret):
    body, new_caret = insert_mention("hi @[Bob](u1) there", caret, "@[Ann](u2)")

    assert body == "hi @[Bob](u1)@[Ann](u2)  there"
    assert new_caret == 24
    assert extract_mentions(body) == ["u1", "u2"]


def test_insert_reference():
    body, caret = insert_reference("See /roof", 9, "/job[Roof repair](j1)")

    assert body == "See /job[Roof repair](j1) "
    assert caret == len(body)
