from __future__ import annotations

import uuid
from datetime import datetime, timezone

import pytest

from field_chat.api.v1.schemas.common import Page
from field_chat.application.exceptions import ValidationError
from field_chat.infrastructure.db.repositories._cursor import decode_cursor, encode_cursor


def test_cursor_keeps_timestamp_and_id():
    ts = datetime(2026, 10, 19, 8, 30, tzinfo=timezone.utc)
    uid = uuid.uuid4()

    cursor = encode_cursor(ts, uid)

    assert "=" not in cursor
    assert decode_cursor(cursor) == (ts, uid)


def test_cursor_for_conversation_without_messages():
    uid = uuid.uuid4()

    assert decode_cursor(encode_cursor(None, uid)) == (None, uid)


@pytest.mark.parametrize("cursor", ["%%%", "bm90LWEtY3Vyc29y", encode_cursor(None, uuid.uuid4())[:-4]])
def test_malformed_cursor_is_validation_error(cursor):
    with pytest.raises(ValidationError):
        decode_cursor(cursor)


def test_page_sets_next_cursor_only_when_full():
    rows = [1, 2, 3]

    full = Page[int].build(rows, 3, item=lambda r: r * 10, cursor=lambda r: f"after-{r}")
    partial = Page[int].build(rows, 5, item=lambda r: r * 10, cursor=lambda r: f"after-{r}")

    assert full.items == [10, 20, 30]
    assert full.next_cursor == "after-3"
    assert partial.next_cursor is None
    assert Page[int].build([], 0, item=int, cursor=str).next_cursor is None
