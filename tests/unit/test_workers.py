from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from field_chat.application.repositories.outbox import OutboxRecord
from field_chat.config import settings
from field_chat.domain.value_objects.enums import UploadStatus
from field_chat.infrastructure.bus.serializer import deserialize_event, serialize_event
from field_chat.workers.media_events_consumer import handle_event
from field_chat.workers.outbox_worker import next_retry_at, relay_pending, stream_for
from tests.conftest import FakeUoW, make_asset


@pytest.mark.asyncio
async def test_media_processed_completes_asset():
    uow = FakeUoW()
    asset = make_asset(status=UploadStatus.PROCESSING)
    uow.assets._store[asset.id] = asset

    await handle_event(
        "media.processed",
        {"asset_id": str(asset.id), "thumbnail_url": "https://cdn.test/t.jpg"},
        uow,
    )

    stored = uow.assets._store[asset.id]
    assert stored.upload_status == UploadStatus.COMPLETED
    assert stored.thumbnail_url == "https://cdn.test/t.jpg"
    assert uow._committed is True


@pytest.mark.asyncio
async def test_media_failed_marks_asset():
    uow = FakeUoW()
    asset = make_asset(status=UploadStatus.PROCESSING)
    uow.assets._store[asset.id] = asset

    await handle_event("media.failed", {"asset_id": str(asset.id)}, uow)

    assert uow.assets._store[asset.id].upload_status == UploadStatus.FAILED


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("event_type", "fields"),
    [
        ("media.unknown", {"asset_id": str(uuid.uuid4())}),
        ("media.processed", {}),
        ("media.processed", {"asset_id": "not-a-uuid"}),
    ],
)
async def test_unusable_events_are_ignored(event_type, fields):
    uow = FakeUoW()

    await handle_event(event_type, fields, uow)

    assert uow._committed is False


def test_stream_routing():
    assert stream_for("media.process_requested") == settings.MEDIA_JOBS_STREAM
    assert stream_for("chat.message_created") == settings.CHAT_EVENTS_STREAM


def test_serializer_round_trip_and_flat_fields():
    fields = serialize_event("media.processed", {"asset_id": "a1", "thumbnail_url": None})

    assert deserialize_event(fields) == ("media.processed", {"asset_id": "a1", "thumbnail_url": None})
    assert deserialize_event({"event_type": "media.failed", "asset_id": "a2"}) == (
        "media.failed",
        {"asset_id": "a2"},
    )


class RecordingPublisher:
    def __init__(self, fail_types: set[str] | None = None) -> None:
        self.published: list[tuple[str, dict]] = []
        self.fail_types = fail_types or set()

    async def publish(self, stream, payload):
        if payload["event_type"] in self.fail_types:
            raise ConnectionError("redis down")
        self.published.append((stream, payload))


def _record(record_id: int, event_type: str, attempts: int = 0) -> OutboxRecord:
    return OutboxRecord(id=record_id, event_type=event_type, attempts=attempts, payload={"n": record_id})


@pytest.mark.asyncio
async def test_relay_routes_and_marks_sent():
    uow = FakeUoW()
    uow.outbox.pending = [_record(1, "chat.message_created"), _record(2, "media.process_requested")]
    publisher = RecordingPublisher()

    sent = await relay_pending(uow, publisher, batch_size=10)

    assert sent == 2
    assert publisher.published == [
        (settings.CHAT_EVENTS_STREAM, {"event_type": "chat.message_created", "n": 1}),
        (settings.MEDIA_JOBS_STREAM, {"event_type": "media.process_requested", "n": 2}),
    ]
    assert uow.outbox.sent == [1, 2]
    assert uow._committed is True


@pytest.mark.asyncio
async def test_relay_failure_schedules_retry():
    uow = FakeUoW()
    uow.outbox.pending = [_record(1, "chat.message_created"), _record(2, "media.process_requested")]

    sent = await relay_pending(uow, RecordingPublisher({"media.process_requested"}), batch_size=10)

    assert sent == 1
    assert uow.outbox.sent == [1]
    assert uow.outbox.failed == [2]


@pytest.mark.asyncio
async def test_relay_dead_letters_exhausted_records():
    uow = FakeUoW()
    uow.outbox.pending = [_record(1, "chat.message_created", attempts=settings.OUTBOX_MAX_ATTEMPTS)]
    publisher = RecordingPublisher()

    sent = await relay_pending(uow, publisher, batch_size=10)

    assert sent == 0
    assert publisher.published == []
    assert uow.outbox.dead == [1]


@pytest.mark.asyncio
async def test_relay_empty_batch_does_not_commit():
    uow = FakeUoW()

    assert await relay_pending(uow, RecordingPublisher(), batch_size=10) == 0
    assert uow._committed is False


def test_retry_backoff_is_capped():
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    assert next_retry_at(0, now) - now == timedelta(seconds=5)
    assert next_retry_at(2, now) - now == timedelta(seconds=20)
    assert next_retry_at(20, now) - now == timedelta(minutes=5)
