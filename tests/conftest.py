"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

import pytest

from field_chat.application.dto.principal import Principal
from field_chat.application.exceptions import UploadFailedError
from field_chat.application.repositories.outbox import OutboxRecord
from field_chat.client.api import RemoteAsset
from field_chat.domain.entities.asset import Asset
from field_chat.domain.entities.conversation import Conversation
from field_chat.domain.entities.message import Message
from field_chat.domain.value_objects.enums import (
    ConversationKind,
    MediaKind,
    SenderKind,
    UploadStatus,
    UploadSurface,
)
from field_chat.infrastructure.db.repositories._cursor import decode_cursor

BUSINESS_ID = UUID("00000000-0000-0000-0000-0000000000b1")
STAFF_ID = UUID("00000000-0000-0000-0000-00000000005a")
OTHER_STAFF_ID = UUID("00000000-0000-0000-0000-00000000005b")
CUSTOMER_ID = UUID("00000000-0000-0000-0000-0000000000c1")


@pytest.fixture
def staff_principal() -> Principal:
    return Principal(kind=SenderKind.STAFF, subject_id=STAFF_ID, business_id=BUSINESS_ID)


@pytest.fixture
def other_staff_principal() -> Principal:
    return Principal(kind=SenderKind.STAFF, subject_id=OTHER_STAFF_ID, business_id=BUSINESS_ID)


@pytest.fixture
def customer_principal() -> Principal:
    return Principal(kind=SenderKind.CUSTOMER, subject_id=CUSTOMER_ID, business_id=BUSINESS_ID)


def make_conversation(
    *,
    conversation_id: UUID | None = None,
    business_id: UUID = BUSINESS_ID,
    customer_id: UUID | None = None,
    title: str = "Kitchen remodel",
) -> Conversation:
    now = datetime.now(timezone.utc)
    return Conversation(
        id=conversation_id or uuid.uuid4(),
        business_id=business_id,
        title=title,
        kind=ConversationKind.CUSTOMER if customer_id else ConversationKind.TEAM,
        customer_id=customer_id,
        created_by=STAFF_ID,
        last_message_at=None,
        created_at=now,
        updated_at=now,
    )


def make_message(
    *,
    conversation_id: UUID | None = None,
    sender_kind: str = SenderKind.STAFF,
    sender_id: UUID | None = STAFF_ID,
    body: str = "hello",
    created_at: datetime | None = None,
) -> Message:
    return Message(
        id=uuid.uuid4(),
        conversation_id=conversation_id or uuid.uuid4(),
        business_id=BUSINESS_ID,
        sender_kind=sender_kind,
        sender_id=sender_id,
        body=body,
        client_msg_id=uuid.uuid4(),
        created_at=created_at or datetime.now(timezone.utc),
    )


def make_asset(
    *,
    scope_key: str = "conversation_media:unscoped",
    status: str = UploadStatus.COMPLETED,
    business_id: UUID = BUSINESS_ID,
    content_hash: str | None = None,
) -> Asset:
    asset_id = uuid.uuid4()
    return Asset(
        id=asset_id,
        business_id=business_id,
        scope_key=scope_key,
        content_hash=content_hash or uuid.uuid4().hex,
        mime_type="image/png",
        media_kind=MediaKind.PHOTO,
        byte_size=10,
        original_filename="site.png",
        storage_ref=f"{business_id}/{asset_id}.png",
        public_url=f"https://cdn.test/{asset_id}.png",
        thumbnail_url=None,
        upload_status=status,
        uploaded_by=STAFF_ID,
        created_at=datetime.now(timezone.utc),
    )


@dataclass
class FakeConversationReader:
    _store: dict[UUID, Conversation] = field(default_factory=dict)

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        return self._store.get(conversation_id)

    async def get_for_customer(self, business_id: UUID, customer_id: UUID) -> Conversation | None:
        for c in self._store.values():
            if c.business_id == business_id and c.customer_id == customer_id:
                return c
        return None

    async def list_for_business(self, business_id: UUID, *, cursor: str | None = None, limit: int = 20) -> list[Conversation]:
        if cursor:
            decode_cursor(cursor)
        return [c for c in self._store.values() if c.business_id == business_id][:limit]

    async def list_for_customer(
        self, business_id: UUID, customer_id: UUID, *, cursor: str | None = None, limit: int = 20,
    ) -> list[Conversation]:
        return [
            c for c in self._store.values()
            if c.business_id == business_id and c.customer_id == customer_id
        ][:limit]


@dataclass
class FakeConversationWriter:
    _reader: FakeConversationReader

    async def create(self, conversation: Conversation) -> Conversation:
        self._reader._store[conversation.id] = conversation
        return conversation

    async def touch_last_message_at(self, conversation_id: UUID, ts: datetime) -> None:
        conv = self._reader._store.get(conversation_id)
        if conv is not None:
            self._reader._store[conversation_id] = replace(conv, last_message_at=ts)


@dataclass
class FakeMessageReader:
    _messages: list[Message] = field(default_factory=list)

    async def get_by_id(self, message_id: UUID) -> Message | None:
        for m in self._messages:
            if m.id == message_id:
                return m
        return None

    async def list_messages(self, conversation_id: UUID, *, cursor: str | None = None, limit: int = 50) -> list[Message]:
        found = [m for m in self._messages if m.conversation_id == conversation_id and not m.deleted]
        return sorted(found, key=lambda m: m.created_at)[:limit]

    async def list_latest(self, conversation_id: UUID, *, limit: int) -> list[Message]:
        found = [m for m in self._messages if m.conversation_id == conversation_id and not m.deleted]
        return sorted(found, key=lambda m: m.created_at)[-limit:] if limit else []

    async def list_mentioning(self, business_id: UUID, subject_id: str, *, limit: int = 100) -> list[Message]:
        found = [
            m for m in self._messages
            if m.business_id == business_id and subject_id in m.mentions and not m.deleted
        ]
        return sorted(found, key=lambda m: m.created_at, reverse=True)[:limit]


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader

    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        existing = await self.get_by_client_msg_id(
            message.conversation_id, message.sender_kind, message.sender_id, message.client_msg_id,
        )
        if existing is not None:
            return existing, False
        self._reader._messages.append(message)
        return message, True

    async def get_by_client_msg_id(
        self, conversation_id: UUID, sender_kind: str, sender_id: UUID | None, client_msg_id: UUID,
    ) -> Message | None:
        for m in self._reader._messages:
            if (
                m.conversation_id == conversation_id
                and m.sender_kind == sender_kind
                and m.sender_id == sender_id
                and m.client_msg_id == client_msg_id
            ):
                return m
        return None

    def _update(self, message_id: UUID, **changes: Any) -> None:
        messages = self._reader._messages
        for i, m in enumerate(messages):
            if m.id == message_id:
                messages[i] = replace(m, **changes)

    async def update_body(self, message_id: UUID, body: str, mentions: list[str], edited_at: datetime) -> None:
        self._update(message_id, body=body, mentions=mentions, edited_at=edited_at)

    async def mark_deleted(self, message_id: UUID) -> None:
        self._update(message_id, deleted=True)


@dataclass
class FakeAssetReader:
    _store: dict[UUID, Asset] = field(default_factory=dict)

    async def get_by_id(self, asset_id: UUID) -> Asset | None:
        return self._store.get(asset_id)

    async def get_many(self, asset_ids: list[UUID]) -> list[Asset]:
        return [self._store[a] for a in asset_ids if a in self._store]

    async def get_by_content(self, business_id: UUID, scope_key: str, content_hash: str) -> Asset | None:
        for a in self._store.values():
            if (a.business_id, a.scope_key, a.content_hash) == (business_id, scope_key, content_hash):
                return a
        return None


@dataclass
class FakeAssetWriter:
    """Honours the (business_id, scope_key, content_hash) unique constraint."""
    _reader: FakeAssetReader
    claims: int = 0

    async def claim(self, asset: Asset) -> Asset | None:
        self.claims += 1
        taken = await self._reader.get_by_content(asset.business_id, asset.scope_key, asset.content_hash)
        if taken is not None:
            return None
        self._reader._store[asset.id] = asset
        return asset

    async def set_status(self, asset_id: UUID, status: str, *, thumbnail_url: str | None = None) -> None:
        asset = self._reader._store[asset_id]
        self._reader._store[asset_id] = replace(asset, upload_status=status, thumbnail_url=thumbnail_url)

    async def reclaim(self, asset_id: UUID, replacement: Asset) -> Asset | None:
        current = self._reader._store.get(asset_id)
        if current is None or current.upload_status != UploadStatus.FAILED:
            return None
        reclaimed = replace(
            replacement,
            id=current.id,
            business_id=current.business_id,
            scope_key=current.scope_key,
            content_hash=current.content_hash,
        )
        self._reader._store[asset_id] = reclaimed
        return reclaimed

    async def delete(self, asset_id: UUID) -> None:
        self._reader._store.pop(asset_id, None)


@dataclass
class FakeOutboxWriter:
    _records: list[dict[str, Any]] = field(default_factory=list)
    pending: list[OutboxRecord] = field(default_factory=list)
    sent: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)
    dead: list[int] = field(default_factory=list)

    async def add(self, event_type: str, payload: dict[str, Any]) -> None:
        self._records.append({"event_type": event_type, "payload": payload})

    async def fetch_pending(self, batch_size: int) -> list[OutboxRecord]:
        batch, self.pending = self.pending[:batch_size], self.pending[batch_size:]
        return batch

    async def mark_sent(self, ids: list[int]) -> None:
        self.sent.extend(ids)

    async def mark_failed(self, record_id: int, next_retry_at: datetime) -> None:
        self.failed.append(record_id)

    async def mark_dead(self, ids: list[int]) -> None:
        self.dead.extend(ids)

    @property
    def event_types(self) -> list[str]:
        return [r["event_type"] for r in self._records]


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    conversations: FakeConversationReader = field(default_factory=FakeConversationReader)
    conversations_w: FakeConversationWriter | None = None
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    assets: FakeAssetReader = field(default_factory=FakeAssetReader)
    assets_w: FakeAssetWriter | None = None
    outbox: FakeOutboxWriter = field(default_factory=FakeOutboxWriter)
    _committed: bool = False
    _rolled_back: bool = False

    def __post_init__(self) -> None:
        if self.conversations_w is None:
            self.conversations_w = FakeConversationWriter(self.conversations)
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)
        if self.assets_w is None:
            self.assets_w = FakeAssetWriter(self.assets)

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._committed = True

    async def rollback(self) -> None:
        self._rolled_back = True


class FakeStorage:
    """In-memory BlobStorage that yields to the loop on every write."""

    def __init__(self, *, fail: bool = False) -> None:
        self.blobs: dict[str, bytes] = {}
        self.put_calls = 0
        self.deleted: list[str] = []
        self.fail = fail

    async def put(self, path: str, data: bytes, content_type: str) -> None:
        self.put_calls += 1
        await asyncio.sleep(0)
        if self.fail:
            raise OSError("disk full")
        self.blobs[path] = data

    async def delete(self, path: str) -> None:
        self.deleted.append(path)
        self.blobs.pop(path, None)

    def public_url(self, path: str) -> str:
        return f"https://cdn.test/{path}"

    async def check(self) -> None:
        if self.fail:
            raise OSError("disk full")


class GatedUploader:
    """Holds every upload until its gate is opened by the test."""

    def __init__(self) -> None:
        self.gates: dict[str, asyncio.Event] = {}
        self.fail: set[str] = set()
        self.assets: dict[str, RemoteAsset] = {}
        self.calls: list[str] = []

    def gate(self, name: str) -> asyncio.Event:
        return self.gates.setdefault(name, asyncio.Event())

    async def upload_attachment(
        self, data, mime_type, file_name, surface=UploadSurface.CONVERSATION_MEDIA,
        conversation_id=None, *, on_progress=None,
    ):
        self.calls.append(file_name)
        if on_progress:
            on_progress(50)
        await self.gate(file_name).wait()
        if file_name in self.fail:
            raise UploadFailedError("connection reset")
        if on_progress:
            on_progress(100)
        asset = RemoteAsset(
            id=uuid.uuid4(),
            mime_type=mime_type,
            public_url=f"https://cdn.test/{file_name}",
            thumbnail_url=None,
            upload_status="processing",
        )
        self.assets[file_name] = asset
        return asset
