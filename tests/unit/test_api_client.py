from __future__ import annotations

import json
import uuid

import httpx
import pytest

from field_chat.application.exceptions import (
    ForbiddenError,
    PayloadTooLargeError,
    UnauthorizedError,
    UnsupportedMediaTypeError,
    UploadFailedError,
)
from field_chat.client.api import ChatApiClient
from field_chat.client.picker import HttpCandidateDirectory
from field_chat.domain.value_objects.enums import UploadSurface

ASSET_ID = uuid.uuid4()


def _asset_payload(is_duplicate: bool = False) -> dict:
    return {
        "asset": {
            "id": str(ASSET_ID),
            "scope_key": "conversation_media:unscoped",
            "content_hash": "ab" * 32,
            "mime_type": "image/png",
            "media_kind": "photo",
            "byte_size": 3,
            "original_filename": "roof photo.png",
            "public_url": "https://cdn.test/a.png",
            "thumbnail_url": None,
            "upload_status": "processing",
            "created_at": "2026-10-19T12:00:00+00:00",
        },
        "is_duplicate": is_duplicate,
    }


def _client(handler) -> ChatApiClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://chat.test")
    return ChatApiClient(http)


@pytest.mark.asyncio
async def test_upload_streams_body_and_reports_progress():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        seen["headers"] = request.headers
        seen["body"] = request.content
        return httpx.Response(201, json=_asset_payload())

    data = bytes(150_000)
    progress: list[int] = []
    conv_id = uuid.uuid4()

    asset = await _client(handler).upload_attachment(
        data, "image/png", "roof photo.png", UploadSurface.CONVERSATION_MEDIA, conv_id,
        on_progress=progress.append,
    )

    assert asset.id == ASSET_ID
    assert asset.is_duplicate is False
    assert seen["body"] == data
    assert seen["headers"]["content-type"] == "image/png"
    assert seen["headers"]["x-file-name"] == "roof%20photo.png"
    assert seen["url"].params["surface"] == "conversation_media"
    assert seen["url"].params["conversation_id"] == str(conv_id)
    assert progress == sorted(progress)
    assert progress[-1] == 100


@pytest.mark.asyncio
async def test_upload_reports_duplicate():
    client = _client(lambda request: httpx.Response(200, json=_asset_payload(is_duplicate=True)))

    asset = await client.upload_attachment(b"abc", "image/png", "a.png")

    assert asset.is_duplicate is True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "error"),
    [
        (413, PayloadTooLargeError),
        (415, UnsupportedMediaTypeError),
        (401, UnauthorizedError),
        (403, ForbiddenError),
        (502, UploadFailedError),
    ],
)
async def test_upload_maps_error_status(status, error):
    client = _client(lambda request: httpx.Response(status, json={"detail": "nope"}))

    with pytest.raises(error) as exc_info:
        await client.upload_attachment(b"abc", "image/png", "a.png")
    assert exc_info.value.detail == "nope"


@pytest.mark.asyncio
async def test_network_error_is_upload_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UploadFailedError):
        await _client(handler).upload_attachment(b"abc", "image/png", "a.png")


@pytest.mark.asyncio
async def test_send_message_posts_json():
    seen = {}
    conv_id, msg_id, asset_id = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["json"] = json.loads(request.content)
        return httpx.Response(201, json={"id": str(uuid.uuid4())})

    await _client(handler).send_message(conv_id, msg_id, "hi", [asset_id])

    assert seen["path"] == f"/api/v1/chat/conversations/{conv_id}/messages"
    assert seen["json"] == {
        "client_msg_id": str(msg_id),
        "body": "hi",
        "attachment_asset_ids": [str(asset_id)],
    }


@pytest.mark.asyncio
async def test_get_timeline_passes_tz():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["tz"] = request.url.params.get("tz")
        return httpx.Response(200, json=[{"date_label": "Today", "messages": []}])

    groups = await _client(handler).get_timeline(uuid.uuid4(), tz="Europe/Berlin")

    assert seen["tz"] == "Europe/Berlin"
    assert groups[0]["date_label"] == "Today"


@pytest.mark.asyncio
async def test_http_directory_maps_rows():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/v1/team/members":
            return httpx.Response(200, json=[{"id": 7, "name": "Ana Ruiz", "email": "ana@acme.test"}])
        return httpx.Response(200, json=[{"id": "j1", "kind": "job", "title": "Roof", "number": "J-1"}])

    directory = HttpCandidateDirectory(_client(handler), customer_id="c1")

    [member] = await directory.candidates("@")
    [job] = await directory.candidates("/")

    assert (member.id, member.label, member.secondary) == ("7", "Ana Ruiz", "ana@acme.test")
    assert (job.id, job.kind, job.label) == ("j1", "job", "Roof")


@pytest.mark.asyncio
async def test_http_directory_without_customer_has_no_entities():
    directory = HttpCandidateDirectory(_client(lambda request: httpx.Response(500)))

    assert await directory.candidates("/") == []
