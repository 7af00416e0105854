"""Async HTTP client for the chat API."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable
from urllib.parse import quote

import httpx

from field_chat.application.exceptions import (
    AppError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    PayloadTooLargeError,
    UnauthorizedError,
    UnsupportedMediaTypeError,
    UploadFailedError,
    ValidationError,
)
from field_chat.domain.value_objects.enums import UploadSurface

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

UPLOAD_CHUNK_SIZE = 64 * 1024

_STATUS_ERRORS: dict[int, type[AppError]] = {
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
    413: PayloadTooLargeError,
    415: UnsupportedMediaTypeError,
    422: ValidationError,
}


@dataclass(frozen=True, slots=True)
class RemoteAsset:
    """Server-side asset as returned by an upload."""

    id: uuid.UUID
    mime_type: str
    public_url: str
    thumbnail_url: str | None
    upload_status: str
    is_duplicate: bool = False

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> RemoteAsset:
        asset = payload["asset"]
        return cls(
            id=uuid.UUID(asset["id"]),
            mime_type=asset["mime_type"],
            public_url=asset["public_url"],
            thumbnail_url=asset.get("thumbnail_url"),
            upload_status=asset["upload_status"],
            is_duplicate=bool(payload.get("is_duplicate", False)),
        )


def _error_detail(response: httpx.Response) -> str:
    try:
        detail = response.json().get("detail")
    except ValueError:
        detail = None
    return str(detail) if detail else response.reason_phrase


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    error_cls = _STATUS_ERRORS.get(response.status_code)
    if error_cls is None:
        if response.status_code >= 500:
            error_cls = UploadFailedError
        else:
            error_cls = AppError
    raise error_cls(_error_detail(response))


async def _chunks(data: bytes, on_progress: ProgressCallback | None) -> AsyncIterator[bytes]:
    total = len(data)
    sent = 0
    for offset in range(0, total, UPLOAD_CHUNK_SIZE):
        chunk = data[offset:offset + UPLOAD_CHUNK_SIZE]
        yield chunk
        sent += len(chunk)
        if on_progress is not None:
            on_progress(sent * 100 // total)


class ChatApiClient:
    """Thin wrapper over ``httpx.AsyncClient``.

    The caller owns the client and configures its ``base_url`` and auth
    headers. Non-2xx responses are raised as application errors.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        members_path: str = "/api/v1/team/members",
        customer_entities_path: str = "/api/v1/customers/{customer_id}/entities",
    ) -> None:
        self._http = http
        self._members_path = members_path
        self._customer_entities_path = customer_entities_path

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise UploadFailedError(f"Network error: {exc}") from exc
        _raise_for_status(response)
        return response

    async def send_message(
        self,
        conversation_id: uuid.UUID,
        client_msg_id: uuid.UUID,
        body: str,
        attachment_asset_ids: list[uuid.UUID],
    ) -> dict[str, Any]:
        response = await self._request(
            "POST",
            f"/api/v1/chat/conversations/{conversation_id}/messages",
            json={
                "client_msg_id": str(client_msg_id),
                "body": body,
                "attachment_asset_ids": [str(a) for a in attachment_asset_ids],
            },
        )
        return response.json()

    async def get_timeline(
        self,
        conversation_id: uuid.UUID,
        *,
        tz: str | None = None,
    ) -> list[dict[str, Any]]:
        params = {"tz": tz} if tz else None
        response = await self._request(
            "GET", f"/api/v1/chat/conversations/{conversation_id}/timeline", params=params,
        )
        return response.json()

    async def list_mentions(self, *, limit: int = 50) -> list[dict[str, Any]]:
        response = await self._request("GET", "/api/v1/chat/mentions", params={"limit": limit})
        return response.json()

    async def list_members(self) -> list[dict[str, Any]]:
        response = await self._request("GET", self._members_path)
        return response.json()

    async def list_customer_entities(self, customer_id: str) -> list[dict[str, Any]]:
        url = self._customer_entities_path.format(customer_id=customer_id)
        response = await self._request("GET", url)
        return response.json()

    async def upload_attachment(
        self,
        data: bytes,
        mime_type: str,
        file_name: str,
        surface: UploadSurface = UploadSurface.CONVERSATION_MEDIA,
        conversation_id: uuid.UUID | None = None,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> RemoteAsset:
        """Stream *data* to the attachments endpoint, reporting percent sent."""
        params: dict[str, str] = {"surface": UploadSurface(surface).value}
        if conversation_id is not None:
            params["conversation_id"] = str(conversation_id)

        response = await self._request(
            "POST",
            "/api/v1/chat/attachments",
            params=params,
            headers={
                "Content-Type": mime_type,
                "Content-Length": str(len(data)),
                "X-File-Name": quote(file_name),
            },
            content=_chunks(data, on_progress),
        )
        asset = RemoteAsset.from_payload(response.json())
        logger.debug(
            "Uploaded %s as %s (duplicate=%s)", file_name, asset.id, asset.is_duplicate,
        )
        return asset
