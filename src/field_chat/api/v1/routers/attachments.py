from __future__ import annotations

from urllib.parse import unquote
from uuid import UUID

from fastapi import APIRouter, Header, Query, Request, Response

from field_chat.api.deps import CurrentPrincipal, StorageDep, UoWDep
from field_chat.api.v1.schemas.attachment import AssetResponse, UploadResponse
from field_chat.application.exceptions import PayloadTooLargeError
from field_chat.application.policies.media import MB, policy_for
from field_chat.domain.value_objects.enums import UploadSurface
from field_chat.services import attachment_service

router = APIRouter(prefix="/api/v1/chat", tags=["attachments"])


async def _read_body(request: Request, max_bytes: int) -> bytes:
    buf = bytearray()
    async for chunk in request.stream():
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise PayloadTooLargeError(f"File too large. Maximum size is {max_bytes // MB}MB")
    return bytes(buf)


@router.post("/attachments", response_model=UploadResponse, status_code=201)
async def upload_attachment(
    request: Request,
    principal: CurrentPrincipal,
    uow: UoWDep,
    storage: StorageDep,
    response: Response,
    surface: UploadSurface = Query(UploadSurface.CONVERSATION_MEDIA),
    conversation_id: UUID | None = Query(None),
    content_type: str = Header(""),
    x_file_name: str = Header("upload"),
) -> UploadResponse:
    """Upload raw file bytes; identical content in the same scope is reused."""
    mime_type = content_type.split(";", 1)[0].strip().lower()
    policy = policy_for(surface)
    declared = request.headers.get("content-length", "")
    # Reject on headers alone before reading the body
    policy.check(mime_type, int(declared) if declared.isdigit() else 0)

    data = await _read_body(request, policy.max_bytes)
    outcome = await attachment_service.upload_attachment(
        data, mime_type, unquote(x_file_name), surface, conversation_id, principal, uow, storage,
    )
    if outcome.is_duplicate:
        response.status_code = 200
    return UploadResponse(
        asset=AssetResponse.model_validate(outcome.asset, from_attributes=True),
        is_duplicate=outcome.is_duplicate,
    )
