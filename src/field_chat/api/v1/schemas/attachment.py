from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class AssetResponse(BaseModel):
    id: UUID
    scope_key: str
    content_hash: str
    mime_type: str
    media_kind: str
    byte_size: int
    original_filename: str
    public_url: str
    thumbnail_url: str | None
    upload_status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class UploadResponse(BaseModel):
    asset: AssetResponse
    is_duplicate: bool
