from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from field_chat.domain.value_objects.enums import UploadStatus


@dataclass(frozen=True, slots=True)
class Asset:
    """Stored, content-addressed attachment."""

    id: UUID
    business_id: UUID
    scope_key: str
    content_hash: str
    mime_type: str
    media_kind: str
    byte_size: int
    original_filename: str
    storage_ref: str
    public_url: str
    thumbnail_url: str | None
    upload_status: str
    uploaded_by: UUID | None
    created_at: datetime

    @property
    def is_usable(self) -> bool:
        return self.upload_status != UploadStatus.FAILED
