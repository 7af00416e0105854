from __future__ import annotations

from field_chat.domain.entities.asset import Asset
from field_chat.infrastructure.db.models.asset import AssetModel


def model_to_entity(model: AssetModel) -> Asset:
    return Asset(
        id=model.id,
        business_id=model.business_id,
        scope_key=model.scope_key,
        content_hash=model.content_hash,
        mime_type=model.mime_type,
        media_kind=model.media_kind,
        byte_size=model.byte_size,
        original_filename=model.original_filename,
        storage_ref=model.storage_ref,
        public_url=model.public_url,
        thumbnail_url=model.thumbnail_url,
        upload_status=model.upload_status,
        uploaded_by=model.uploaded_by,
        created_at=model.created_at,
    )


def entity_to_values(entity: Asset) -> dict:
    return {
        "id": entity.id,
        "business_id": entity.business_id,
        "scope_key": entity.scope_key,
        "content_hash": entity.content_hash,
        "mime_type": entity.mime_type,
        "media_kind": entity.media_kind,
        "byte_size": entity.byte_size,
        "original_filename": entity.original_filename,
        "storage_ref": entity.storage_ref,
        "public_url": entity.public_url,
        "thumbnail_url": entity.thumbnail_url,
        "upload_status": entity.upload_status,
        "uploaded_by": entity.uploaded_by,
        "created_at": entity.created_at,
    }
