"""Content-addressed attachment uploads.

Identical bytes uploaded twice into the same scope resolve to one asset. The
uniqueness guarantee lives in the database (``uq_asset_content``): a losing
writer's claim is a no-op and it picks up the winner's row instead.
"""
from __future__ import annotations

import asyncio
import hashlib
import logging
import mimetypes
import uuid
from dataclasses import replace

from field_chat.application.dto.asset import UploadOutcome
from field_chat.application.dto.principal import Principal
from field_chat.application.exceptions import ConflictError, UploadFailedError
from field_chat.application.policies.media import (
    MB,
    media_kind_for,
    needs_post_processing,
    policy_for,
)
from field_chat.application.policies.permissions import (
    assert_conversation_access,
    assert_staff,
)
from field_chat.application.ports.clock import Clock, SystemClock
from field_chat.application.ports.storage import BlobStorage
from field_chat.application.uow import UnitOfWork
from field_chat.domain.entities.asset import Asset
from field_chat.domain.value_objects.enums import UploadStatus, UploadSurface
from field_chat.domain.value_objects.scope import scope_key_for, storage_dir

logger = logging.getLogger(__name__)

HASH_OFFLOAD_BYTES = 1 * MB


def _sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


async def compute_content_hash(data: bytes) -> str:
    # Large buffers are hashed off the event loop
    if len(data) > HASH_OFFLOAD_BYTES:
        return await asyncio.to_thread(_sha256_hex, data)
    return _sha256_hex(data)


def _extension(file_name: str, mime_type: str) -> str:
    _, dot, ext = file_name.rpartition(".")
    if dot and ext and "/" not in ext:
        return ext.lower()
    guessed = mimetypes.guess_extension(mime_type) or ".bin"
    return guessed.lstrip(".")


def build_storage_path(
    business_id: uuid.UUID,
    scope_key: str,
    file_name: str,
    mime_type: str,
    clock: Clock,
) -> str:
    stamp = int(clock.now().timestamp() * 1000)
    ext = _extension(file_name, mime_type)
    return f"{business_id}/{storage_dir(scope_key)}/{stamp}-{uuid.uuid4().hex[:8]}.{ext}"


async def upload_attachment(
    data: bytes,
    mime_type: str,
    file_name: str,
    surface: UploadSurface,
    conversation_id: uuid.UUID | None,
    principal: Principal,
    uow: UnitOfWork,
    storage: BlobStorage,
    *,
    clock: Clock = SystemClock(),
) -> UploadOutcome:
    """Validate an upload for its surface, then resolve it to an asset."""
    policy_for(surface).check(mime_type, len(data))

    if surface == UploadSurface.INVOICE_SCAN:
        assert_staff(principal)
    if conversation_id is not None:
        conversation = await uow.conversations.get_by_id(conversation_id)
        assert_conversation_access(principal, conversation)

    scope_key = scope_key_for(surface, conversation_id)
    return await resolve(
        data, scope_key, mime_type.lower(), file_name, principal, uow, storage, clock=clock,
    )


async def resolve(
    data: bytes,
    scope_key: str,
    mime_type: str,
    file_name: str,
    principal: Principal,
    uow: UnitOfWork,
    storage: BlobStorage,
    *,
    clock: Clock = SystemClock(),
) -> UploadOutcome:
    """Return the asset holding *data* in *scope_key*, storing it if new."""
    content_hash = await compute_content_hash(data)
    storage_ref = build_storage_path(principal.business_id, scope_key, file_name, mime_type, clock)
    candidate = Asset(
        id=uuid.uuid4(),
        business_id=principal.business_id,
        scope_key=scope_key,
        content_hash=content_hash,
        mime_type=mime_type,
        media_kind=media_kind_for(mime_type),
        byte_size=len(data),
        original_filename=file_name,
        storage_ref=storage_ref,
        public_url=storage.public_url(storage_ref),
        thumbnail_url=None,
        upload_status=UploadStatus.PENDING,
        uploaded_by=principal.subject_id,
        created_at=clock.now(),
    )

    claimed = await uow.assets_w.claim(candidate)
    reclaimed = False
    if claimed is None:
        existing = await uow.assets.get_by_content(principal.business_id, scope_key, content_hash)
        if existing is not None and existing.is_usable:
            logger.info(
                "Duplicate content %s in scope %s, reusing asset %s",
                content_hash[:12], scope_key, existing.id,
            )
            return UploadOutcome(asset=existing, is_duplicate=True)
        if existing is not None:
            # Messages can reference the failed row; its id must survive
            logger.info("Replacing failed asset %s in scope %s", existing.id, scope_key)
            claimed = await uow.assets_w.reclaim(existing.id, candidate)
            reclaimed = True
        else:
            claimed = await uow.assets_w.claim(candidate)
        if claimed is None:
            raise ConflictError("Identical content is being uploaded concurrently")

    asset = await _store(claimed, data, uow, storage, reclaimed=reclaimed)
    return UploadOutcome(asset=asset, is_duplicate=False)


async def _store(
    asset: Asset,
    data: bytes,
    uow: UnitOfWork,
    storage: BlobStorage,
    *,
    reclaimed: bool = False,
) -> Asset:
    if needs_post_processing(asset.mime_type):
        status, thumbnail_url = UploadStatus.PROCESSING, None
    else:
        status, thumbnail_url = UploadStatus.COMPLETED, asset.public_url

    try:
        await storage.put(asset.storage_ref, data, asset.mime_type)
        await uow.assets_w.set_status(asset.id, status, thumbnail_url=thumbnail_url)
        if status == UploadStatus.PROCESSING:
            await uow.outbox.add(
                "media.process_requested",
                {
                    "asset_id": str(asset.id),
                    "business_id": str(asset.business_id),
                    "media_kind": asset.media_kind,
                    "mime_type": asset.mime_type,
                    "storage_ref": asset.storage_ref,
                },
            )
        await uow.commit()
    except Exception as exc:
        logger.warning("Storing asset %s failed: %s", asset.id, exc)
        await _discard(asset, uow, storage, keep_row=reclaimed)
        raise UploadFailedError("Failed to upload file") from exc

    logger.info(
        "Stored asset %s (%s, %d bytes) in scope %s as %s",
        asset.id, asset.mime_type, asset.byte_size, asset.scope_key, status,
    )
    return replace(asset, upload_status=status, thumbnail_url=thumbnail_url)


async def _discard(
    asset: Asset,
    uow: UnitOfWork,
    storage: BlobStorage,
    *,
    keep_row: bool = False,
) -> None:
    """Remove any partially written blob, then drop the claimed row or leave it failed."""
    try:
        await storage.delete(asset.storage_ref)
    except Exception:
        logger.exception("Could not remove blob %s", asset.storage_ref)
    await uow.rollback()
    if keep_row:
        await uow.assets_w.set_status(asset.id, UploadStatus.FAILED)
    else:
        await uow.assets_w.delete(asset.id)
    await uow.commit()


async def apply_processing_result(
    asset_id: uuid.UUID,
    succeeded: bool,
    thumbnail_url: str | None,
    uow: UnitOfWork,
) -> Asset | None:
    """Record the outcome reported by a thumbnail/transcode worker."""
    asset = await uow.assets.get_by_id(asset_id)
    if asset is None:
        logger.warning("Processing result for unknown asset %s", asset_id)
        return None
    if asset.upload_status != UploadStatus.PROCESSING:
        logger.debug("Asset %s is %s, ignoring processing result", asset_id, asset.upload_status)
        return asset

    status = UploadStatus.COMPLETED if succeeded else UploadStatus.FAILED
    thumbnail_url = thumbnail_url or asset.thumbnail_url
    await uow.assets_w.set_status(asset.id, status, thumbnail_url=thumbnail_url)
    await uow.commit()
    return replace(asset, upload_status=status, thumbnail_url=thumbnail_url)
