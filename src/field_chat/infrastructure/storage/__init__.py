from __future__ import annotations

from field_chat.application.ports.storage import BlobStorage
from field_chat.config import Settings


def build_storage(settings: Settings) -> BlobStorage:
    if settings.STORAGE_BACKEND == "s3":
        from field_chat.infrastructure.storage.s3 import S3BlobStorage

        assert settings.S3_BUCKET, "S3_BUCKET must be set when STORAGE_BACKEND=s3"
        return S3BlobStorage(
            settings.S3_BUCKET,
            prefix=settings.S3_PREFIX,
            region_name=settings.S3_REGION,
            public_base_url=settings.STORAGE_PUBLIC_BASE_URL,
        )

    from field_chat.infrastructure.storage.local import LocalBlobStorage

    return LocalBlobStorage(
        settings.LOCAL_STORAGE_ROOT,
        settings.STORAGE_PUBLIC_BASE_URL or "http://localhost:8000/media",
    )
