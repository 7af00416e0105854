"""Upload allow-lists and size ceilings per upload surface."""
from __future__ import annotations

from dataclasses import dataclass

from field_chat.application.exceptions import (
    PayloadTooLargeError,
    UnsupportedMediaTypeError,
)
from field_chat.domain.value_objects.enums import MediaKind, UploadSurface

MB = 1024 * 1024

IMAGE_TYPES = frozenset({
    "image/jpeg", "image/jpg", "image/png", "image/webp", "image/heic", "image/svg+xml",
})
VIDEO_TYPES = frozenset({
    "video/mp4", "video/quicktime", "video/x-msvideo", "video/webm",
})
SCAN_TYPES = frozenset({
    "image/jpeg", "image/jpg", "image/png", "image/webp", "image/heic", "image/heif",
    "application/pdf",
})

# Types served as-is, without thumbnailing or transcoding
NO_POST_PROCESSING = frozenset({"image/svg+xml", "application/pdf"})


@dataclass(frozen=True, slots=True)
class UploadPolicy:
    surface: UploadSurface
    allowed_types: frozenset[str]
    max_bytes: int

    def check(self, mime_type: str, byte_size: int) -> MediaKind:
        """Validate a file before any I/O. Returns its media kind."""
        mime_type = (mime_type or "").lower()
        if mime_type not in self.allowed_types:
            raise UnsupportedMediaTypeError(f"Unsupported file type: {mime_type or 'unknown'}")
        if byte_size > self.max_bytes:
            raise PayloadTooLargeError(
                f"File too large. Maximum size is {self.max_bytes // MB}MB"
            )
        return media_kind_for(mime_type)


POLICIES: dict[UploadSurface, UploadPolicy] = {
    UploadSurface.CONVERSATION_MEDIA: UploadPolicy(
        surface=UploadSurface.CONVERSATION_MEDIA,
        allowed_types=IMAGE_TYPES | VIDEO_TYPES,
        max_bytes=100 * MB,
    ),
    UploadSurface.INVOICE_SCAN: UploadPolicy(
        surface=UploadSurface.INVOICE_SCAN,
        allowed_types=SCAN_TYPES,
        max_bytes=10 * MB,
    ),
}


def policy_for(surface: UploadSurface | str) -> UploadPolicy:
    return POLICIES[UploadSurface(surface)]


def media_kind_for(mime_type: str) -> MediaKind:
    if mime_type.startswith("video/"):
        return MediaKind.VIDEO
    if mime_type.startswith("image/"):
        return MediaKind.PHOTO
    return MediaKind.DOCUMENT


def needs_post_processing(mime_type: str) -> bool:
    return mime_type.lower() not in NO_POST_PROCESSING
