from __future__ import annotations

from enum import StrEnum


class ConversationKind(StrEnum):
    TEAM = "team"
    CUSTOMER = "customer"


class SenderKind(StrEnum):
    STAFF = "staff"
    CUSTOMER = "customer"


class EntityKind(StrEnum):
    JOB = "job"
    QUOTE = "quote"
    INVOICE = "invoice"


class UploadStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class MediaKind(StrEnum):
    PHOTO = "photo"
    VIDEO = "video"
    DOCUMENT = "document"


class UploadSurface(StrEnum):
    CONVERSATION_MEDIA = "conversation_media"
    INVOICE_SCAN = "invoice_scan"


class OutboxStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    SENT = "sent"
    FAILED = "failed"
    # Gave up after OUTBOX_MAX_ATTEMPTS; kept for inspection
    DEAD = "dead"
