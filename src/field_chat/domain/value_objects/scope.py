"""Scope keys: the namespace within which asset content hashes are unique."""
from __future__ import annotations

from uuid import UUID

from field_chat.domain.value_objects.enums import UploadSurface

UNSCOPED_SUFFIX = ":unscoped"


def conversation_scope(conversation_id: UUID) -> str:
    return f"conversation:{conversation_id}"


def unscoped(surface: UploadSurface) -> str:
    return f"{surface.value}{UNSCOPED_SUFFIX}"


def scope_key_for(surface: UploadSurface, conversation_id: UUID | None) -> str:
    if conversation_id is not None and surface == UploadSurface.CONVERSATION_MEDIA:
        return conversation_scope(conversation_id)
    return unscoped(surface)


def is_unscoped(scope_key: str) -> bool:
    return scope_key.endswith(UNSCOPED_SUFFIX)


def storage_dir(scope_key: str) -> str:
    """Path fragment used for blobs of a scope, e.g. ``conversation/<id>``."""
    return scope_key.replace(":", "/")
