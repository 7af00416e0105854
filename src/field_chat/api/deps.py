"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from field_chat.application.dto.principal import Principal
from field_chat.application.exceptions import UnauthorizedError
from field_chat.application.ports.auth import TokenVerifier
from field_chat.application.ports.storage import BlobStorage
from field_chat.config import settings
from field_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from field_chat.infrastructure.db.uow import SqlAlchemyUoW, open_uow
from field_chat.infrastructure.storage import build_storage

_bearer_scheme = HTTPBearer()


async def get_uow() -> AsyncIterator[SqlAlchemyUoW]:
    async with open_uow() as uow:
        yield uow


UoWDep = Annotated[SqlAlchemyUoW, Depends(get_uow)]


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)
    return _verifier


_storage: BlobStorage | None = None


def get_storage() -> BlobStorage:
    global _storage  # noqa: PLW0603
    if _storage is None:
        _storage = build_storage(settings)
    return _storage


StorageDep = Annotated[BlobStorage, Depends(get_storage)]


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
) -> Principal:
    try:
        return await get_verifier().verify(credentials.credentials)
    except UnauthorizedError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
