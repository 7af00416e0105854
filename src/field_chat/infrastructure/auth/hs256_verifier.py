from __future__ import annotations

from uuid import UUID

import jwt

from field_chat.application.dto.principal import Principal
from field_chat.application.exceptions import UnauthorizedError
from field_chat.domain.value_objects.enums import SenderKind

REQUIRED_CLAIMS = ("sub", "kind", "business_id")


class HS256Verifier:
    """Verify JWTs signed with a shared HS256 secret."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> Principal:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": list(REQUIRED_CLAIMS)},
            )
        except jwt.PyJWTError as exc:
            raise UnauthorizedError(str(exc)) from exc
        try:
            return Principal(
                kind=SenderKind(payload["kind"]),
                subject_id=UUID(str(payload["sub"])),
                business_id=UUID(str(payload["business_id"])),
                roles=list(payload.get("roles", [])),
            )
        except ValueError as exc:
            raise UnauthorizedError(f"Malformed claims: {exc}") from exc
