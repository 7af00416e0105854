from __future__ import annotations

from typing import Protocol

from field_chat.application.dto.principal import Principal


class TokenVerifier(Protocol):
    """Turns a bearer token into the caller's identity.

    Tokens carry ``sub`` (the staff or customer id), ``kind`` (``staff`` or
    ``customer``), ``business_id`` and optionally ``roles``. Implementations
    raise ``UnauthorizedError`` for a bad signature, an expired token or any
    missing claim.
    """

    async def verify(self, token: str) -> Principal: ...
