from __future__ import annotations

from typing import Protocol


class BlobStorage(Protocol):
    """Durable blob store keyed by a generated path."""

    async def put(self, path: str, data: bytes, content_type: str) -> None: ...

    async def delete(self, path: str) -> None: ...

    def public_url(self, path: str) -> str: ...

    async def check(self) -> None:
        """Raise if the backend cannot currently accept writes."""
        ...
