from __future__ import annotations

from typing import Protocol
from uuid import UUID

from field_chat.domain.entities.asset import Asset


class AssetReader(Protocol):
    async def get_by_id(self, asset_id: UUID) -> Asset | None: ...

    async def get_many(self, asset_ids: list[UUID]) -> list[Asset]: ...

    async def get_by_content(
        self,
        business_id: UUID,
        scope_key: str,
        content_hash: str,
    ) -> Asset | None: ...


class AssetWriter(Protocol):
    async def claim(self, asset: Asset) -> Asset | None:
        """Insert asset unless (business_id, scope_key, content_hash) is taken.

        Returns the inserted asset, or None when another writer owns the content.
        """
        ...

    async def set_status(
        self,
        asset_id: UUID,
        status: str,
        *,
        thumbnail_url: str | None = None,
    ) -> None: ...

    async def reclaim(self, asset_id: UUID, replacement: Asset) -> Asset | None:
        """Reuse a failed row for a fresh upload of the same content, keeping its id.

        Returns None when the row is no longer failed.
        """
        ...

    async def delete(self, asset_id: UUID) -> None: ...
