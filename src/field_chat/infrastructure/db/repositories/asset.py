from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from field_chat.domain.entities.asset import Asset
from field_chat.domain.value_objects.enums import UploadStatus
from field_chat.infrastructure.db.mappers import asset as mapper
from field_chat.infrastructure.db.models.asset import AssetModel


class AssetReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, asset_id: UUID) -> Asset | None:
        model = await self._session.get(AssetModel, asset_id)
        return mapper.model_to_entity(model) if model else None

    async def get_many(self, asset_ids: list[UUID]) -> list[Asset]:
        if not asset_ids:
            return []
        stmt = select(AssetModel).where(AssetModel.id.in_(asset_ids))
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def get_by_content(
        self,
        business_id: UUID,
        scope_key: str,
        content_hash: str,
    ) -> Asset | None:
        stmt = select(AssetModel).where(
            AssetModel.business_id == business_id,
            AssetModel.scope_key == scope_key,
            AssetModel.content_hash == content_hash,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None


class AssetWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def claim(self, asset: Asset) -> Asset | None:
        """Insert-or-nothing on uq_asset_content. None means the content is taken."""
        stmt = (
            pg_insert(AssetModel)
            .values(**mapper.entity_to_values(asset))
            .on_conflict_do_nothing(constraint="uq_asset_content")
            .returning(AssetModel)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()
        return mapper.model_to_entity(row) if row is not None else None

    async def set_status(
        self,
        asset_id: UUID,
        status: str,
        *,
        thumbnail_url: str | None = None,
    ) -> None:
        values: dict[str, str] = {"upload_status": status}
        if thumbnail_url is not None:
            values["thumbnail_url"] = thumbnail_url
        stmt = update(AssetModel).where(AssetModel.id == asset_id).values(**values)
        await self._session.execute(stmt)

    async def reclaim(self, asset_id: UUID, replacement: Asset) -> Asset | None:
        values = mapper.entity_to_values(replacement)
        for key in ("id", "business_id", "scope_key", "content_hash"):
            values.pop(key)
        stmt = (
            update(AssetModel)
            .where(
                AssetModel.id == asset_id,
                AssetModel.upload_status == UploadStatus.FAILED,
            )
            .values(**values)
            .returning(AssetModel)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()
        return mapper.model_to_entity(row) if row is not None else None

    async def delete(self, asset_id: UUID) -> None:
        await self._session.execute(delete(AssetModel).where(AssetModel.id == asset_id))
