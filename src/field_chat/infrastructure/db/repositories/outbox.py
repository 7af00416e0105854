from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from field_chat.application.repositories.outbox import OutboxRecord
from field_chat.domain.value_objects.enums import OutboxStatus
from field_chat.infrastructure.db.models.outbox import OutboxMessageModel

_DUE_STATUSES = (OutboxStatus.PENDING, OutboxStatus.FAILED)


class OutboxWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, event_type: str, payload: dict[str, Any]) -> None:
        self._session.add(OutboxMessageModel(event_type=event_type, payload=payload))
        await self._session.flush()

    async def fetch_pending(self, batch_size: int) -> list[OutboxRecord]:
        now = datetime.now(timezone.utc)
        stmt = (
            select(OutboxMessageModel)
            .where(
                OutboxMessageModel.status.in_(_DUE_STATUSES),
                OutboxMessageModel.next_retry_at.is_(None)
                | (OutboxMessageModel.next_retry_at <= now),
            )
            .order_by(OutboxMessageModel.created_at.asc(), OutboxMessageModel.id.asc())
            .limit(batch_size)
            .with_for_update(skip_locked=True)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        if rows:
            await self._set_status([r.id for r in rows], OutboxStatus.PROCESSING)

        return [
            OutboxRecord(id=r.id, event_type=r.event_type, attempts=r.attempts, payload=r.payload)
            for r in rows
        ]

    async def mark_sent(self, ids: list[int]) -> None:
        await self._set_status(ids, OutboxStatus.SENT, sent_at=func.now())

    async def mark_dead(self, ids: list[int]) -> None:
        await self._set_status(ids, OutboxStatus.DEAD)

    async def mark_failed(self, record_id: int, next_retry_at: datetime) -> None:
        await self._set_status(
            [record_id],
            OutboxStatus.FAILED,
            attempts=OutboxMessageModel.attempts + 1,
            next_retry_at=next_retry_at,
        )

    async def _set_status(self, ids: list[int], status: OutboxStatus, **values: Any) -> None:
        if not ids:
            return
        await self._session.execute(
            update(OutboxMessageModel)
            .where(OutboxMessageModel.id.in_(ids))
            .values(status=status, **values)
        )
