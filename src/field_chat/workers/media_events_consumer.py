"""Consumer for post-processing reports (thumbnails, transcodes) via Redis Streams."""
from __future__ import annotations

import asyncio
import logging
import socket
import uuid
from typing import Any

import redis.asyncio as aioredis

from field_chat.application.uow import UnitOfWork
from field_chat.config import settings
from field_chat.infrastructure.bus.redis_streams import RedisStreamConsumer
from field_chat.infrastructure.db.uow import open_uow
from field_chat.services import attachment_service

logger = logging.getLogger(__name__)

REPORT_EVENTS = frozenset({"media.processed", "media.failed"})


async def handle_event(event_type: str, fields: dict[str, Any], uow: UnitOfWork) -> None:
    """Apply one worker report to the asset it names."""
    if event_type not in REPORT_EVENTS:
        logger.debug("Ignoring %s", event_type)
        return

    try:
        asset_id = uuid.UUID(str(fields["asset_id"]))
    except (KeyError, ValueError):
        logger.warning("Dropping %s without a valid asset_id: %r", event_type, fields)
        return

    asset = await attachment_service.apply_processing_result(
        asset_id, event_type == "media.processed", fields.get("thumbnail_url"), uow,
    )
    if asset is not None:
        logger.info("Asset %s is now %s", asset_id, asset.upload_status)


async def _dispatch(event_type: str, fields: dict[str, Any]) -> None:
    async with open_uow() as uow:
        await handle_event(event_type, fields, uow)


async def run_consumer(stop: asyncio.Event | None = None) -> None:
    stop = stop or asyncio.Event()
    redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    consumer = RedisStreamConsumer(
        redis=redis,
        stream=settings.MEDIA_EVENTS_STREAM,
        group=settings.MEDIA_EVENTS_GROUP,
        consumer=f"{socket.gethostname()}-{uuid.uuid4().hex[:6]}",
        callback=_dispatch,
        min_idle_ms=settings.STREAM_CLAIM_IDLE_MS,
        max_deliveries=settings.STREAM_MAX_DELIVERIES,
    )
    await consumer.start()
    try:
        await stop.wait()
    finally:
        await consumer.stop()
        await redis.aclose()


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(run_consumer())
    except KeyboardInterrupt:
        logger.info("Media events consumer interrupted")


if __name__ == "__main__":
    main()
