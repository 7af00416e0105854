"""Relays committed outbox rows to Redis Streams.

Chat events go to ``CHAT_EVENTS_STREAM``; ``media.*`` jobs go to
``MEDIA_JOBS_STREAM`` for the post-processing workers. A record that keeps
failing is retried with exponential backoff and dead-lettered once it has used
up ``OUTBOX_MAX_ATTEMPTS``.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

import redis.asyncio as aioredis

from field_chat.application.ports.bus import EventPublisher
from field_chat.application.uow import UnitOfWork
from field_chat.config import settings
from field_chat.infrastructure.bus.redis_streams import RedisStreamPublisher
from field_chat.infrastructure.db.uow import open_uow

logger = logging.getLogger(__name__)

RETRY_BASE = timedelta(seconds=5)
RETRY_CAP = timedelta(minutes=5)


def next_retry_at(attempts: int, now: datetime | None = None) -> datetime:
    delay = min(RETRY_BASE * (2 ** attempts), RETRY_CAP)
    return (now or datetime.now(timezone.utc)) + delay


def stream_for(event_type: str) -> str:
    if event_type.startswith("media."):
        return settings.MEDIA_JOBS_STREAM
    return settings.CHAT_EVENTS_STREAM


async def relay_pending(uow: UnitOfWork, publisher: EventPublisher, *, batch_size: int) -> int:
    """Publish one batch of due records and commit their new states. Returns the number sent."""
    batch = await uow.outbox.fetch_pending(batch_size)
    if not batch:
        return 0

    sent: list[int] = []
    dead: list[int] = []
    for record in batch:
        if record.attempts >= settings.OUTBOX_MAX_ATTEMPTS:
            logger.error(
                "Outbox record %d (%s) dead after %d attempts",
                record.id, record.event_type, record.attempts,
            )
            dead.append(record.id)
            continue
        try:
            await publisher.publish(stream_for(record.event_type), record.message())
        except Exception:
            logger.exception("Failed to publish outbox record %d", record.id)
            await uow.outbox.mark_failed(record.id, next_retry_at(record.attempts))
        else:
            sent.append(record.id)

    await uow.outbox.mark_sent(sent)
    await uow.outbox.mark_dead(dead)
    await uow.commit()
    return len(sent)


async def run_outbox_worker(stop: asyncio.Event | None = None) -> None:
    stop = stop or asyncio.Event()
    redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    publisher = RedisStreamPublisher(redis, maxlen=settings.STREAM_MAXLEN)
    logger.info(
        "Outbox worker started (poll=%.1fs, batch=%d, max_attempts=%d)",
        settings.OUTBOX_POLL_INTERVAL,
        settings.OUTBOX_BATCH_SIZE,
        settings.OUTBOX_MAX_ATTEMPTS,
    )

    try:
        while not stop.is_set():
            try:
                async with open_uow() as uow:
                    sent = await relay_pending(uow, publisher, batch_size=settings.OUTBOX_BATCH_SIZE)
                if sent:
                    logger.info("Published %d outbox records", sent)
                    # Drain a backlog without sleeping between full batches
                    if sent == settings.OUTBOX_BATCH_SIZE:
                        continue
            except Exception:
                logger.exception("Outbox worker loop error")
            try:
                await asyncio.wait_for(stop.wait(), timeout=settings.OUTBOX_POLL_INTERVAL)
            except TimeoutError:
                pass
    finally:
        await redis.aclose()


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(run_outbox_worker())
    except KeyboardInterrupt:
        logger.info("Outbox worker interrupted")


if __name__ == "__main__":
    main()
