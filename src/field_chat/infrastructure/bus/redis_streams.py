"""Redis Streams transport.

Outbox events are appended with XADD. Worker reports are read with a consumer
group; an entry is acknowledged only once its callback succeeds, so a failed or
crashed handler leaves it pending. Pending entries that sit idle are claimed by
whichever consumer notices them first and retried, up to ``max_deliveries``.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

import redis.asyncio as aioredis

from field_chat.application.ports.bus import StreamEventHandler
from field_chat.infrastructure.bus.serializer import deserialize_event, serialize_event

logger = logging.getLogger(__name__)


class RedisStreamPublisher:
    """Implements application.ports.bus.EventPublisher."""

    def __init__(self, redis: aioredis.Redis, *, maxlen: int) -> None:
        self._redis = redis
        self._maxlen = maxlen

    async def publish(self, stream: str, payload: dict[str, Any]) -> None:
        fields = serialize_event(payload.get("event_type", "unknown"), payload)
        await self._redis.xadd(stream, fields, maxlen=self._maxlen, approximate=True)


class RedisStreamConsumer:
    def __init__(
        self,
        redis: aioredis.Redis,
        stream: str,
        group: str,
        consumer: str,
        callback: StreamEventHandler,
        *,
        min_idle_ms: int,
        max_deliveries: int,
        batch_size: int = 10,
        block_ms: int = 5000,
    ) -> None:
        self._redis = redis
        self._stream = stream
        self._group = group
        self._consumer = consumer
        self._callback = callback
        self._min_idle_ms = min_idle_ms
        self._max_deliveries = max_deliveries
        self._batch_size = batch_size
        self._block_ms = block_ms
        self._task: asyncio.Task[None] | None = None

    async def ensure_group(self) -> None:
        try:
            await self._redis.xgroup_create(self._stream, self._group, id="0", mkstream=True)
            logger.info("Created consumer group %s on %s", self._group, self._stream)
        except aioredis.ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise

    async def start(self) -> None:
        await self.ensure_group()
        self._task = asyncio.create_task(self._run(), name=f"stream-consumer:{self._stream}")
        logger.info(
            "Stream consumer %s reading %s as group %s", self._consumer, self._stream, self._group,
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Stream consumer %s stopped", self._consumer)

    async def _run(self) -> None:
        while True:
            try:
                await self._reclaim()
                await self._read_new()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Stream consumer error on %s, retrying in 5s", self._stream)
                await asyncio.sleep(5)

    async def _read_new(self) -> None:
        entries = await self._redis.xreadgroup(
            groupname=self._group,
            consumername=self._consumer,
            streams={self._stream: ">"},
            count=self._batch_size,
            block=self._block_ms,
        )
        for _stream, messages in entries or ():
            for msg_id, fields in messages:
                await self._handle(msg_id, fields, deliveries=1)

    async def _reclaim(self) -> None:
        pending = await self._redis.xpending_range(
            self._stream,
            self._group,
            min="-",
            max="+",
            count=self._batch_size,
            idle=self._min_idle_ms,
        )
        for entry in pending:
            msg_id = entry["message_id"]
            deliveries = entry["times_delivered"]
            if deliveries >= self._max_deliveries:
                logger.error(
                    "Giving up on %s after %d deliveries on %s", msg_id, deliveries, self._stream,
                )
                await self._redis.xack(self._stream, self._group, msg_id)
                continue
            claimed = await self._redis.xclaim(
                self._stream, self._group, self._consumer, self._min_idle_ms, [msg_id],
            )
            for claimed_id, fields in claimed:
                # Trimmed entries come back without fields
                if fields:
                    await self._handle(claimed_id, fields, deliveries=deliveries + 1)
                else:
                    await self._redis.xack(self._stream, self._group, claimed_id)

    async def _handle(self, msg_id: str, fields: dict[str, str], *, deliveries: int) -> None:
        try:
            event_type, data = deserialize_event(fields)
            await self._callback(event_type, data)
        except Exception:
            logger.exception(
                "Error processing %s on %s (delivery %d)", msg_id, self._stream, deliveries,
            )
            return
        await self._redis.xack(self._stream, self._group, msg_id)
