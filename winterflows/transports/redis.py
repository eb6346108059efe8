"""Redis transport for cross-process event delivery."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, List, Optional, Tuple

import redis.asyncio as redis
from pydantic import ValidationError

from ..contracts import InboundEvent
from .base import BaseTransport, dead_letter_topic

logger = logging.getLogger(__name__)

# (topic, serialized event) pairs
RawEvent = Tuple[str, str]


def queue_name(topic: str) -> str:
    return f"winterflows:{topic}"


class RedisTransport(BaseTransport[RawEvent]):
    """Redis list based queue of inbound events."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.db = db
        self.password = password
        self._redis: Optional[Any] = None

    async def connect(self) -> None:
        """Connect to Redis."""
        self._redis = redis.Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            password=self.password,
            decode_responses=True,
        )
        await self._redis.ping()

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def publish(self, topic: str, event: InboundEvent) -> None:
        """Push event onto a Redis list acting as a queue."""
        if not self._redis:
            await self.connect()
        await self._redis.lpush(queue_name(topic), event.to_json())

    async def subscribe(
        self, topic: str, lifespan: Optional[float] = None
    ) -> AsyncIterator[Tuple[RawEvent, InboundEvent]]:
        """Subscribe to events from a Redis queue."""
        if not self._redis:
            await self.connect()

        queue = queue_name(topic)
        loop = asyncio.get_running_loop()
        start_time = loop.time() if lifespan else None

        while True:
            if lifespan and start_time:
                if loop.time() - start_time >= lifespan:
                    break

            result = await self._redis.brpop(queue, timeout=1)
            if result:
                _, message_json = result
                try:
                    event = InboundEvent.from_json(message_json)
                except ValidationError as exc:
                    logger.error(f"Dead-lettering malformed event on {queue}: {exc}")
                    await self._redis.lpush(queue_name(dead_letter_topic(topic)), message_json)
                    continue
                yield (topic, message_json), event

    async def ack(self, raw_message: RawEvent) -> None:
        """No-op acknowledgment for Redis transport (message already consumed)."""
        pass

    async def nack(self, raw_message: RawEvent, requeue: bool = False) -> None:
        topic, message_json = raw_message
        if requeue:
            # consumers pop from the right, so the event is redelivered next
            await self._redis.rpush(queue_name(topic), message_json)
        else:
            await self._redis.lpush(queue_name(dead_letter_topic(topic)), message_json)

    async def dead_letters(self, topic: str) -> List[InboundEvent]:
        """Events of ``topic`` that were nacked without requeue, oldest first."""
        if not self._redis:
            await self.connect()
        raw = await self._redis.lrange(queue_name(dead_letter_topic(topic)), 0, -1)
        events = []
        for message_json in reversed(raw):
            try:
                events.append(InboundEvent.from_json(message_json))
            except ValidationError:
                logger.warning(f"Skipping unparseable dead letter on {topic}")
        return events
