"""In-memory transport for tests and single-process deployments."""

from __future__ import annotations

import asyncio
from collections import defaultdict, deque
from typing import AsyncIterator, Deque, Dict, List, Optional, Tuple

from ..contracts import InboundEvent
from .base import BaseTransport, dead_letter_topic

# (topic, event) pairs
RawEvent = Tuple[str, InboundEvent]


class InMemoryTransport(BaseTransport[RawEvent]):
    """Simple in-process queue."""

    def __init__(self, poll_interval: float = 0.1) -> None:
        self._queues: Dict[str, Deque[InboundEvent]] = defaultdict(deque)
        self._lock = asyncio.Lock()
        self._poll_interval = poll_interval

    async def publish(self, topic: str, event: InboundEvent) -> None:
        """Publish a copy of the event to the in-memory queue."""
        async with self._lock:
            self._queues[topic].append(InboundEvent.from_json(event.to_json()))

    async def subscribe(
        self, topic: str, lifespan: Optional[float] = None
    ) -> AsyncIterator[Tuple[RawEvent, InboundEvent]]:
        """Subscribe to events from topic.

        Args:
            topic: The topic to subscribe to
            lifespan: Maximum time in seconds to keep connection open. If None, runs indefinitely.
        """
        loop = asyncio.get_running_loop()
        start_time = loop.time() if lifespan else None

        while True:
            if lifespan and start_time:
                if loop.time() - start_time >= lifespan:
                    break

            async with self._lock:
                event = self._queues[topic].popleft() if self._queues[topic] else None
            if event is not None:
                yield (topic, event), event
                continue

            await asyncio.sleep(self._poll_interval)

    async def ack(self, raw_message: RawEvent) -> None:
        """No-op acknowledgment for in-memory transport."""
        pass

    async def nack(self, raw_message: RawEvent, requeue: bool = False) -> None:
        topic, event = raw_message
        async with self._lock:
            if requeue:
                self._queues[topic].appendleft(event)
            else:
                self._queues[dead_letter_topic(topic)].append(event)

    def dead_letters(self, topic: str) -> List[InboundEvent]:
        """Events of ``topic`` that were nacked without requeue."""
        return list(self._queues[dead_letter_topic(topic)])
