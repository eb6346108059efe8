"""Consumes inbound events from a transport and hands them to the dispatcher."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

from .constants import EVENTS_TOPIC
from .contracts import InboundEvent
from .dispatch import TriggerDispatcher
from .transports.base import BaseTransport

logger = logging.getLogger(__name__)


class EventWorker:
    """Runs one task per inbound event so a slow handler never blocks intake."""

    def __init__(
        self,
        transport: BaseTransport,
        dispatcher: TriggerDispatcher,
        topic: str = EVENTS_TOPIC,
    ) -> None:
        self._transport = transport
        self._dispatcher = dispatcher
        self._topic = topic
        self._tasks: Set[asyncio.Task] = set()

    async def start(self, lifespan: Optional[float] = None) -> None:
        """Consume events until ``lifespan`` expires, then drain running tasks."""
        await self._transport.connect()
        try:
            async for raw_message, event in self._transport.subscribe(
                self._topic, lifespan=lifespan
            ):
                task = asyncio.create_task(self._handle(raw_message, event))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
            if self._tasks:
                await asyncio.gather(*self._tasks)
        finally:
            await self._transport.disconnect()

    async def _handle(self, raw_message, event: InboundEvent) -> None:
        try:
            fired = await self._dispatcher.dispatch(event)
        except Exception:
            logger.exception(f"Failed to dispatch event {event.event_id}")
            await self._transport.nack(raw_message, requeue=False)
            return
        logger.debug(f"Event {event.event_id} fired {fired} trigger(s)")
        await self._transport.ack(raw_message)
