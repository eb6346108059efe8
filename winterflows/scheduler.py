"""Periodic tick source for cron and time triggers."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .dispatch import TriggerDispatcher

logger = logging.getLogger(__name__)


class Scheduler:
    def __init__(self, dispatcher: TriggerDispatcher, interval: float = 1.0) -> None:
        self._dispatcher = dispatcher
        self._interval = interval

    async def run(self, lifespan: Optional[float] = None) -> None:
        """Tick every ``interval`` seconds.

        Args:
            lifespan: Maximum time in seconds to keep ticking. If None, runs indefinitely.
        """
        loop = asyncio.get_running_loop()
        start_time = loop.time() if lifespan else None

        while True:
            if lifespan and start_time:
                if loop.time() - start_time >= lifespan:
                    break
            try:
                await self._dispatcher.tick()
            except Exception:
                logger.exception("Scheduler tick failed")
            await asyncio.sleep(self._interval)
