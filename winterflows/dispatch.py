"""Trigger dispatcher: routes inbound events and scheduler ticks."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional, Tuple

from croniter import croniter

from .constants import MODAL_CALLBACK_ID, REACTION_KEY_DELIMITER
from .contracts import InboundEvent, Trigger, TriggerType
from .persistence import WorkflowRepository
from .triggers.functions import TriggerFunctionRegistry

logger = logging.getLogger(__name__)


def correlate(event: InboundEvent) -> Optional[Tuple[TriggerType, str]]:
    """Return the trigger type and correlation key an event matches on."""
    payload = event.payload
    if event.type == "message":
        return TriggerType.MESSAGE, payload.get("channel", "")
    if event.type == "reaction_added":
        channel = payload.get("item", {}).get("channel", "")
        return TriggerType.REACTION, REACTION_KEY_DELIMITER.join(
            (channel, payload.get("reaction", ""))
        )
    if event.type == "member_joined_channel":
        return TriggerType.MEMBER_JOIN, payload.get("channel", "")
    if event.type == "view_submission":
        view = payload.get("view", {})
        if view.get("callback_id") != MODAL_CALLBACK_ID:
            return None
        try:
            modal_id = json.loads(view.get("private_metadata") or "{}")["id"]
        except (json.JSONDecodeError, KeyError, TypeError):
            logger.warning(f"View submission {event.event_id} has no modal id")
            return None
        return TriggerType.MODAL, str(modal_id)
    return None


def cron_is_due(schedule: str, since: datetime, now: datetime) -> bool:
    """Whether ``schedule`` has an occurrence in ``(since, now]``."""
    return croniter(schedule, since).get_next(datetime) <= now


class TriggerDispatcher:
    """Matches events against stored triggers and invokes their functions.

    Every matching trigger fires; distinct workflows may share a channel or
    an emoji so there is no deduplication. One-shot triggers are deleted
    after their function returns.
    """

    def __init__(
        self,
        repository: WorkflowRepository,
        functions: TriggerFunctionRegistry,
        cron_lookback: timedelta = timedelta(seconds=1),
    ) -> None:
        self._repository = repository
        self._functions = functions
        self._cron_lookback = cron_lookback
        self._last_tick: Optional[datetime] = None

    async def dispatch(self, event: InboundEvent) -> int:
        """Fire every trigger matching ``event``; return how many succeeded."""
        match = correlate(event)
        if match is None:
            logger.debug(f"Ignoring {event.type} event {event.event_id}")
            return 0
        trigger_type, correlation = match
        triggers = await self._repository.find_triggers(trigger_type, correlation)
        logger.info(
            f"Event {event.event_id} ({event.type}) matched {len(triggers)} "
            f"{trigger_type.value} trigger(s) correlation={correlation!r}"
        )
        return await self._fire_all(triggers, event.payload)

    async def tick(self, now: Optional[datetime] = None) -> int:
        """Fire due time triggers and cron triggers for this tick."""
        now = now or datetime.now(timezone.utc)
        since = self._last_tick or now - self._cron_lookback
        self._last_tick = now

        due = await self._repository.list_due_time_triggers(int(now.timestamp() * 1000))
        for trigger in await self._repository.list_triggers(TriggerType.CRON):
            try:
                if cron_is_due(trigger.correlation, since, now):
                    due.append(trigger)
            except (ValueError, KeyError) as exc:
                logger.error(f"Cron trigger {trigger.id} has a bad schedule: {exc}")
        if due:
            logger.debug(f"Tick at {now.isoformat()} fired {len(due)} trigger(s)")
        return await self._fire_all(due, None)

    async def fire(self, trigger: Trigger, payload: Optional[Dict[str, Any]]) -> None:
        """Invoke the trigger's function, then retire it if it is one-shot."""
        func = self._functions.resolve(trigger.func)
        await func(trigger, payload)
        if not trigger.recurring:
            if not await self._repository.delete_trigger(trigger.id):
                logger.debug(f"Trigger {trigger.id} was already deleted")

    async def _fire_all(
        self, triggers: Iterable[Trigger], payload: Optional[Dict[str, Any]]
    ) -> int:
        results = await asyncio.gather(
            *(self._fire_logged(t, payload) for t in triggers)
        )
        return sum(results)

    async def _fire_logged(
        self, trigger: Trigger, payload: Optional[Dict[str, Any]]
    ) -> bool:
        try:
            await self.fire(trigger, payload)
        except Exception:
            logger.exception(f"Trigger {trigger.id} ({trigger.func}) failed")
            return False
        return True
