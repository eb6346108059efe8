"""Typed constructors for every trigger kind."""

from __future__ import annotations

import logging

from croniter import croniter

from ..constants import REACTION_KEY_DELIMITER
from ..contracts import Trigger, TriggerTarget, TriggerType
from ..errors import ValidationError
from ..persistence import WorkflowRepository
from .functions import TriggerFunctionRegistry

logger = logging.getLogger(__name__)


def reaction_key(channel: str, emoji: str) -> str:
    """Composite correlation key for reaction triggers."""
    for part in (channel, emoji):
        if REACTION_KEY_DELIMITER in part:
            raise ValidationError(
                f"{part!r} cannot contain {REACTION_KEY_DELIMITER!r}"
            )
    return f"{channel}{REACTION_KEY_DELIMITER}{emoji}"


def split_reaction_key(key: str) -> tuple[str, str]:
    channel, _, emoji = key.partition(REACTION_KEY_DELIMITER)
    return channel, emoji


class TriggerFactory:
    """Creates trigger rows after checking their function resolves."""

    def __init__(
        self, repository: WorkflowRepository, functions: TriggerFunctionRegistry
    ) -> None:
        self._repository = repository
        self._functions = functions

    async def _create(
        self,
        trigger_type: TriggerType,
        correlation: str,
        target: TriggerTarget,
        fire_at: int | None = None,
    ) -> Trigger:
        if target.func not in self._functions:
            raise ValidationError(f"Trigger function {target.func!r} is not registered")
        if trigger_type.recurring and target.workflow_id is None:
            raise ValidationError(f"{trigger_type.value} triggers must target a workflow")
        if not trigger_type.recurring and target.execution_id is None:
            raise ValidationError(
                f"{trigger_type.value} triggers must target an execution"
            )
        trigger = await self._repository.create_trigger(
            Trigger(
                type=trigger_type,
                correlation=correlation,
                fire_at=fire_at,
                recurring=trigger_type.recurring,
                **target.model_dump(),
            )
        )
        logger.info(
            f"Created {trigger_type.value} trigger {trigger.id} "
            f"func={trigger.func} correlation={correlation!r}"
        )
        return trigger

    async def create_cron_trigger(self, schedule: str, target: TriggerTarget) -> Trigger:
        if not croniter.is_valid(schedule):
            raise ValidationError(f"Invalid cron schedule {schedule!r}")
        return await self._create(TriggerType.CRON, schedule, target)

    async def create_message_trigger(self, channel: str, target: TriggerTarget) -> Trigger:
        return await self._create(TriggerType.MESSAGE, channel, target)

    async def create_reaction_trigger(
        self, channel: str, emoji: str, target: TriggerTarget
    ) -> Trigger:
        return await self._create(TriggerType.REACTION, reaction_key(channel, emoji), target)

    async def create_member_join_trigger(
        self, channel: str, target: TriggerTarget
    ) -> Trigger:
        return await self._create(TriggerType.MEMBER_JOIN, channel, target)

    async def create_time_trigger(self, fire_at_ms: int, target: TriggerTarget) -> Trigger:
        fire_at_ms = int(fire_at_ms)
        return await self._create(
            TriggerType.TIME, str(fire_at_ms), target, fire_at=fire_at_ms
        )

    async def create_modal_trigger(self, modal_id: str, target: TriggerTarget) -> Trigger:
        return await self._create(TriggerType.MODAL, modal_id, target)
