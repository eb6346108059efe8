"""Trigger functions that start new executions of a workflow, and the path
that replaces the trigger bound to a workflow."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

from croniter import croniter

from ..contracts import Trigger, TriggerTarget, TriggerType
from ..errors import ValidationError
from ..templating import user_ping
from .create import reaction_key
from .functions import TriggerFunctionRegistry

if TYPE_CHECKING:
    from ..execute import ExecutionEngine

logger = logging.getLogger(__name__)

EXECUTE_CRON = "workflow.execute.cron"
EXECUTE_MESSAGE = "workflow.execute.message"
EXECUTE_REACTION = "workflow.execute.reaction"
EXECUTE_MEMBER_JOIN = "workflow.execute.member_join"

ALLOWED_MESSAGE_SUBTYPES = frozenset({None, "file_share", "me_message"})


def register_trigger_functions(
    functions: TriggerFunctionRegistry, engine: "ExecutionEngine"
) -> None:
    repository = engine.repository

    async def start(trigger: Trigger, seeds: Optional[Mapping[str, str]] = None) -> None:
        workflow = await repository.get_workflow(trigger.workflow_id)
        if workflow is None:
            logger.info(
                f"Trigger {trigger.id} points at missing workflow "
                f"{trigger.workflow_id}, deleting it"
            )
            await repository.delete_trigger(trigger.id)
            return
        await engine.start_execution(workflow, workflow.creator_user_id, seeds)

    @functions.function(EXECUTE_CRON)
    async def execute_cron(trigger: Trigger, payload: Optional[Dict[str, Any]]) -> None:
        await start(trigger)

    @functions.function(EXECUTE_MESSAGE)
    async def execute_message(trigger: Trigger, event: Optional[Dict[str, Any]]) -> None:
        event = event or {}
        if event.get("subtype") not in ALLOWED_MESSAGE_SUBTYPES:
            return
        user = event.get("user", "")
        await start(
            trigger,
            {
                "message": json.dumps({"channel": event.get("channel"), "ts": event.get("ts")}),
                "message.user": user,
                "message.user_ping": user_ping(user),
            },
        )

    @functions.function(EXECUTE_REACTION)
    async def execute_reaction(trigger: Trigger, event: Optional[Dict[str, Any]]) -> None:
        event = event or {}
        item = event.get("item", {})
        user = event.get("user", "")
        await start(
            trigger,
            {
                "message": json.dumps({"channel": item.get("channel"), "ts": item.get("ts")}),
                "user": user,
                "user_ping": user_ping(user),
            },
        )

    @functions.function(EXECUTE_MEMBER_JOIN)
    async def execute_member_join(
        trigger: Trigger, event: Optional[Dict[str, Any]]
    ) -> None:
        event = event or {}
        user = event.get("user", "")
        await start(
            trigger,
            {
                "channel": event.get("channel", ""),
                "user": user,
                "user_ping": user_ping(user),
            },
        )


WORKFLOW_TRIGGER_FUNCTIONS = {
    TriggerType.CRON: EXECUTE_CRON,
    TriggerType.MESSAGE: EXECUTE_MESSAGE,
    TriggerType.REACTION: EXECUTE_REACTION,
    TriggerType.MEMBER_JOIN: EXECUTE_MEMBER_JOIN,
}


async def replace_workflow_trigger(
    engine: "ExecutionEngine",
    workflow_id: int,
    trigger_type: Optional[TriggerType],
    schedule: Optional[str] = None,
    channel: Optional[str] = None,
    emoji: Optional[str] = None,
) -> Optional[Trigger]:
    """Swap whatever starts ``workflow_id`` for a single trigger of ``trigger_type``.

    Every existing trigger bound to the workflow is removed first. Passing
    ``None`` as the type leaves the workflow with no trigger at all.

    Raises:
        ValidationError: the workflow does not exist, the type cannot start a
            workflow, or a field the type needs is missing.
    """
    if await engine.repository.get_workflow(workflow_id) is None:
        raise ValidationError(f"Workflow {workflow_id} not found")
    if trigger_type is not None and trigger_type not in WORKFLOW_TRIGGER_FUNCTIONS:
        raise ValidationError(f"{trigger_type.value} triggers cannot start a workflow")
    if trigger_type is TriggerType.CRON and not (schedule and croniter.is_valid(schedule)):
        raise ValidationError(f"Cron trigger requires a valid schedule, got {schedule!r}")
    if trigger_type in (TriggerType.MESSAGE, TriggerType.MEMBER_JOIN) and not channel:
        raise ValidationError(f"{trigger_type.value} trigger requires a channel")
    if trigger_type is TriggerType.REACTION:
        if not (channel and emoji):
            raise ValidationError("Reaction trigger requires a channel and an emoji")
        reaction_key(channel, emoji)

    removed = await engine.repository.delete_triggers_for_workflow(workflow_id)
    logger.info(f"Removed {removed} trigger(s) from workflow {workflow_id}")
    if trigger_type is None:
        return None

    target = TriggerTarget(
        workflow_id=workflow_id, func=WORKFLOW_TRIGGER_FUNCTIONS[trigger_type]
    )
    factory = engine.triggers
    if trigger_type is TriggerType.CRON:
        return await factory.create_cron_trigger(schedule, target)
    if trigger_type is TriggerType.MESSAGE:
        return await factory.create_message_trigger(channel, target)
    if trigger_type is TriggerType.REACTION:
        return await factory.create_reaction_trigger(channel, emoji, target)
    return await factory.create_member_join_trigger(channel, target)
