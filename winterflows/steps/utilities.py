"""Utility steps: pausing an execution until a later time."""

from __future__ import annotations

import logging
import math
import time
from typing import TYPE_CHECKING, Dict

from ..contracts import Suspended, TriggerTarget
from ..errors import ValidationError
from ..triggers.functions import TriggerFunctionRegistry
from .base import ExecutionContext, define_step

if TYPE_CHECKING:
    from ..execute import ExecutionEngine

logger = logging.getLogger(__name__)

DELAY_RESTART = "steps.delay.restart"


async def delay_workflow(ctx: ExecutionContext, inputs: Dict[str, str]) -> Suspended:
    """Park the execution until a time trigger ``ms`` milliseconds from now."""
    raw = inputs["ms"]
    try:
        duration = float(raw)
    except ValueError:
        raise ValidationError(f"Failed to parse sleep duration `{raw}`") from None
    if not math.isfinite(duration):
        raise ValidationError(f"Failed to parse sleep duration `{raw}`")

    fire_at = int(time.time() * 1000 + duration)
    await ctx.triggers.create_time_trigger(
        fire_at,
        TriggerTarget(execution_id=ctx.execution.id, func=DELAY_RESTART, details=ctx.step_id),
    )
    logger.debug(f"Execution {ctx.execution.id} sleeping until {fire_at}")
    return Suspended()


def register_trigger_functions(
    functions: TriggerFunctionRegistry, engine: "ExecutionEngine"
) -> None:
    @functions.function(DELAY_RESTART)
    async def restart(trigger, payload) -> None:
        await engine.advance(trigger.execution_id, trigger.details, {})


STEPS = {
    "delay": define_step(
        delay_workflow,
        name="Delay execution",
        category="Utilities",
        inputs={"ms": {"name": "Time (in ms)", "type": "text", "required": True}},
    ),
}
