"""Wires repository, registries, engine and dispatcher together."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from .clients.slack import SlackClient
from .config import WinterflowsConfig, load_config
from .dispatch import TriggerDispatcher
from .errors import ValidationError
from .execute import ExecutionEngine, ViewRefresher, log_view_refresh
from .persistence import WorkflowRepository, get_repository
from .scheduler import Scheduler
from .steps import StepRegistry, build_step_registry
from .steps import register_trigger_functions as register_step_functions
from .triggers.functions import TriggerFunctionRegistry
from .triggers.workflow import register_trigger_functions as register_workflow_functions

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    config: WinterflowsConfig
    repository: WorkflowRepository
    client: SlackClient
    steps: StepRegistry
    functions: TriggerFunctionRegistry
    engine: ExecutionEngine
    dispatcher: TriggerDispatcher
    scheduler: Scheduler

    async def verify_triggers(self) -> None:
        """Fail if any persisted trigger names an unregistered function.

        Raises:
            ValidationError: listing the dangling function names.
        """
        triggers = await self.repository.list_triggers()
        dangling = sorted({t.func for t in triggers if t.func not in self.functions})
        if dangling:
            raise ValidationError(
                "Triggers reference unregistered functions: " + ", ".join(dangling)
            )

    async def close(self) -> None:
        await self.client.close()


def build_runtime(
    config: Optional[WinterflowsConfig] = None,
    repository: Optional[WorkflowRepository] = None,
    client: Optional[SlackClient] = None,
    refresh_view: ViewRefresher = log_view_refresh,
) -> Runtime:
    """Assemble a :class:`Runtime` with every built-in step and trigger function."""
    config = config or load_config()
    repository = repository or get_repository(config=config)
    client = client or SlackClient(
        api_url=config.slack.api_url,
        timeout=config.slack.timeout_seconds,
        max_retries=config.slack.max_retries,
    )
    steps = build_step_registry()
    functions = TriggerFunctionRegistry()
    engine = ExecutionEngine(repository, steps, functions, client, refresh_view)
    register_step_functions(functions, engine)
    register_workflow_functions(functions, engine)

    interval = config.scheduler.interval_seconds
    dispatcher = TriggerDispatcher(
        repository, functions, cron_lookback=timedelta(seconds=interval)
    )
    logger.debug(f"Runtime built with {len(functions)} trigger functions")
    return Runtime(
        config=config,
        repository=repository,
        client=client,
        steps=steps,
        functions=functions,
        engine=engine,
        dispatcher=dispatcher,
        scheduler=Scheduler(dispatcher, interval=interval),
    )
