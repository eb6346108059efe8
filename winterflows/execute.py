"""Resumable step execution engine for winterflows workflows."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Dict, Mapping, Optional

from .clients.slack import SlackClient
from .constants import TRIGGER_OUTPUT_NAMESPACE
from .contracts import (
    Completed,
    ExecutionState,
    Suspended,
    Workflow,
    WorkflowExecution,
)
from .errors import DuplicateResumptionError, MissingDependencyError, ValidationError
from .persistence import WorkflowRepository
from .steps import ExecutionContext, StepRegistry
from .templating import build_replacements, substitute_inputs
from .triggers.create import TriggerFactory
from .triggers.functions import TriggerFunctionRegistry

logger = logging.getLogger(__name__)

ViewRefresher = Callable[[int, str], Awaitable[None]]


async def log_view_refresh(workflow_id: int, user_id: str) -> None:
    """Default refresher: record the request for the UI layer to pick up."""
    logger.debug(f"View refresh requested workflow_id={workflow_id} user={user_id}")


class ExecutionEngine:
    """Drives executions one step at a time.

    A run is advanced by :meth:`proceed` until a handler suspends or the
    last step completes. Suspended runs hold nothing in memory: the handler
    has created a trigger row and a later :meth:`advance` picks up from
    there. :meth:`advance` only applies when the resumed step is still the
    current one, so duplicate deliveries are harmless.
    """

    def __init__(
        self,
        repository: WorkflowRepository,
        steps: StepRegistry,
        functions: TriggerFunctionRegistry,
        client: SlackClient,
        refresh_view: ViewRefresher = log_view_refresh,
    ) -> None:
        self._repository = repository
        self._steps = steps
        self._client = client
        self._refresh_view = refresh_view
        self.triggers = TriggerFactory(repository, functions)

    @property
    def repository(self) -> WorkflowRepository:
        return self._repository

    async def start_execution(
        self,
        workflow: Workflow,
        trigger_user_id: str,
        initial_outputs: Optional[Mapping[str, str]] = None,
        context: Optional[Mapping[str, str]] = None,
        interaction_id: Optional[str] = None,
    ) -> WorkflowExecution | None:
        """Snapshot ``workflow`` into a new execution and run it.

        ``initial_outputs`` are stored under the ``trigger.`` namespace so
        steps can reference them as ``$!{outputs.trigger.<key>}``.
        """
        if not workflow.access_token:
            logger.info(f"Workflow {workflow.id} is not installed, not starting")
            return None

        outputs = {
            f"{TRIGGER_OUTPUT_NAMESPACE}.{key}": value
            for key, value in (initial_outputs or {}).items()
        }
        state = ExecutionState(
            trigger_user_id=trigger_user_id, outputs=outputs, context=dict(context or {})
        )
        execution = await self._repository.create_execution(
            workflow.id, list(workflow.steps), state
        )
        logger.info(
            f"Workflow {workflow.id} started by {trigger_user_id} "
            f"execution_id={execution.id}"
        )
        await self._refresh_view(workflow.id, trigger_user_id)
        await self.proceed(execution, interaction_id=interaction_id)
        return execution

    async def proceed(
        self, execution: WorkflowExecution, interaction_id: Optional[str] = None
    ) -> None:
        """Run steps from the execution's cursor until it suspends or ends.

        Raises:
            ValidationError: the current step cannot be resolved or its
                inputs are malformed. The execution stays where it is.
        """
        while True:
            workflow = await self._repository.get_workflow(execution.workflow_id)
            if workflow is None:
                logger.info(
                    f"Workflow {execution.workflow_id} is gone, "
                    f"dropping execution_id={execution.id}"
                )
                await self._repository.delete_execution(execution.id)
                await self._refresh_view(
                    execution.workflow_id, execution.state.trigger_user_id
                )
                return

            step = execution.current_step()
            if step is None:
                await self._repository.delete_execution(execution.id)
                logger.info(
                    f"Workflow {workflow.id} completed execution_id={execution.id}"
                )
                await self._refresh_view(workflow.id, execution.state.trigger_user_id)
                return

            spec = self._steps.get(step.type_id)
            replacements = build_replacements(execution.state)
            inputs = substitute_inputs(spec, step.inputs, replacements)
            ctx = ExecutionContext(
                execution=execution,
                step_id=step.id,
                trigger_user_id=execution.state.trigger_user_id,
                token=workflow.access_token or "",
                workflow=workflow,
                client=self._client,
                triggers=self.triggers,
                interaction_id=interaction_id,
            )

            logger.debug(
                f"Running step {step.id} ({step.type_id}) execution_id={execution.id}"
            )
            result = await spec.func(ctx, inputs)

            if isinstance(result, Suspended):
                logger.info(
                    f"Step {step.id} suspended execution_id={execution.id}"
                )
                await self._refresh_view(workflow.id, execution.state.trigger_user_id)
                return
            if not isinstance(result, Completed):
                raise ValidationError(
                    f"Step `{step.type_id}` returned {type(result).__name__}, "
                    "expected Completed or Suspended"
                )

            try:
                execution = await self._commit(execution.id, step.id, result.outputs)
            except (MissingDependencyError, DuplicateResumptionError) as exc:
                logger.warning(str(exc))
                return
            interaction_id = ctx.interaction_id

    async def advance(
        self,
        execution_id: int,
        step_id: str,
        outputs: Mapping[str, str],
        interaction_id: Optional[str] = None,
    ) -> bool:
        """Record ``outputs`` for ``step_id`` and continue the run.

        Returns ``False`` without side effects when the execution no longer
        exists or ``step_id`` is not its current step.
        """
        try:
            execution = await self._commit(execution_id, step_id, outputs)
        except MissingDependencyError as exc:
            logger.info(str(exc))
            return False
        except DuplicateResumptionError as exc:
            logger.warning(str(exc))
            return False
        await self.proceed(execution, interaction_id=interaction_id)
        return True

    async def _commit(
        self, execution_id: int, step_id: str, outputs: Mapping[str, str]
    ) -> WorkflowExecution:
        execution = await self._repository.get_execution(execution_id)
        if execution is None:
            raise MissingDependencyError(f"Execution {execution_id} no longer exists")

        index = execution.index_of(step_id)
        if index != execution.step_index:
            raise DuplicateResumptionError(execution_id, step_id, execution.step_index)

        merged: Dict[str, str] = dict(execution.state.outputs)
        for key, value in outputs.items():
            merged[f"{step_id}.{key}"] = value
        state = execution.state.model_copy(update={"outputs": merged})

        updated = await self._repository.advance_execution(
            execution_id, execution.step_index, state
        )
        if updated is None:
            raise DuplicateResumptionError(execution_id, step_id, execution.step_index)
        logger.info(
            f"Step {step_id} completed execution_id={execution_id} "
            f"step_index={updated.step_index}"
        )
        await self._refresh_view(updated.workflow_id, state.trigger_user_id)
        return updated

    async def cancel_execution(self, execution_id: int) -> bool:
        """Delete an execution and the triggers waiting on it."""
        execution = await self._repository.get_execution(execution_id)
        if execution is None:
            return False
        deleted = await self._repository.delete_execution(execution_id)
        if deleted:
            logger.info(f"Cancelled execution_id={execution_id}")
            await self._refresh_view(
                execution.workflow_id, execution.state.trigger_user_id
            )
        return deleted

    async def delete_workflow(self, workflow_id: int) -> bool:
        """Delete a workflow, cancelling its executions and triggers."""
        executions = await self._repository.list_executions(workflow_id)
        deleted = await self._repository.delete_workflow(workflow_id)
        if deleted:
            logger.info(
                f"Deleted workflow {workflow_id} with {len(executions)} execution(s)"
            )
        for user_id in dict.fromkeys(e.state.trigger_user_id for e in executions):
            await self._refresh_view(workflow_id, user_id)
        return deleted
