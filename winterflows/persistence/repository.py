"""Repository abstraction for workflow, execution and trigger persistence."""

from __future__ import annotations

from typing import Optional, Protocol

from ..contracts import ExecutionState, Step, Trigger, TriggerType, Workflow, WorkflowExecution


class WorkflowRepository(Protocol):
    """Protocol for persistence backends."""

    # Workflows are owned by the editing layer; the engine only reads them.
    async def save_workflow(self, workflow: Workflow) -> None:
        """Insert or replace a workflow definition."""

    async def get_workflow(self, workflow_id: int) -> Workflow | None:
        """Retrieve a workflow by id."""

    async def delete_workflow(self, workflow_id: int) -> bool:
        """Delete a workflow with its executions and all their triggers."""

    async def create_execution(
        self, workflow_id: int, steps: list[Step], state: ExecutionState
    ) -> WorkflowExecution:
        """Persist a new execution positioned at its first step."""

    async def get_execution(self, execution_id: int) -> WorkflowExecution | None:
        """Retrieve an execution by id."""

    async def list_executions(
        self, workflow_id: Optional[int] = None
    ) -> list[WorkflowExecution]:
        """Return executions, optionally restricted to one workflow."""

    async def advance_execution(
        self, execution_id: int, expected_index: int, state: ExecutionState
    ) -> WorkflowExecution | None:
        """Move the cursor from ``expected_index`` to the next step.

        The update only applies when the stored cursor still equals
        ``expected_index``. Returns the updated execution, or ``None`` when
        another delivery got there first or the execution is gone.
        """

    async def delete_execution(self, execution_id: int) -> bool:
        """Delete an execution and the triggers waiting on it."""

    async def create_trigger(self, trigger: Trigger) -> Trigger:
        """Persist a trigger and return it with its id."""

    async def get_trigger(self, trigger_id: int) -> Trigger | None:
        """Retrieve a trigger by id."""

    async def find_triggers(
        self, trigger_type: TriggerType, correlation: str
    ) -> list[Trigger]:
        """Return every trigger of ``trigger_type`` with this correlation key."""

    async def list_triggers(
        self, trigger_type: Optional[TriggerType] = None
    ) -> list[Trigger]:
        """Return all triggers, optionally of a single type."""

    async def list_due_time_triggers(self, now_ms: int) -> list[Trigger]:
        """Return time triggers whose fire time is at or before ``now_ms``."""

    async def delete_trigger(self, trigger_id: int) -> bool:
        """Delete a trigger; ``False`` when it was already gone."""

    async def delete_triggers_for_workflow(self, workflow_id: int) -> int:
        """Delete every trigger bound to a workflow; returns how many went."""
