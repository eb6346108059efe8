"""In-memory implementation of the workflow repository."""

from __future__ import annotations

import asyncio
import itertools
from typing import Dict, Optional

from ..contracts import ExecutionState, Step, Trigger, TriggerType, Workflow, WorkflowExecution
from .repository import WorkflowRepository


class InMemoryWorkflowRepository(WorkflowRepository):
    """Store workflow state in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts. Records are copied on the way in and
    out so callers never share mutable state with the store.
    """

    def __init__(self) -> None:
        self._workflows: Dict[int, Workflow] = {}
        self._executions: Dict[int, WorkflowExecution] = {}
        self._triggers: Dict[int, Trigger] = {}
        self._execution_ids = itertools.count(1)
        self._trigger_ids = itertools.count(1)
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    async def save_workflow(self, workflow: Workflow) -> None:
        self._workflows[workflow.id] = workflow.model_copy(deep=True)

    async def get_workflow(self, workflow_id: int) -> Workflow | None:
        wf = self._workflows.get(workflow_id)
        return wf.model_copy(deep=True) if wf else None

    async def delete_workflow(self, workflow_id: int) -> bool:
        async with self._lock:
            removed = self._workflows.pop(workflow_id, None) is not None
            for execution_id in [
                e.id for e in self._executions.values() if e.workflow_id == workflow_id
            ]:
                self._drop_execution(execution_id)
            self._drop_triggers(lambda t: t.workflow_id == workflow_id)
        return removed

    # ------------------------------------------------------------------
    async def create_execution(
        self, workflow_id: int, steps: list[Step], state: ExecutionState
    ) -> WorkflowExecution:
        execution = WorkflowExecution(
            id=next(self._execution_ids),
            workflow_id=workflow_id,
            steps=[s.model_copy(deep=True) for s in steps],
            step_index=0,
            state=state.model_copy(deep=True),
        )
        self._executions[execution.id] = execution
        return execution.model_copy(deep=True)

    async def get_execution(self, execution_id: int) -> WorkflowExecution | None:
        execution = self._executions.get(execution_id)
        return execution.model_copy(deep=True) if execution else None

    async def list_executions(
        self, workflow_id: Optional[int] = None
    ) -> list[WorkflowExecution]:
        return [
            e.model_copy(deep=True)
            for e in self._executions.values()
            if workflow_id is None or e.workflow_id == workflow_id
        ]

    async def advance_execution(
        self, execution_id: int, expected_index: int, state: ExecutionState
    ) -> WorkflowExecution | None:
        async with self._lock:
            execution = self._executions.get(execution_id)
            if execution is None or execution.step_index != expected_index:
                return None
            updated = execution.model_copy(
                update={
                    "step_index": expected_index + 1,
                    "state": state.model_copy(deep=True),
                }
            )
            self._executions[execution_id] = updated
            return updated.model_copy(deep=True)

    async def delete_execution(self, execution_id: int) -> bool:
        async with self._lock:
            return self._drop_execution(execution_id)

    # ------------------------------------------------------------------
    async def create_trigger(self, trigger: Trigger) -> Trigger:
        stored = trigger.model_copy(update={"id": next(self._trigger_ids)}, deep=True)
        self._triggers[stored.id] = stored
        return stored.model_copy(deep=True)

    async def get_trigger(self, trigger_id: int) -> Trigger | None:
        trigger = self._triggers.get(trigger_id)
        return trigger.model_copy(deep=True) if trigger else None

    async def find_triggers(
        self, trigger_type: TriggerType, correlation: str
    ) -> list[Trigger]:
        return [
            t.model_copy(deep=True)
            for t in self._triggers.values()
            if t.type == trigger_type and t.correlation == correlation
        ]

    async def list_triggers(
        self, trigger_type: Optional[TriggerType] = None
    ) -> list[Trigger]:
        return [
            t.model_copy(deep=True)
            for t in self._triggers.values()
            if trigger_type is None or t.type == trigger_type
        ]

    async def list_due_time_triggers(self, now_ms: int) -> list[Trigger]:
        return [
            t.model_copy(deep=True)
            for t in self._triggers.values()
            if t.type == TriggerType.TIME and t.fire_at is not None and t.fire_at <= now_ms
        ]

    async def delete_trigger(self, trigger_id: int) -> bool:
        return self._triggers.pop(trigger_id, None) is not None

    async def delete_triggers_for_workflow(self, workflow_id: int) -> int:
        return self._drop_triggers(lambda t: t.workflow_id == workflow_id)

    # ------------------------------------------------------------------
    def _drop_execution(self, execution_id: int) -> bool:
        removed = self._executions.pop(execution_id, None) is not None
        self._drop_triggers(lambda t: t.execution_id == execution_id)
        return removed

    def _drop_triggers(self, predicate) -> int:
        doomed = [tid for tid, t in self._triggers.items() if predicate(t)]
        for tid in doomed:
            del self._triggers[tid]
        return len(doomed)
