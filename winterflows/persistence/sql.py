"""SQL implementation of the workflow repository.

Backed by SQLModel tables on an async SQLAlchemy engine, so the same code
serves ``sqlite+aiosqlite`` and ``postgresql+asyncpg`` URLs.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import pydantic
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlmodel import SQLModel

from ..contracts import ExecutionState, Step, Trigger, TriggerType, Workflow, WorkflowExecution
from ..errors import ValidationError
from .repository import WorkflowRepository
from .tables import ExecutionRow, TriggerRow, WorkflowRow


class SQLWorkflowRepository(WorkflowRepository):
    """Persist workflows, executions and triggers in a SQL database."""

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url
        connect_args = (
            {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        )
        self.engine = create_async_engine(
            database_url, echo=False, connect_args=connect_args
        )
        self._initialized = False

    async def init_db(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        self._initialized = True

    async def close(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        if not self._initialized:
            await self.init_db()
        async with AsyncSession(self.engine, expire_on_commit=False) as session:
            yield session

    # ------------------------------------------------------------------
    # Row conversion
    @staticmethod
    def _to_workflow(row: WorkflowRow) -> Workflow:
        return Workflow(
            id=row.id,
            name=row.name,
            creator_user_id=row.creator_user_id,
            access_token=row.access_token,
            steps=[Step.model_validate(s) for s in row.steps or []],
        )

    @staticmethod
    def _to_execution(row: ExecutionRow) -> WorkflowExecution:
        try:
            return WorkflowExecution(
                id=row.id,
                workflow_id=row.workflow_id,
                steps=[Step.model_validate(s) for s in row.steps or []],
                step_index=row.step_index,
                state=ExecutionState.model_validate(row.state or {}),
            )
        except pydantic.ValidationError as exc:
            raise ValidationError(
                f"Execution {row.id} has malformed persisted state: {exc}"
            ) from exc

    @staticmethod
    def _to_trigger(row: TriggerRow) -> Trigger:
        return Trigger(
            id=row.id,
            type=TriggerType(row.type),
            correlation=row.correlation,
            fire_at=row.fire_at,
            recurring=row.recurring,
            workflow_id=row.workflow_id,
            execution_id=row.execution_id,
            func=row.func,
            details=row.details,
        )

    # ------------------------------------------------------------------
    # Workflows
    async def save_workflow(self, workflow: Workflow) -> None:
        row = WorkflowRow(
            id=workflow.id,
            name=workflow.name,
            creator_user_id=workflow.creator_user_id,
            access_token=workflow.access_token,
            steps=[s.model_dump() for s in workflow.steps],
        )
        async with self.session() as session:
            await session.merge(row)
            await session.commit()

    async def get_workflow(self, workflow_id: int) -> Workflow | None:
        async with self.session() as session:
            row = await session.get(WorkflowRow, workflow_id)
        return self._to_workflow(row) if row else None

    async def delete_workflow(self, workflow_id: int) -> bool:
        async with self.session() as session:
            execution_ids = select(ExecutionRow.id).where(
                ExecutionRow.workflow_id == workflow_id
            )
            await session.execute(
                delete(TriggerRow).where(
                    (TriggerRow.workflow_id == workflow_id)
                    | TriggerRow.execution_id.in_(execution_ids)
                )
            )
            await session.execute(
                delete(ExecutionRow).where(ExecutionRow.workflow_id == workflow_id)
            )
            result = await session.execute(
                delete(WorkflowRow).where(WorkflowRow.id == workflow_id)
            )
            await session.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Executions
    async def create_execution(
        self, workflow_id: int, steps: list[Step], state: ExecutionState
    ) -> WorkflowExecution:
        row = ExecutionRow(
            workflow_id=workflow_id,
            steps=[s.model_dump() for s in steps],
            step_index=0,
            state=state.model_dump(),
        )
        async with self.session() as session:
            session.add(row)
            await session.commit()
            await session.refresh(row)
        return self._to_execution(row)

    async def get_execution(self, execution_id: int) -> WorkflowExecution | None:
        async with self.session() as session:
            row = await session.get(ExecutionRow, execution_id)
        return self._to_execution(row) if row else None

    async def list_executions(
        self, workflow_id: Optional[int] = None
    ) -> list[WorkflowExecution]:
        query = select(ExecutionRow).order_by(ExecutionRow.id)
        if workflow_id is not None:
            query = query.where(ExecutionRow.workflow_id == workflow_id)
        async with self.session() as session:
            rows = (await session.execute(query)).scalars().all()
        return [self._to_execution(r) for r in rows]

    async def advance_execution(
        self, execution_id: int, expected_index: int, state: ExecutionState
    ) -> WorkflowExecution | None:
        async with self.session() as session:
            result = await session.execute(
                update(ExecutionRow)
                .where(
                    ExecutionRow.id == execution_id,
                    ExecutionRow.step_index == expected_index,
                )
                .values(step_index=expected_index + 1, state=state.model_dump())
            )
            await session.commit()
            if result.rowcount != 1:
                return None
            row = await session.get(ExecutionRow, execution_id, populate_existing=True)
        return self._to_execution(row) if row else None

    async def delete_execution(self, execution_id: int) -> bool:
        async with self.session() as session:
            await session.execute(
                delete(TriggerRow).where(TriggerRow.execution_id == execution_id)
            )
            result = await session.execute(
                delete(ExecutionRow).where(ExecutionRow.id == execution_id)
            )
            await session.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Triggers
    async def create_trigger(self, trigger: Trigger) -> Trigger:
        row = TriggerRow(
            type=trigger.type.value,
            correlation=trigger.correlation,
            fire_at=trigger.fire_at,
            recurring=trigger.recurring,
            workflow_id=trigger.workflow_id,
            execution_id=trigger.execution_id,
            func=trigger.func,
            details=trigger.details,
        )
        async with self.session() as session:
            session.add(row)
            await session.commit()
            await session.refresh(row)
        return self._to_trigger(row)

    async def get_trigger(self, trigger_id: int) -> Trigger | None:
        async with self.session() as session:
            row = await session.get(TriggerRow, trigger_id)
        return self._to_trigger(row) if row else None

    async def find_triggers(
        self, trigger_type: TriggerType, correlation: str
    ) -> list[Trigger]:
        query = (
            select(TriggerRow)
            .where(
                TriggerRow.type == trigger_type.value,
                TriggerRow.correlation == correlation,
            )
            .order_by(TriggerRow.id)
        )
        async with self.session() as session:
            rows = (await session.execute(query)).scalars().all()
        return [self._to_trigger(r) for r in rows]

    async def list_triggers(
        self, trigger_type: Optional[TriggerType] = None
    ) -> list[Trigger]:
        query = select(TriggerRow).order_by(TriggerRow.id)
        if trigger_type is not None:
            query = query.where(TriggerRow.type == trigger_type.value)
        async with self.session() as session:
            rows = (await session.execute(query)).scalars().all()
        return [self._to_trigger(r) for r in rows]

    async def list_due_time_triggers(self, now_ms: int) -> list[Trigger]:
        query = (
            select(TriggerRow)
            .where(
                TriggerRow.type == TriggerType.TIME.value,
                TriggerRow.fire_at <= now_ms,
            )
            .order_by(TriggerRow.fire_at)
        )
        async with self.session() as session:
            rows = (await session.execute(query)).scalars().all()
        return [self._to_trigger(r) for r in rows]

    async def delete_trigger(self, trigger_id: int) -> bool:
        async with self.session() as session:
            result = await session.execute(
                delete(TriggerRow).where(TriggerRow.id == trigger_id)
            )
            await session.commit()
        return result.rowcount > 0

    async def delete_triggers_for_workflow(self, workflow_id: int) -> int:
        async with self.session() as session:
            result = await session.execute(
                delete(TriggerRow).where(TriggerRow.workflow_id == workflow_id)
            )
            await session.commit()
        return result.rowcount
