"""Core data contracts for the winterflows engine."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, model_validator


class Step(BaseModel):
    """One configured step of a workflow."""

    id: str
    type_id: str
    inputs: Dict[str, str] = Field(default_factory=dict)


class Workflow(BaseModel):
    """Workflow definition as owned by the editing layer."""

    id: int
    name: str = ""
    creator_user_id: str = ""
    access_token: Optional[str] = None
    steps: List[Step] = Field(default_factory=list)


class ExecutionState(BaseModel):
    """Accumulated state of a running execution."""

    trigger_user_id: str
    outputs: Dict[str, str] = Field(default_factory=dict)
    context: Dict[str, str] = Field(default_factory=dict)


class WorkflowExecution(BaseModel):
    """A single run of a workflow with its own progress cursor."""

    id: int
    workflow_id: int
    steps: List[Step] = Field(default_factory=list)
    step_index: int = 0
    state: ExecutionState

    @model_validator(mode="after")
    def _check_cursor(self) -> "WorkflowExecution":
        if not 0 <= self.step_index <= len(self.steps):
            raise ValueError(
                f"step_index {self.step_index} outside [0, {len(self.steps)}]"
            )
        return self

    def is_finished(self) -> bool:
        """Return ``True`` once every step has been executed."""
        return self.step_index >= len(self.steps)

    def current_step(self) -> Optional[Step]:
        return None if self.is_finished() else self.steps[self.step_index]

    def index_of(self, step_id: str) -> int:
        """Position of ``step_id`` in the snapshot, ``-1`` if absent."""
        for index, step in enumerate(self.steps):
            if step.id == step_id:
                return index
        return -1

    def step_statuses(self) -> List[tuple[Step, str]]:
        """Pair each step with ``completed``, ``running`` or ``pending``."""
        statuses = []
        for index, step in enumerate(self.steps):
            if index < self.step_index:
                status = "completed"
            elif index == self.step_index:
                status = "running"
            else:
                status = "pending"
            statuses.append((step, status))
        return statuses


class TriggerType(str, Enum):
    CRON = "cron"
    MESSAGE = "message"
    REACTION = "reaction"
    MEMBER_JOIN = "member_join"
    TIME = "time"
    MODAL = "modal"

    @property
    def recurring(self) -> bool:
        """Recurring triggers start workflows and live until deleted."""
        return self in RECURRING_TRIGGER_TYPES


RECURRING_TRIGGER_TYPES = frozenset(
    {
        TriggerType.CRON,
        TriggerType.MESSAGE,
        TriggerType.REACTION,
        TriggerType.MEMBER_JOIN,
    }
)


class TriggerTarget(BaseModel):
    """What a trigger points at and which function it invokes."""

    workflow_id: Optional[int] = None
    execution_id: Optional[int] = None
    func: str
    details: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one_target(self) -> "TriggerTarget":
        if (self.workflow_id is None) == (self.execution_id is None):
            raise ValueError("exactly one of workflow_id or execution_id must be set")
        return self


class Trigger(TriggerTarget):
    """Persisted binding from a correlation key to a trigger function."""

    id: Optional[int] = None
    type: TriggerType
    correlation: str = ""
    fire_at: Optional[int] = Field(
        default=None, description="Epoch milliseconds, time triggers only"
    )
    recurring: bool = False


class InboundEvent(BaseModel):
    """Verified event envelope handed over by the webhook layer."""

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str) -> "InboundEvent":
        return cls.model_validate_json(data)


@dataclass(frozen=True)
class Completed:
    """Handler finished; ``outputs`` are recorded and the run moves on."""

    outputs: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Suspended:
    """Handler registered a trigger that will resume this step later."""


StepResult = Union[Completed, Suspended]
