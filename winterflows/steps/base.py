"""Step definition primitives shared by every built-in step module."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, Literal, Mapping, Optional

from pydantic import BaseModel

from ..contracts import StepResult, Workflow, WorkflowExecution

if TYPE_CHECKING:
    from ..clients.slack import SlackClient
    from ..triggers.create import TriggerFactory

DataType = Literal["user", "channel", "text", "rich_text", "message"]


class IOField(BaseModel):
    """Schema entry for one step input or output."""

    name: str
    type: DataType
    required: bool = True
    description: Optional[str] = None


@dataclass
class ExecutionContext:
    """Everything a handler may use while running one step."""

    execution: WorkflowExecution
    step_id: str
    trigger_user_id: str
    token: str
    workflow: Workflow
    client: "SlackClient"
    triggers: "TriggerFactory"
    interaction_id: Optional[str] = None


StepFunction = Callable[[ExecutionContext, Dict[str, str]], Awaitable[StepResult]]


@dataclass(frozen=True)
class StepSpec:
    """Registry entry: display metadata, IO schema and the handler."""

    name: str
    category: str
    func: StepFunction
    inputs: Mapping[str, IOField] = field(default_factory=dict)
    outputs: Mapping[str, IOField] = field(default_factory=dict)


def define_step(
    func: StepFunction,
    *,
    name: str,
    category: str,
    inputs: Optional[Mapping[str, dict]] = None,
    outputs: Optional[Mapping[str, dict]] = None,
) -> StepSpec:
    """Build a :class:`StepSpec` from plain schema dictionaries."""
    return StepSpec(
        name=name,
        category=category,
        func=func,
        inputs={k: IOField(**v) for k, v in (inputs or {}).items()},
        outputs={k: IOField(**v) for k, v in (outputs or {}).items()},
    )
