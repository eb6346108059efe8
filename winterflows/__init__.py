"""Winterflows: resumable chat workflows driven by platform events."""

from .contracts import (
    Completed,
    ExecutionState,
    InboundEvent,
    Step,
    Suspended,
    Trigger,
    TriggerType,
    Workflow,
    WorkflowExecution,
)
from .dispatch import TriggerDispatcher
from .execute import ExecutionEngine
from .persistence import get_repository
from .runtime import Runtime, build_runtime
from .transports import get_transport

__version__ = "0.1.0"
__all__ = [
    "Completed",
    "ExecutionEngine",
    "ExecutionState",
    "InboundEvent",
    "Runtime",
    "Step",
    "Suspended",
    "Trigger",
    "TriggerDispatcher",
    "TriggerType",
    "Workflow",
    "WorkflowExecution",
    "build_runtime",
    "get_repository",
    "get_transport",
]
