"""Exception taxonomy for the workflow engine."""

from __future__ import annotations


class WinterflowsError(Exception):
    """Base class for all engine errors."""


class ValidationError(WinterflowsError):
    """A definition or persisted state is malformed.

    Raised for unknown step types, unparsable inputs, bad trigger
    definitions and dangling trigger function names. Fatal only to the call
    that raised it; executions are left where they are.
    """


class ExternalServiceError(WinterflowsError):
    """A downstream service call made by a step handler failed."""


class MissingDependencyError(WinterflowsError):
    """A workflow or execution disappeared while being processed."""


class DuplicateResumptionError(WinterflowsError):
    """A resumption targeted a step that is no longer current."""

    def __init__(self, execution_id: int, step_id: str, current_index: int) -> None:
        super().__init__(
            f"Execution {execution_id} is at step #{current_index}, "
            f"ignoring resumption of step {step_id!r}"
        )
        self.execution_id = execution_id
        self.step_id = step_id
        self.current_index = current_index


__all__ = [
    "WinterflowsError",
    "ValidationError",
    "ExternalServiceError",
    "MissingDependencyError",
    "DuplicateResumptionError",
]
