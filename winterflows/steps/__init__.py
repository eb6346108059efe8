"""Step registry and the built-in step catalog."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterator, List, Mapping, Optional, Tuple

from ..contracts import Workflow
from ..errors import ValidationError
from ..triggers.functions import TriggerFunctionRegistry
from . import channels, forms, messages, utilities
from .base import DataType, ExecutionContext, IOField, StepFunction, StepSpec, define_step

if TYPE_CHECKING:
    from ..execute import ExecutionEngine


class StepRegistry:
    """Static catalog of step type id to :class:`StepSpec`."""

    def __init__(self, specs: Optional[Mapping[str, StepSpec]] = None) -> None:
        self._specs: Dict[str, StepSpec] = {}
        for type_id, spec in (specs or {}).items():
            self.register(type_id, spec)

    def register(self, type_id: str, spec: StepSpec) -> None:
        if type_id in self._specs:
            raise ValueError(f"Step type {type_id!r} is already registered")
        self._specs[type_id] = spec

    def get(self, type_id: str) -> StepSpec:
        try:
            return self._specs[type_id]
        except KeyError:
            raise ValidationError(f"Step `{type_id}` not found") from None

    def catalog(self) -> Iterator[Tuple[str, StepSpec]]:
        """Yield ``(type_id, spec)`` ordered by category then name."""
        yield from sorted(
            self._specs.items(), key=lambda item: (item[1].category, item[1].name)
        )

    def __contains__(self, type_id: object) -> bool:
        return type_id in self._specs

    def validate_workflow(self, workflow: Workflow) -> None:
        """Check a workflow definition before it is saved.

        Raises:
            ValidationError: listing every problem found.
        """
        problems: List[str] = []
        seen = set()
        for step in workflow.steps:
            if step.id in seen:
                problems.append(f"duplicate step id {step.id!r}")
            seen.add(step.id)
            spec = self._specs.get(step.type_id)
            if spec is None:
                problems.append(f"step {step.id!r} has unknown type {step.type_id!r}")
                continue
            for key, field in spec.inputs.items():
                if field.required and not step.inputs.get(key):
                    problems.append(f"step {step.id!r} is missing input {key!r}")
        if problems:
            raise ValidationError(
                f"Workflow {workflow.id} is invalid: " + "; ".join(problems)
            )


BUILTIN_MODULES = (utilities, messages, channels, forms)


def build_step_registry() -> StepRegistry:
    """Registry holding every built-in step."""
    registry = StepRegistry()
    for module in BUILTIN_MODULES:
        for type_id, spec in module.STEPS.items():
            registry.register(type_id, spec)
    return registry


def register_trigger_functions(
    functions: TriggerFunctionRegistry, engine: "ExecutionEngine"
) -> None:
    """Register the continuation functions of every suspending step."""
    for module in BUILTIN_MODULES:
        register = getattr(module, "register_trigger_functions", None)
        if register is not None:
            register(functions, engine)


__all__ = [
    "DataType",
    "ExecutionContext",
    "IOField",
    "StepFunction",
    "StepRegistry",
    "StepSpec",
    "build_step_registry",
    "define_step",
    "register_trigger_functions",
]
