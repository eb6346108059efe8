"""Name to handler table for trigger-backed behaviour."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..contracts import Trigger
from ..errors import ValidationError

logger = logging.getLogger(__name__)

TriggerFunction = Callable[[Trigger, Optional[Dict[str, Any]]], Awaitable[None]]


class TriggerFunctionRegistry:
    """Maps the ``func`` name stored on a trigger row to its handler.

    Built once at startup; every module owning a trigger-backed behaviour
    registers its functions here. Functions that start executions and
    functions that resume them share the table.
    """

    def __init__(self) -> None:
        self._functions: Dict[str, TriggerFunction] = {}

    def register(self, name: str, func: TriggerFunction) -> TriggerFunction:
        if name in self._functions:
            raise ValueError(f"Trigger function {name!r} is already registered")
        self._functions[name] = func
        logger.debug(f"Registered trigger function {name}")
        return func

    def function(self, name: str) -> Callable[[TriggerFunction], TriggerFunction]:
        """Decorator form of :meth:`register`."""

        def decorator(func: TriggerFunction) -> TriggerFunction:
            return self.register(name, func)

        return decorator

    def resolve(self, name: str) -> TriggerFunction:
        try:
            return self._functions[name]
        except KeyError:
            raise ValidationError(f"Trigger function {name!r} is not registered") from None

    def names(self) -> List[str]:
        return sorted(self._functions)

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def __len__(self) -> int:
        return len(self._functions)
