"""Trigger creation and the trigger function registry."""

from __future__ import annotations

from .create import TriggerFactory, reaction_key, split_reaction_key
from .functions import TriggerFunction, TriggerFunctionRegistry

__all__ = [
    "TriggerFactory",
    "TriggerFunction",
    "TriggerFunctionRegistry",
    "reaction_key",
    "split_reaction_key",
]
