"""Flat token substitution for step inputs."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Dict, Mapping

from ..constants import TOKEN_PREFIX, TOKEN_SUFFIX
from ..contracts import ExecutionState
from ..errors import ValidationError
from .rich_text import replace_rich_text

if TYPE_CHECKING:
    from ..steps.base import StepSpec


def token(path: str) -> str:
    """Return the wire form of a token, e.g. ``$!{outputs.step1.ts}``."""
    return f"{TOKEN_PREFIX}{path}{TOKEN_SUFFIX}"


def user_ping(user_id: str) -> str:
    return f"<@{user_id}>"


def build_replacements(state: ExecutionState) -> Dict[str, str]:
    """Map every token available to an execution onto its value.

    Context tokens come first, then one token per accumulated output in
    insertion order.
    """
    replacements = {
        token("ctx.trigger_user_id"): state.trigger_user_id,
        token("ctx.trigger_user_ping"): user_ping(state.trigger_user_id),
    }
    for key, value in state.context.items():
        replacements.setdefault(token(f"ctx.{key}"), value)
    for key, value in state.outputs.items():
        replacements[token(f"outputs.{key}")] = value
    return replacements


def replace_text(text: str, replacements: Mapping[str, str]) -> str:
    """Replace every occurrence of each token, one token at a time."""
    for key, value in replacements.items():
        text = text.replace(key, value)
    return text


def substitute_inputs(
    spec: "StepSpec", inputs: Mapping[str, str], replacements: Mapping[str, str]
) -> Dict[str, str]:
    """Resolve tokens in every declared input of ``spec``.

    Rich text inputs are JSON encoded blocks and get structural substitution;
    everything else is treated as a plain string.
    """
    resolved: Dict[str, str] = {}
    for key, field in spec.inputs.items():
        value = inputs.get(key, "")
        if field.type == "rich_text":
            if value:
                try:
                    block = json.loads(value)
                except json.JSONDecodeError as exc:
                    raise ValidationError(
                        f"Input {key!r} is not valid rich text: {exc}"
                    ) from exc
                if not isinstance(block, dict):
                    raise ValidationError(
                        f"Input {key!r} is not valid rich text: expected a block object"
                    )
                value = json.dumps(replace_rich_text(block, replacements))
        else:
            value = replace_text(value, replacements)
        resolved[key] = value
    return resolved
