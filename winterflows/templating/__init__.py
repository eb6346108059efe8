"""Template substitution for step inputs."""

from __future__ import annotations

from .rich_text import mention_element, replace_rich_text
from .text import (
    build_replacements,
    replace_text,
    substitute_inputs,
    token,
    user_ping,
)

__all__ = [
    "build_replacements",
    "mention_element",
    "replace_rich_text",
    "replace_text",
    "substitute_inputs",
    "token",
    "user_ping",
]
