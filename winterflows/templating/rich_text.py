"""Structural token substitution inside rich text blocks.

Rich text arrives as a block tree: list containers (``rich_text``,
``rich_text_list``) hold leaf containers (sections, quotes, preformatted
runs), and leaves hold inline elements. Only ``text`` elements are scanned
for tokens. A token whose value is a user or channel mention is spliced in
as a native mention element so the platform renders it as a reference;
every other value is inserted as literal text with the surrounding style.
"""

from __future__ import annotations

import copy
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..errors import ValidationError

USER_MENTION = re.compile(r"<@([UW][A-Z0-9]+)(?:\|[^>]*)?>")
CHANNEL_MENTION = re.compile(r"<#([CG][A-Z0-9]+)(?:\|[^>]*)?>")

LIST_CONTAINERS = frozenset({"rich_text", "rich_text_list"})
LEAF_CONTAINERS = frozenset(
    {"rich_text_section", "rich_text_quote", "rich_text_preformatted"}
)
STYLE_FLAGS = ("bold", "italic", "strike", "underline", "code")

Element = Dict[str, Any]


def replace_rich_text(block: Element, replacements: Mapping[str, str]) -> Element:
    """Return a substituted copy of ``block``; the input is left untouched.

    Unresolved tokens stay verbatim. Adjacent text runs sharing a style are
    merged afterwards, so an empty ``replacements`` map only normalizes.
    """
    return _replace_node(block, replacements)


def mention_element(value: str) -> Optional[Element]:
    """Build a native mention element if ``value`` is a mention, else ``None``."""
    match = USER_MENTION.fullmatch(value)
    if match:
        return {"type": "user", "user_id": match.group(1)}
    match = CHANNEL_MENTION.fullmatch(value)
    if match:
        return {"type": "channel", "channel_id": match.group(1)}
    return None


def _replace_node(node: Element, replacements: Mapping[str, str]) -> Element:
    if not isinstance(node, dict):
        raise ValidationError(f"Rich text element must be an object, got {node!r}")
    node_type = node.get("type")
    if node_type in LIST_CONTAINERS:
        result = {k: v for k, v in node.items() if k != "elements"}
        result["elements"] = [
            _replace_node(child, replacements) for child in _children(node)
        ]
        return result
    if node_type in LEAF_CONTAINERS:
        result = {k: v for k, v in node.items() if k != "elements"}
        result["elements"] = _replace_inline(_children(node), replacements)
        return result
    return copy.deepcopy(node)


def _replace_inline(
    elements: List[Element], replacements: Mapping[str, str]
) -> List[Element]:
    for element in elements:
        if not isinstance(element, dict):
            raise ValidationError(f"Rich text element must be an object, got {element!r}")
        if element.get("type") == "text" and not isinstance(element.get("text", ""), str):
            raise ValidationError(f"Rich text run has non-string text: {element!r}")
    runs = [copy.deepcopy(element) for element in elements]
    for key, value in replacements.items():
        mention = mention_element(value)
        spliced: List[Element] = []
        for run in runs:
            text = run.get("text", "")
            if run.get("type") != "text" or key not in text:
                spliced.append(run)
                continue
            for position, piece in enumerate(text.split(key)):
                if position:
                    spliced.append(_replacement(value, mention, run))
                spliced.append(_with_text(run, piece))
        runs = spliced
    return _merge_runs(runs)


def _replacement(value: str, mention: Optional[Element], run: Element) -> Element:
    if mention is None:
        return _with_text(run, value)
    element = dict(mention)
    if run.get("style"):
        element["style"] = dict(run["style"])
    return element


def _with_text(run: Element, text: str) -> Element:
    element = copy.deepcopy(run)
    element["text"] = text
    return element


def _style_key(element: Element) -> Tuple[bool, ...]:
    style = element.get("style") or {}
    return tuple(bool(style.get(flag)) for flag in STYLE_FLAGS)


def _merge_runs(runs: List[Element]) -> List[Element]:
    merged: List[Element] = []
    for run in runs:
        if run.get("type") == "text":
            if not run.get("text"):
                continue
            previous = merged[-1] if merged else None
            if (
                previous is not None
                and previous.get("type") == "text"
                and _style_key(previous) == _style_key(run)
            ):
                merged[-1] = {**previous, "text": previous["text"] + run["text"]}
                continue
        merged.append(run)
    return merged


def _children(node: Element) -> List[Any]:
    children = node.get("elements", [])
    if not isinstance(children, list):
        raise ValidationError(f"Rich text elements must be a list, got {children!r}")
    return children
