"""Structural rich text substitution tests."""

import copy

import pytest

from winterflows.errors import ValidationError
from winterflows.templating import mention_element, replace_rich_text


def _block(*elements, container="rich_text_section"):
    return {
        "type": "rich_text",
        "block_id": "b1",
        "elements": [{"type": container, "elements": list(elements)}],
    }


def _inline(block):
    return block["elements"][0]["elements"]


def test_mention_element():
    assert mention_element("<@U123>") == {"type": "user", "user_id": "U123"}
    assert mention_element("<@W9|ada>") == {"type": "user", "user_id": "W9"}
    assert mention_element("<#C42|general>") == {"type": "channel", "channel_id": "C42"}
    assert mention_element("hello <@U123>") is None
    assert mention_element("U123") is None


def test_user_mention_is_spliced_with_surrounding_style():
    block = _block(
        {"type": "text", "text": "hey $!{ctx.trigger_user_ping}!", "style": {"bold": True}}
    )

    result = replace_rich_text(block, {"$!{ctx.trigger_user_ping}": "<@U1>"})

    assert _inline(result) == [
        {"type": "text", "text": "hey ", "style": {"bold": True}},
        {"type": "user", "user_id": "U1", "style": {"bold": True}},
        {"type": "text", "text": "!", "style": {"bold": True}},
    ]
    assert result["block_id"] == "b1"


def test_channel_mention_is_spliced():
    block = _block({"type": "text", "text": "$!{outputs.make.channel}"})

    result = replace_rich_text(block, {"$!{outputs.make.channel}": "<#C9>"})

    assert _inline(result) == [{"type": "channel", "channel_id": "C9"}]


def test_plain_values_merge_with_neighbouring_runs():
    block = _block(
        {"type": "text", "text": "a "},
        {"type": "text", "text": "$!{outputs.s.v}"},
        {"type": "text", "text": " c"},
    )

    result = replace_rich_text(block, {"$!{outputs.s.v}": "b"})

    assert _inline(result) == [{"type": "text", "text": "a b c"}]


def test_runs_with_different_styles_stay_apart():
    block = _block(
        {"type": "text", "text": "one"},
        {"type": "text", "text": "two", "style": {"italic": True}},
        {"type": "emoji", "name": "tada"},
        {"type": "text", "text": "three"},
    )

    assert _inline(replace_rich_text(block, {})) == _inline(block)


def test_empty_map_only_normalizes():
    block = _block(
        {"type": "text", "text": "a"},
        {"type": "text", "text": ""},
        {"type": "text", "text": "b"},
    )

    assert _inline(replace_rich_text(block, {})) == [{"type": "text", "text": "ab"}]


def test_normalization_is_idempotent():
    block = _block(
        {"type": "text", "text": "x $!{outputs.a.b} y"},
        {"type": "text", "text": " z", "style": {"code": True}},
        container="rich_text_quote",
    )
    replacements = {"$!{outputs.a.b}": "<@U7>"}

    once = replace_rich_text(block, replacements)
    twice = replace_rich_text(once, replacements)

    assert once == twice


def test_input_is_not_mutated():
    block = _block({"type": "text", "text": "$!{outputs.a.b}"})
    original = copy.deepcopy(block)

    replace_rich_text(block, {"$!{outputs.a.b}": "<@U1>"})

    assert block == original


def test_nested_lists_and_unknown_nodes():
    block = {
        "type": "rich_text",
        "elements": [
            {
                "type": "rich_text_list",
                "style": "bullet",
                "elements": [
                    {"type": "rich_text_section", "elements": [{"type": "text", "text": "$!{outputs.a.b}"}]}
                ],
            },
            {"type": "mystery", "text": "$!{outputs.a.b}"},
        ],
    }

    result = replace_rich_text(block, {"$!{outputs.a.b}": "done"})

    assert result["elements"][0]["style"] == "bullet"
    assert result["elements"][0]["elements"][0]["elements"] == [{"type": "text", "text": "done"}]
    assert result["elements"][1] == {"type": "mystery", "text": "$!{outputs.a.b}"}


def test_unresolved_tokens_are_left_in_place():
    block = _block({"type": "text", "text": "keep $!{outputs.nope.x}"})

    result = replace_rich_text(block, {"$!{outputs.a.b}": "v"})

    assert _inline(result) == [{"type": "text", "text": "keep $!{outputs.nope.x}"}]


@pytest.mark.parametrize(
    "block",
    [
        {"type": "rich_text", "elements": [1, 2]},
        {"type": "rich_text", "elements": "not a list"},
        {"type": "rich_text", "elements": [{"type": "rich_text_section", "elements": ["x"]}]},
        {"type": "rich_text", "elements": [{"type": "rich_text_section", "elements": [{"type": "text", "text": 5}]}]},
    ],
)
def test_malformed_trees_are_rejected(block):
    with pytest.raises(ValidationError):
        replace_rich_text(block, {"$!{outputs.a.b}": "v"})
