"""Message steps: sending, reacting and ephemeral notices."""

from __future__ import annotations

import json
from typing import Dict, Tuple

from ..clients.slack import SlackApiError
from ..contracts import Completed
from ..errors import ValidationError
from .base import ExecutionContext, define_step


def message_ref(channel: str, ts: str) -> str:
    """Encode a message reference as carried between steps."""
    return json.dumps({"channel": channel, "ts": ts})


def parse_message_ref(value: str) -> Tuple[str, str]:
    try:
        data = json.loads(value)
        return data["channel"], data["ts"]
    except (json.JSONDecodeError, KeyError, TypeError):
        raise ValidationError(f"Not a message reference: {value!r}") from None


def parse_blocks(message: str) -> list:
    try:
        return [json.loads(message)]
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Message is not a valid block: {exc}") from exc


async def send_message_to_user(ctx: ExecutionContext, inputs: Dict[str, str]) -> Completed:
    msg = await ctx.client.post_message(
        ctx.token, inputs["user_id"], parse_blocks(inputs["message"])
    )
    return Completed({"message": message_ref(msg["channel"], msg["ts"])})


async def send_message_to_channel(
    ctx: ExecutionContext, inputs: Dict[str, str]
) -> Completed:
    msg = await ctx.client.post_message(
        ctx.token, inputs["channel"], parse_blocks(inputs["message"])
    )
    return Completed({"message": message_ref(msg["channel"], msg["ts"])})


async def add_reaction_to_message(
    ctx: ExecutionContext, inputs: Dict[str, str]
) -> Completed:
    channel, ts = parse_message_ref(inputs["message"])
    try:
        await ctx.client.add_reaction(ctx.token, channel, ts, inputs["emoji"])
    except SlackApiError as exc:
        if exc.error != "already_reacted":
            raise
    return Completed()


async def remove_reaction_from_message(
    ctx: ExecutionContext, inputs: Dict[str, str]
) -> Completed:
    channel, ts = parse_message_ref(inputs["message"])
    try:
        await ctx.client.remove_reaction(ctx.token, channel, ts, inputs["emoji"])
    except SlackApiError as exc:
        if exc.error != "no_reaction":
            raise
    return Completed()


async def send_ephemeral_message(
    ctx: ExecutionContext, inputs: Dict[str, str]
) -> Completed:
    await ctx.client.post_ephemeral(
        ctx.token, inputs["channel"], inputs["user"], parse_blocks(inputs["message"])
    )
    return Completed()


_SENT_MESSAGE = {"message": {"name": "Sent message", "type": "message", "required": True}}
_EMOJI = {"name": "Emoji name (without colons)", "type": "text", "required": True}

STEPS = {
    "dm-user": define_step(
        send_message_to_user,
        name="Send a message to a person",
        category="Messages",
        inputs={
            "user_id": {"name": "User", "type": "user"},
            "message": {"name": "Message", "type": "rich_text"},
        },
        outputs=_SENT_MESSAGE,
    ),
    "message-channel": define_step(
        send_message_to_channel,
        name="Send a message to a channel",
        category="Messages",
        inputs={
            "channel": {"name": "Channel", "type": "channel"},
            "message": {"name": "Message", "type": "rich_text"},
        },
        outputs=_SENT_MESSAGE,
    ),
    "react-message": define_step(
        add_reaction_to_message,
        name="Add a reaction to a message",
        category="Messages",
        inputs={
            "message": {"name": "Message", "type": "message"},
            "emoji": _EMOJI,
        },
    ),
    "unreact-message": define_step(
        remove_reaction_from_message,
        name="Remove a reaction from a message",
        category="Messages",
        inputs={
            "message": {"name": "Message", "type": "message"},
            "emoji": _EMOJI,
        },
    ),
    "send-ephemeral": define_step(
        send_ephemeral_message,
        name='Send an "only visible to you" message',
        category="Messages",
        inputs={
            "channel": {"name": "Channel", "type": "channel"},
            "user": {"name": "User", "type": "user"},
            "message": {"name": "Message", "type": "rich_text"},
        },
    ),
}
