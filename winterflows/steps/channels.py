"""Channel management steps."""

from __future__ import annotations

from typing import Dict

from ..clients.slack import SlackApiError
from ..contracts import Completed
from .base import ExecutionContext, define_step


async def add_user_to_channel(ctx: ExecutionContext, inputs: Dict[str, str]) -> Completed:
    try:
        await ctx.client.invite_to_channel(ctx.token, inputs["channel"], inputs["user"])
    except SlackApiError as exc:
        if exc.error != "already_in_channel":
            raise
    return Completed()


async def archive_channel(ctx: ExecutionContext, inputs: Dict[str, str]) -> Completed:
    try:
        await ctx.client.archive_channel(ctx.token, inputs["channel"])
    except SlackApiError as exc:
        if exc.error != "already_archived":
            raise
    return Completed()


async def create_public_channel(
    ctx: ExecutionContext, inputs: Dict[str, str]
) -> Completed:
    channel = await ctx.client.create_channel(ctx.token, inputs["name"], is_private=False)
    return Completed({"id": channel["id"]})


async def create_private_channel(
    ctx: ExecutionContext, inputs: Dict[str, str]
) -> Completed:
    channel = await ctx.client.create_channel(ctx.token, inputs["name"], is_private=True)
    return Completed({"id": channel["id"]})


STEPS = {
    "channel-invite": define_step(
        add_user_to_channel,
        name="Add a user to a channel",
        category="Channels",
        inputs={
            "channel": {"name": "Channel", "type": "channel"},
            "user": {"name": "User", "type": "user"},
        },
    ),
    "archive-channel": define_step(
        archive_channel,
        name="Archive a channel",
        category="Channels",
        inputs={"channel": {"name": "Channel", "type": "channel"}},
    ),
    "create-public-channel": define_step(
        create_public_channel,
        name="Create a public channel",
        category="Channels",
        inputs={"name": {"name": "Name", "type": "text"}},
        outputs={"id": {"name": "Channel", "type": "channel"}},
    ),
    "create-private-channel": define_step(
        create_private_channel,
        name="Create a private channel",
        category="Channels",
        inputs={"name": {"name": "Name", "type": "text"}},
        outputs={"id": {"name": "Created channel", "type": "channel"}},
    ),
}
