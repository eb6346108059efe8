"""Example: react to a :tada: in a channel, wait a minute, then reply.

Set DATABASE_URL to share state with a running ``winterflows worker run``.
"""

import asyncio
import json
import os

from winterflows import Step, Workflow, build_runtime
from winterflows.contracts import TriggerTarget
from winterflows.triggers.workflow import EXECUTE_REACTION


async def main():
    runtime = build_runtime()
    workflow = Workflow(
        id=1,
        name="Celebrate",
        creator_user_id=os.environ.get("CREATOR_USER_ID", "U0000000"),
        access_token=os.environ["SLACK_BOT_TOKEN"],
        steps=[
            Step(
                id="ack",
                type_id="react-message",
                inputs={"message": "$!{outputs.trigger.message}", "emoji": "eyes"},
            ),
            Step(id="wait", type_id="delay", inputs={"ms": "60000"}),
            Step(
                id="reply",
                type_id="message-channel",
                inputs={
                    "channel": os.environ.get("CHANNEL_ID", "C0000000"),
                    "message": json.dumps(
                        {
                            "type": "rich_text",
                            "elements": [
                                {
                                    "type": "rich_text_section",
                                    "elements": [
                                        {"type": "text", "text": "Nice one "},
                                        {"type": "text", "text": "$!{outputs.trigger.user_ping}"},
                                    ],
                                }
                            ],
                        }
                    ),
                },
            ),
        ],
    )
    runtime.steps.validate_workflow(workflow)
    await runtime.repository.save_workflow(workflow)
    await runtime.engine.triggers.create_reaction_trigger(
        workflow.steps[2].inputs["channel"],
        "tada",
        TriggerTarget(workflow_id=workflow.id, func=EXECUTE_REACTION),
    )
    print("Workflow saved; start a worker with: winterflows worker run")
    await runtime.close()


if __name__ == "__main__":
    asyncio.run(main())
