"""Shared fixtures: an in-memory runtime with a recording chat client."""

import itertools
import json

import pytest

from winterflows.clients.slack import SlackApiError, SlackClient
from winterflows.config import WinterflowsConfig
from winterflows.contracts import Step, Workflow
from winterflows.persistence import InMemoryWorkflowRepository
from winterflows.runtime import build_runtime


class FakeSlackClient(SlackClient):
    """Records Web API calls instead of sending them.

    ``errors`` maps a method name to the error code it should fail with.
    """

    def __init__(self):
        super().__init__()
        self.calls = []
        self.errors = {}
        self._ts = itertools.count(1)

    async def call(self, method, token, **payload):
        self.calls.append((method, token, payload))
        if method in self.errors:
            raise SlackApiError(method, self.errors[method])
        if method == "chat.postMessage":
            return {"ok": True, "channel": payload["channel"], "ts": f"{next(self._ts)}.0001"}
        if method == "conversations.create":
            return {"ok": True, "channel": {"id": "C" + payload["name"].upper()}}
        return {"ok": True}

    def calls_to(self, method):
        return [payload for name, _, payload in self.calls if name == method]


class ViewRefreshRecorder:
    def __init__(self):
        self.requests = []

    async def __call__(self, workflow_id, user_id):
        self.requests.append((workflow_id, user_id))


def rich_text(*elements):
    """JSON encoded rich text block with one section."""
    return json.dumps(
        {
            "type": "rich_text",
            "elements": [{"type": "rich_text_section", "elements": list(elements)}],
        }
    )


def text(value, **style):
    element = {"type": "text", "text": value}
    if style:
        element["style"] = style
    return element


def make_workflow(workflow_id, steps, access_token="xoxb-test", creator="UCREATOR"):
    return Workflow(
        id=workflow_id,
        name=f"workflow {workflow_id}",
        creator_user_id=creator,
        access_token=access_token,
        steps=[Step(id=sid, type_id=type_id, inputs=inputs) for sid, type_id, inputs in steps],
    )


@pytest.fixture
def repository():
    return InMemoryWorkflowRepository()


@pytest.fixture
def slack():
    return FakeSlackClient()


@pytest.fixture
def refresher():
    return ViewRefreshRecorder()


@pytest.fixture
def runtime(repository, slack, refresher):
    return build_runtime(
        config=WinterflowsConfig(),
        repository=repository,
        client=slack,
        refresh_view=refresher,
    )
