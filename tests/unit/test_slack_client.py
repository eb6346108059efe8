"""Chat platform client tests against a mocked HTTP transport."""

import json

import httpx
import pytest

from winterflows.clients.slack import SlackApiError, SlackClient


def _client(handler, **kwargs):
    return SlackClient(
        api_url="https://slack.test/api", transport=httpx.MockTransport(handler), **kwargs
    )


@pytest.mark.asyncio
async def test_call_sends_bearer_token_and_payload():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"ok": True, "channel": "C1", "ts": "1.2"})

    client = _client(handler)
    data = await client.post_message("xoxb-1", "C1", [{"type": "rich_text"}])
    await client.close()

    assert data["ts"] == "1.2"
    (request,) = seen
    assert request.url.path == "/api/chat.postMessage"
    assert request.headers["Authorization"] == "Bearer xoxb-1"
    assert json.loads(request.content) == {"channel": "C1", "blocks": [{"type": "rich_text"}]}


@pytest.mark.asyncio
async def test_error_response_raises_with_code():
    def handler(request):
        return httpx.Response(200, json={"ok": False, "error": "already_reacted"})

    client = _client(handler)
    with pytest.raises(SlackApiError) as exc_info:
        await client.add_reaction("xoxb-1", "C1", "1.2", "tada")
    await client.close()

    assert exc_info.value.error == "already_reacted"
    assert exc_info.value.method == "reactions.add"


@pytest.mark.asyncio
async def test_rate_limited_calls_are_retried():
    responses = [
        httpx.Response(429, headers={"Retry-After": "0"}),
        httpx.Response(200, json={"ok": True, "channel": {"id": "C9"}}),
    ]

    def handler(request):
        return responses.pop(0)

    client = _client(handler)
    channel = await client.create_channel("xoxb-1", "new", is_private=True)
    await client.close()

    assert channel == {"id": "C9"}
    assert responses == []


@pytest.mark.asyncio
async def test_rate_limit_gives_up_after_max_retries():
    def handler(request):
        return httpx.Response(429, headers={"Retry-After": "0"}, json={"ok": False, "error": "ratelimited"})

    client = _client(handler, max_retries=1)
    with pytest.raises(SlackApiError, match="ratelimited"):
        await client.archive_channel("xoxb-1", "C1")
    await client.close()


@pytest.mark.asyncio
async def test_non_json_body_is_an_error():
    def handler(request):
        return httpx.Response(502, text="bad gateway")

    client = _client(handler)
    with pytest.raises(SlackApiError, match="http_502"):
        await client.open_view("xoxb-1", "I-1", {"type": "modal"})
    await client.close()
