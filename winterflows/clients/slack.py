"""Minimal async client for the Slack Web API used by step handlers."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..errors import ExternalServiceError
from ..utils.retry import schedule_retry

logger = logging.getLogger(__name__)


class SlackApiError(ExternalServiceError):
    """A Web API call answered ``ok: false`` or failed in transport."""

    def __init__(self, method: str, error: str, response: Optional[dict] = None) -> None:
        super().__init__(f"Slack API call {method} failed: {error}")
        self.method = method
        self.error = error
        self.response = response or {}


class SlackClient:
    """Calls Web API methods with a per-call bot token.

    Each workflow is its own installed app, so the token travels with the
    call rather than living on the client.
    """

    def __init__(
        self,
        api_url: str = "https://slack.com/api",
        timeout: float = 10.0,
        max_retries: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max_retries
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def connect(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._api_url, timeout=self._timeout, transport=self._transport
            )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def call(self, method: str, token: str, **payload: Any) -> Dict[str, Any]:
        """POST ``payload`` to ``method`` and return the decoded body.

        Rate limited calls are retried up to ``max_retries`` times. Any
        ``ok: false`` answer raises :class:`SlackApiError` carrying the
        platform's error code.
        """
        await self.connect()
        headers = {"Authorization": f"Bearer {token}"}
        attempt = 0
        while True:
            try:
                response = await self._client.post(
                    f"/{method}", json=payload, headers=headers
                )
            except httpx.HTTPError as exc:
                raise SlackApiError(method, f"transport_error: {exc}") from exc

            if response.status_code == 429 and attempt < self._max_retries:
                attempt += 1
                retry_after = response.headers.get("Retry-After")
                logger.warning(
                    f"Rate limited on {method}, retry {attempt}/{self._max_retries}"
                )
                await schedule_retry(
                    attempt, float(retry_after) if retry_after else None
                )
                continue

            try:
                data = response.json()
            except json.JSONDecodeError as exc:
                raise SlackApiError(
                    method, f"http_{response.status_code}"
                ) from exc
            if not data.get("ok"):
                raise SlackApiError(method, data.get("error", "unknown_error"), data)
            logger.debug(f"Slack API call {method} succeeded")
            return data

    # ------------------------------------------------------------------
    async def post_message(
        self, token: str, channel: str, blocks: List[dict]
    ) -> Dict[str, Any]:
        return await self.call("chat.postMessage", token, channel=channel, blocks=blocks)

    async def post_ephemeral(
        self, token: str, channel: str, user: str, blocks: List[dict]
    ) -> Dict[str, Any]:
        return await self.call(
            "chat.postEphemeral", token, channel=channel, user=user, blocks=blocks
        )

    async def add_reaction(self, token: str, channel: str, ts: str, name: str) -> None:
        await self.call("reactions.add", token, channel=channel, timestamp=ts, name=name)

    async def remove_reaction(
        self, token: str, channel: str, ts: str, name: str
    ) -> None:
        await self.call(
            "reactions.remove", token, channel=channel, timestamp=ts, name=name
        )

    async def invite_to_channel(self, token: str, channel: str, users: str) -> None:
        await self.call("conversations.invite", token, channel=channel, users=users)

    async def archive_channel(self, token: str, channel: str) -> None:
        await self.call("conversations.archive", token, channel=channel)

    async def create_channel(
        self, token: str, name: str, is_private: bool = False
    ) -> Dict[str, Any]:
        data = await self.call(
            "conversations.create", token, name=name, is_private=is_private
        )
        return data["channel"]

    async def open_view(self, token: str, trigger_id: str, view: dict) -> None:
        await self.call("views.open", token, trigger_id=trigger_id, view=view)
