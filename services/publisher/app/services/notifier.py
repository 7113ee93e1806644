"""Slack notification routing for per-product reports.

Routing:
- Failures and neutral reports -> SLACK_CHANNEL_ID
- Pure successes -> SLACK_SUCCESS_CHANNEL_ID when configured, else the main channel
"""

from __future__ import annotations

import logging

import httpx

from app.settings import get_settings

logger = logging.getLogger("uvicorn.error")

SLACK_POST_MESSAGE_URL = "https://slack.com/api/chat.postMessage"
REPORT_SEPARATOR = "\n----------"


class SlackNotifier:
    """Posts finished report text to Slack."""

    def __init__(
        self,
        bot_token: str | None = None,
        channel_id: str | None = None,
        success_channel_id: str | None = None,
        *,
        dry_run: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.bot_token = bot_token if bot_token is not None else settings.slack_bot_token
        self.channel_id = channel_id if channel_id is not None else settings.slack_channel_id
        self.success_channel_id = (
            success_channel_id if success_channel_id is not None else settings.slack_success_channel_id
        )
        self.dry_run = dry_run
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=30.0, transport=self._transport)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    def channel_for(self, success: bool) -> str:
        if success and self.success_channel_id:
            return self.success_channel_id
        return self.channel_id

    def format(self, text: str) -> str:
        prefix = "[DRY RUN] " if self.dry_run else ""
        return f"{prefix}{text}{REPORT_SEPARATOR}"

    async def send(self, text: str, *, success: bool = False) -> bool:
        """Post a report. Returns False (and logs) when Slack rejects it."""
        body = {"channel": self.channel_for(success), "text": self.format(text)}
        client = await self._get_client()
        try:
            response = await client.post(
                SLACK_POST_MESSAGE_URL,
                json=body,
                headers={"Authorization": f"Bearer {self.bot_token}"},
            )
            response.raise_for_status()
        except httpx.HTTPError:
            logger.exception("Slack chat.postMessage failed")
            return False
        data = response.json()
        if not data.get("ok", False):
            logger.warning(f"Slack chat.postMessage error: {data.get('error')}")
            return False
        return True
