"""
LINE Messaging API Client

Reply delivery and profile lookup for the chat channel.
Uses the channel access token from settings.
"""

from typing import Any

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from core.config import Settings

logger = structlog.get_logger()


class LineAPIError(Exception):
    """Outbound call to the LINE platform failed."""


def text_message(text: str) -> dict[str, Any]:
    return {"type": "text", "text": text}


class LineClient:
    """Client for LINE Messaging API interactions."""

    def __init__(
        self,
        access_token: str,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self.headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "LineClient":
        return cls(
            access_token=settings.line_channel_access_token,
            base_url=settings.line_api_base_url,
            timeout=settings.line_timeout_seconds,
        )

    async def reply_message(self, reply_token: str, messages: list[dict[str, Any]]) -> None:
        """Send a reply. Not retried: reply tokens are single-use."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/message/reply",
                    headers=self.headers,
                    json={"replyToken": reply_token, "messages": messages},
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise LineAPIError(f"reply failed: {exc}") from exc

    async def reply_text(self, reply_token: str, text: str) -> None:
        await self.reply_message(reply_token, [text_message(text)])

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=10),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _fetch_profile(self, user_id: str) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.get(
                f"{self.base_url}/profile/{user_id}",
                headers=self.headers,
            )
            response.raise_for_status()
            return response.json()

    async def get_profile(self, user_id: str) -> dict[str, Any]:
        """Fetch displayName / pictureUrl for a chat user."""
        try:
            return await self._fetch_profile(user_id)
        except (httpx.HTTPError, ValueError) as exc:
            raise LineAPIError(f"profile lookup failed: {exc}") from exc
