"""Chat transport that talks to an HTTP chat gateway.

Outbound actions are posted to the gateway; inbound messages and reactions
arrive through the ``/api/events`` endpoints (see botcore.routers.events).
"""

import logging
from typing import Any, List, Optional

import aiohttp

from botcore.transport import ChatMessage, Media, Reaction

logger = logging.getLogger(__name__)


class WebhookTransport:
    """ChatTransport backed by a gateway's REST API."""

    def __init__(self, base_url: str, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def send_message(
        self,
        chat_id: str,
        content: str = "",
        *,
        media: Optional[Media] = None,
        quoted_message_id: Optional[str] = None,
    ) -> Optional[ChatMessage]:
        data = {
            "chat_id": chat_id,
            "content": content,
            "media": media.model_dump() if media else None,
            "quoted_message_id": quoted_message_id,
        }
        result = await self._request("POST", "/messages", data)
        if result is None:
            logger.error(f"[Gateway] Failed to send message to {chat_id}")
            return None
        logger.info(f"[Gateway] Message sent to {chat_id}")
        return ChatMessage.model_validate(result)

    async def reply(
        self,
        message: ChatMessage,
        content: str = "",
        *,
        media: Optional[Media] = None,
    ) -> Optional[ChatMessage]:
        return await self.send_message(message.chat_id, content, media=media, quoted_message_id=message.id)

    async def react(self, message: ChatMessage, emoji: str) -> None:
        await self._request("POST", f"/messages/{message.id}/reactions", {"emoji": emoji})

    async def download_media(self, message: ChatMessage) -> Optional[Media]:
        result = await self._request("GET", f"/messages/{message.id}/media")
        return Media.model_validate(result) if result else None

    async def get_message_by_id(self, message_id: str) -> Optional[ChatMessage]:
        result = await self._request("GET", f"/messages/{message_id}")
        return ChatMessage.model_validate(result) if result else None

    async def get_reactions(self, message: ChatMessage) -> List[Reaction]:
        result = await self._request("GET", f"/messages/{message.id}/reactions")
        return [Reaction.model_validate(r) for r in result or []]

    async def _request(self, method: str, path: str, data: Optional[dict] = None) -> Optional[Any]:
        """Send an HTTP request to the gateway; None on any failure."""
        url = f"{self.base_url}{path}"
        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(method, url, json=data) as response:
                    if response.status == 200:
                        return await response.json()
                    if response.status != 404:
                        response_text = await response.text()
                        logger.error(f"[Gateway] {method} {path} -> HTTP {response.status}: {response_text}")
                    return None
        except Exception as e:
            logger.error(f"[Gateway] {method} {path} request error: {e}", exc_info=True)
            return None
