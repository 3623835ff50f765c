"""
Telegram Bot API Client

Thin async wrapper over the handful of Bot API methods the admin
notifications need. Every method logs and returns None/False/[] on
failure instead of raising.
"""

import logging
from typing import Any, Dict, List, Optional, Union

import httpx

from swift_assistant.config.settings import settings


logger = logging.getLogger(__name__)

ChatId = Union[str, int]


class TelegramService:
    """Client for the Telegram Bot API."""

    def __init__(
        self,
        bot_token: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.bot_token = bot_token or settings.telegram_admin_bot_token
        self.base_url = f"{api_base or settings.telegram_api_base}/bot{self.bot_token}"
        self._timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.bot_token)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def _call(
        self,
        method: str,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Optional[Any]:
        """Invoke a Bot API method and return its ``result`` on success."""
        if not self.configured:
            logger.warning(f"[TELEGRAM] Bot token not configured, skipping {method}")
            return None

        try:
            async with self._client() as client:
                if payload is not None:
                    response = await client.post(f"{self.base_url}/{method}", json=payload)
                else:
                    response = await client.get(f"{self.base_url}/{method}", params=params)
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[TELEGRAM] {method} failed: {e}")
            return None

        if not data.get("ok"):
            logger.error(f"[TELEGRAM] {method} rejected: {data.get('description')}")
            return None

        return data.get("result")

    async def get_bot_info(self) -> Optional[Dict[str, Any]]:
        """Verify the bot token and return the bot's identity."""
        return await self._call("getMe", params={})

    async def send_message(
        self,
        chat_id: ChatId,
        text: str,
        parse_mode: Optional[str] = None,
        disable_web_page_preview: Optional[bool] = None,
        disable_notification: Optional[bool] = None,
    ) -> bool:
        """Send a text message; True when Telegram accepted it."""
        payload: Dict[str, Any] = {"chat_id": chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        if disable_web_page_preview is not None:
            payload["disable_web_page_preview"] = disable_web_page_preview
        if disable_notification is not None:
            payload["disable_notification"] = disable_notification

        result = await self._call("sendMessage", payload=payload)
        if result is None:
            return False

        logger.debug(f"[TELEGRAM] Message {result.get('message_id')} sent to {chat_id}")
        return True

    async def send_html_message(self, chat_id: ChatId, html: str) -> bool:
        return await self.send_message(chat_id, html, parse_mode="HTML")

    async def get_chat(self, chat_id: ChatId) -> Optional[Dict[str, Any]]:
        return await self._call("getChat", payload={"chat_id": chat_id})

    async def get_updates(
        self,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Pending updates, for finding the admin chat id during setup."""
        params: Dict[str, Any] = {}
        if offset:
            params["offset"] = offset
        if limit:
            params["limit"] = limit

        return await self._call("getUpdates", params=params) or []


_telegram_service: Optional[TelegramService] = None


def get_telegram_service() -> TelegramService:
    """Get or create Telegram service singleton."""
    global _telegram_service
    if _telegram_service is None:
        _telegram_service = TelegramService()
    return _telegram_service
