"""Telegram Bot API client.

Only the three calls the bot needs are implemented: registering the webhook,
looking up the bot's own account and sending plain text replies.  Failures
are raised as :class:`MessengerError`; retrying is left to the caller.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from lib.telemetry.logger import get_logger


logger = get_logger(__name__)

API_BASE = "https://api.telegram.org"


class MessengerError(Exception):
    """The platform could not be reached or rejected the call."""


class TelegramMessenger:
    def __init__(
        self,
        bot_token: str,
        api_base: str = API_BASE,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._http = httpx.AsyncClient(
            base_url=f"{api_base}/bot{bot_token}",
            timeout=timeout,
            transport=transport,
        )

    async def _call(self, method: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        try:
            resp = await self._http.post(f"/{method}", json=payload or {})
        except httpx.HTTPError as exc:
            raise MessengerError(f"{method} failed: {exc}") from exc

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        if resp.is_error or not body.get("ok"):
            description = body.get("description") or resp.reason_phrase
            raise MessengerError(f"{method} rejected ({resp.status_code}): {description}")
        return body.get("result")

    async def send_message(self, chat_id: int, text: str) -> None:
        await self._call("sendMessage", {"chat_id": chat_id, "text": text})

    async def set_webhook(self, url: str) -> None:
        await self._call("setWebhook", {"url": url, "allowed_updates": ["message"]})
        logger.info("webhook registered")

    async def get_me(self) -> Dict[str, Any]:
        """Return the bot's own user object."""

        return await self._call("getMe") or {}

    async def close(self) -> None:
        await self._http.aclose()


__all__ = ["MessengerError", "TelegramMessenger", "API_BASE"]
