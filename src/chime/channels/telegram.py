"""Telegram Bot API channel over httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from chime.channels.base import BaseChannel
from chime.core.errors import DeliveryError, RateLimitedError

logger = logging.getLogger(__name__)


class TelegramChannel(BaseChannel):
    channel_type = "telegram"

    def __init__(
        self,
        token: str | None = None,
        api_base: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if token is None or api_base is None or timeout is None:
            from chime.config import get_settings

            settings = get_settings()
            token = token or settings.telegram_bot_token
            api_base = api_base or settings.telegram_api_base
            timeout = timeout if timeout is not None else settings.telegram_timeout_seconds
        self._token = token
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._http = client

    async def start(self) -> None:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._timeout)

    async def stop(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def send_text(self, chat_id: int, text: str) -> Any:
        return await self._call("sendMessage", {"chat_id": chat_id, "text": text})

    async def copy_message(self, chat_id: int, from_chat_id: int, message_id: int) -> Any:
        return await self._call(
            "copyMessage",
            {"chat_id": chat_id, "from_chat_id": from_chat_id, "message_id": message_id},
        )

    async def health_check(self) -> bool:
        try:
            await self._call("getMe", {})
        except DeliveryError as exc:
            logger.warning("Telegram health check failed: %s", exc)
            return False
        return True

    async def _call(self, method: str, payload: dict[str, Any]) -> Any:
        if self._http is None:
            await self.start()
        url = f"{self._api_base}/bot{self._token}/{method}"
        try:
            resp = await self._http.post(url, json=payload)
        except httpx.HTTPError as exc:
            raise DeliveryError(f"Telegram {method} request failed: {exc}") from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise DeliveryError(
                f"Telegram {method} returned HTTP {resp.status_code}", code=resp.status_code
            ) from exc

        if not data.get("ok"):
            code = data.get("error_code") or resp.status_code
            description = data.get("description") or f"Telegram {method} failed"
            retry_after = (data.get("parameters") or {}).get("retry_after")
            if code == 429:
                raise RateLimitedError(retry_after=retry_after, message=description)
            raise DeliveryError(description, code=code, retry_after=retry_after)
        return data.get("result")
