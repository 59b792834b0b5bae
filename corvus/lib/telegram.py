"""Telegram Bot API client."""

from __future__ import annotations

import os

import httpx

from corvus.lib.api import ApiResult, UpstreamError, safe_api_call

API_URL = "https://api.telegram.org"


class TelegramClient:

    def __init__(self, bot_token: str | None = None, http: httpx.AsyncClient | None = None):
        self.bot_token = bot_token or os.environ.get("TELEGRAM_BOT_TOKEN", "")
        self.http = http or httpx.AsyncClient()

    async def aclose(self):
        await self.http.aclose()

    @property
    def configured(self) -> bool:
        return bool(self.bot_token)

    async def send_message(self, chat_id: str, text: str) -> ApiResult[dict]:
        """Send Markdown ``text``. Telegram's own error description is passed through."""

        async def call():
            response = await self.http.post(
                f"{API_URL}/bot{self.bot_token}/sendMessage",
                json={"chat_id": chat_id, "text": text, "parse_mode": "Markdown"},
            )
            data = response.json()
            if not response.is_success or not data.get("ok", True):
                raise UpstreamError(data.get("description") or f"HTTP {response.status_code}")
            if not data.get("result"):
                raise UpstreamError("Invalid response from Telegram API")
            return data["result"]

        return await safe_api_call(call(), "Telegram API")
