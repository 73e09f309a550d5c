"""Telegram alert sink. Sending never raises."""

from __future__ import annotations

from typing import Protocol

import httpx

from lnm_trader.config import Settings
from lnm_trader.utils.logging import get_logger

_TELEGRAM_URL = "https://api.telegram.org"


class Notifier(Protocol):
    async def send(self, text: str) -> bool: ...


class TelegramNotifier:
    """Posts plain-text messages through the Bot API sendMessage endpoint."""

    def __init__(self, settings: Settings, *, http: httpx.AsyncClient | None = None) -> None:
        self._token = settings.telegram_bot_token
        self._chat_id = settings.telegram_chat_id
        self._logger = get_logger("lnm_trader.notify.telegram")
        self._http = http or httpx.AsyncClient(base_url=_TELEGRAM_URL, timeout=8.0)

    @property
    def enabled(self) -> bool:
        return bool(self._token and self._chat_id)

    async def send(self, text: str) -> bool:
        """Send one message. Returns True on delivery, False otherwise."""
        if not self.enabled:
            self._logger.info("notification_skipped", text=text, reason="telegram_not_configured")
            return False
        data = {"chat_id": self._chat_id, "text": text, "disable_web_page_preview": True}
        try:
            response = await self._http.post(f"/bot{self._token}/sendMessage", json=data)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            # the request URL carries the bot token, so only the status is logged
            self._logger.error(
                "notification_failed",
                category="error",
                status_code=exc.response.status_code,
            )
            return False
        except httpx.HTTPError as exc:
            self._logger.error("notification_failed", category="error", error=type(exc).__name__)
            return False
        return True

    async def aclose(self) -> None:
        await self._http.aclose()
