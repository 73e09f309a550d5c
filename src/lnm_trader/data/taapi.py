"""taapi.io indicator client."""

from __future__ import annotations

from typing import Any

import httpx

from lnm_trader.config import Settings
from lnm_trader.errors import UpstreamFetchError
from lnm_trader.utils.logging import get_logger

_TAAPI_URL = "https://api.taapi.io"


class TaapiClient:
    """Read-only client for single-indicator queries."""

    def __init__(self, settings: Settings, *, http: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._logger = get_logger("lnm_trader.data.taapi")
        self._http = http or httpx.AsyncClient(base_url=_TAAPI_URL, timeout=settings.request_timeout)

    async def get_indicator(self, kind: str, symbol: str, interval: str) -> dict[str, Any]:
        """Fetch the latest value of one indicator.

        Raises:
            UpstreamFetchError: transport failure, non-2xx status or non-object body.
        """
        params = {
            "secret": self._settings.taapi_api_key,
            "exchange": self._settings.taapi_exchange,
            "symbol": symbol,
            "interval": interval,
        }
        try:
            response = await self._http.get(f"/{kind}", params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise UpstreamFetchError(
                f"taapi_{kind}_http_{exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamFetchError(f"taapi_{kind}_transport: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamFetchError(f"taapi_{kind}_invalid_json") from exc
        if not isinstance(payload, dict):
            raise UpstreamFetchError(f"taapi_{kind}_unexpected_payload")
        self._logger.debug("indicator_fetched", kind=kind, symbol=symbol, interval=interval)
        return payload

    async def aclose(self) -> None:
        await self._http.aclose()
