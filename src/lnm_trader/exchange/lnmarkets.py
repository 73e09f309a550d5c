"""LN Markets REST v2 client for futures positions and orders."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
from typing import Any
from urllib.parse import urlencode

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from lnm_trader.config import Settings
from lnm_trader.errors import TradeSubmissionError, UpstreamFetchError
from lnm_trader.exchange.schemas import Position, parse_positions
from lnm_trader.types import Side
from lnm_trader.utils.logging import get_logger

_API_URLS = {
    "mainnet": "https://api.lnmarkets.com",
    "testnet": "https://api.testnet.lnmarkets.com",
}
_API_PREFIX = "/v2"


class TransientFetchError(UpstreamFetchError):
    """Read failure worth retrying (transport error or 5xx)."""


def sign_request(
    secret: str,
    timestamp: str,
    method: str,
    path: str,
    data: str,
) -> str:
    """Base64 HMAC-SHA256 over timestamp + method + path + data."""
    message = f"{timestamp}{method.upper()}{path}{data}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


class LNMarketsClient:
    """Authenticated futures client.

    Reads raise ``UpstreamFetchError``; writes raise ``TradeSubmissionError``.
    """

    def __init__(self, settings: Settings, *, http: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._logger = get_logger("lnm_trader.exchange.lnmarkets")
        self._http = http or httpx.AsyncClient(
            base_url=_API_URLS[settings.lnm_network.value],
            timeout=settings.request_timeout,
        )

    @retry(
        retry=retry_if_exception_type(TransientFetchError),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    async def list_open_positions(self) -> list[Position]:
        """Return running positions."""
        payload = await self._read("GET", "/futures", params={"type": "running"})
        try:
            return parse_positions(payload)
        except ValueError as exc:
            raise UpstreamFetchError(f"invalid_positions_payload: {exc}") from exc

    async def close_position(self, position_id: str) -> dict[str, Any]:
        """Close one running position by id."""
        return await self._write("DELETE", "/futures", params={"id": position_id})

    async def submit_market_order(self, side: Side, leverage: float, quantity: float) -> dict[str, Any]:
        """Open a market position."""
        body = {
            "side": side.value,
            "type": "m",
            "leverage": leverage,
            "quantity": quantity,
        }
        return await self._write("POST", "/futures", body=body)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _read(self, method: str, path: str, *, params: dict[str, Any] | None = None) -> Any:
        try:
            response = await self._send(method, path, params=params)
        except httpx.HTTPError as exc:
            raise TransientFetchError(f"lnm_transport: {exc}") from exc
        if response.status_code >= 500:
            raise TransientFetchError(f"lnm_http_{response.status_code}")
        if response.is_error:
            raise UpstreamFetchError(f"lnm_http_{response.status_code}: {response.text[:200]}")
        return _decode(response, UpstreamFetchError)

    async def _write(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self._send(method, path, params=params, body=body)
        except httpx.HTTPError as exc:
            raise TradeSubmissionError(f"lnm_transport: {exc}") from exc
        if response.is_error:
            raise TradeSubmissionError(
                f"lnm_http_{response.status_code}",
                status_code=response.status_code,
                payload=_safe_json(response),
            )
        decoded = _decode(response, TradeSubmissionError)
        return decoded if isinstance(decoded, dict) else {"result": decoded}

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        full_path = f"{_API_PREFIX}{path}"
        query = urlencode(params or {})
        content = json.dumps(body, separators=(",", ":")) if body is not None else ""
        data = content if method in ("POST", "PUT") else query
        timestamp = str(int(time.time() * 1000))
        headers = {
            "LNM-ACCESS-KEY": self._settings.lnm_api_key,
            "LNM-ACCESS-PASSPHRASE": self._settings.lnm_passphrase,
            "LNM-ACCESS-TIMESTAMP": timestamp,
            "LNM-ACCESS-SIGNATURE": sign_request(
                self._settings.lnm_api_secret, timestamp, method, full_path, data
            ),
        }
        if content:
            headers["Content-Type"] = "application/json"
        url = f"{full_path}?{query}" if query else full_path
        return await self._http.request(method, url, headers=headers, content=content or None)


def _decode(response: httpx.Response, error_cls: type[Exception]) -> Any:
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError as exc:
        raise error_cls(f"lnm_invalid_json: {response.text[:200]}") from exc


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text[:200]
