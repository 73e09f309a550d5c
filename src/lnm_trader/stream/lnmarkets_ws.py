"""LN Markets public websocket: subscription and message decoding.

The venue speaks JSON-RPC 2.0. After ``v1/public/subscribe`` every update
arrives as a ``subscription`` notification carrying ``channel`` and ``data``.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import websockets
from websockets.exceptions import WebSocketException

from lnm_trader.config import Settings
from lnm_trader.errors import FeedConnectionError, MalformedPayload
from lnm_trader.exchange.schemas import IndexEvent, LastPriceEvent, parse_event
from lnm_trader.types import IndexTick, LastPriceTick, Tick
from lnm_trader.utils.logging import get_logger

LAST_PRICE_CHANNEL = "futures:btc_usd:last-price"
INDEX_CHANNEL = "futures:btc_usd:index"
CHANNELS = (LAST_PRICE_CHANNEL, INDEX_CHANNEL)

_WS_URLS = {
    "mainnet": "wss://api.lnmarkets.com",
    "testnet": "wss://api.testnet.lnmarkets.com",
}


def subscribe_payload(channels: tuple[str, ...] = CHANNELS) -> str:
    return json.dumps(
        {
            "jsonrpc": "2.0",
            "id": uuid.uuid4().hex,
            "method": "v1/public/subscribe",
            "params": list(channels),
        }
    )


def decode_message(raw: str | bytes) -> Tick | None:
    """Decode one frame into a tick.

    Returns None for frames that are not channel updates (subscription acks,
    other channels).

    Raises:
        MalformedPayload: not JSON, or a known channel without its fields.
    """
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, (bytes, bytearray)) else raw
    try:
        obj: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedPayload("unknown", "invalid_json") from exc
    if not isinstance(obj, dict) or obj.get("method") != "subscription":
        return None
    params = obj.get("params")
    if not isinstance(params, dict):
        raise MalformedPayload("unknown", "params_not_object")
    channel = params.get("channel")
    data = params.get("data")
    if channel == LAST_PRICE_CHANNEL:
        event = parse_event(LastPriceEvent, channel, data)
        return LastPriceTick(price=event.last_price, direction=event.last_tick_direction)
    if channel == INDEX_CHANNEL:
        event = parse_event(IndexEvent, channel, data)
        return IndexTick(price=event.index)
    return None


class LNMarketsStream:
    """Opens a subscribed connection; iterate it for raw frames."""

    def __init__(self, settings: Settings, *, url: str | None = None) -> None:
        self._url = url or _WS_URLS[settings.lnm_network.value]
        self._logger = get_logger("lnm_trader.stream.lnmarkets_ws")

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[AsyncIterator[str | bytes]]:
        """Connect and subscribe to the price channels.

        Iteration ends when the server closes cleanly; an abnormal close
        raises FeedConnectionError.
        """
        self._logger.info("websocket_connecting", category="info", url=self._url)
        try:
            async with websockets.connect(
                self._url,
                ping_interval=20,
                ping_timeout=10,
                close_timeout=5,
            ) as ws:
                await ws.send(subscribe_payload())
                self._logger.info("websocket_subscribed", category="info", channels=list(CHANNELS))
                yield ws
        except (OSError, WebSocketException) as exc:
            raise FeedConnectionError(f"{type(exc).__name__}: {exc}") from exc
