from __future__ import annotations

import asyncio
from typing import Any

import pytest

from lnm_trader.config import Settings
from lnm_trader.errors import TradeSubmissionError, UpstreamFetchError
from lnm_trader.exchange.schemas import Position
from lnm_trader.types import Side


class FakeClock:
    """Manual monotonic clock; sleeping advances time instantly."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class FakeVenue:
    """In-memory venue returning queued position snapshots."""

    def __init__(self, *snapshots: list[Position]) -> None:
        self.snapshots = list(snapshots)
        self.list_calls = 0
        self.closed: list[str] = []
        self.orders: list[dict[str, Any]] = []
        self.fail_close: set[str] = set()
        self.fail_list = False
        self.fail_order = False

    async def list_open_positions(self) -> list[Position]:
        self.list_calls += 1
        if self.fail_list:
            raise UpstreamFetchError("lnm_http_503")
        if len(self.snapshots) > 1:
            return self.snapshots.pop(0)
        return self.snapshots[0] if self.snapshots else []

    async def close_position(self, position_id: str) -> dict[str, Any]:
        if position_id in self.fail_close:
            raise TradeSubmissionError("lnm_http_400", status_code=400, payload={"message": "nope"})
        self.closed.append(position_id)
        return {"id": position_id}

    async def submit_market_order(self, side: Side, leverage: float, quantity: float) -> dict[str, Any]:
        self.orders.append({"side": side, "leverage": leverage, "quantity": quantity})
        if self.fail_order:
            raise TradeSubmissionError("lnm_http_400", status_code=400, payload={"message": "margin"})
        return {"id": f"order-{len(self.orders)}"}


class FakeNotifier:
    def __init__(self) -> None:
        self.messages: list[str] = []

    async def send(self, text: str) -> bool:
        self.messages.append(text)
        return True


def make_position(position_id: str, side: Side, quantity: float = 2.0, pl: float = 0.0) -> Position:
    return Position(
        id=position_id,
        side=side,
        quantity=quantity,
        pl=pl,
        opening_fee=1.0,
        entry_price=60_000.0,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        lnm_api_key="key",
        lnm_api_secret="secret",
        lnm_passphrase="pass",
        taapi_api_key="taapi",
        telegram_bot_token="",
        telegram_chat_id="",
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def position_factory():
    return make_position


@pytest.fixture
def venue_factory():
    return FakeVenue


class FakeIndicatorProvider:
    """Returns canned indicator payloads keyed by kind."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str]] = []
        self.fail_next = False
        self.payloads: dict[str, dict[str, Any]] = {
            "rsi": {"value": 55.5},
            "bbands": {"valueUpperBand": 110.0, "valueMiddleBand": 105.0, "valueLowerBand": 100.0},
            "ultosc": {"value": 48.0},
            "stddev": {"value": 310.2},
            "macd": {"valueMACD": 12.0, "valueMACDSignal": 10.0, "valueMACDHist": 2.0},
        }

    async def get_indicator(self, kind: str, symbol: str, interval: str) -> dict[str, Any]:
        self.calls.append((kind, symbol, interval))
        if self.fail_next:
            self.fail_next = False
            raise UpstreamFetchError(f"taapi_{kind}_http_500")
        return self.payloads[kind]


@pytest.fixture
def indicator_provider() -> FakeIndicatorProvider:
    return FakeIndicatorProvider()
