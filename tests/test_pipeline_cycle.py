from __future__ import annotations

import asyncio

import pytest

from lnm_trader.config import Settings
from lnm_trader.data.fetcher import IndicatorFetcher, RateLimiter
from lnm_trader.exec.dispatcher import TradeDispatcher
from lnm_trader.pipeline import CycleServices, TradingContext, run_decision_cycle
from lnm_trader.risk.exposure import ExposureTracker
from lnm_trader.types import Side


class _Harness:
    def __init__(self, settings: Settings, clock, notifier, venue, provider) -> None:
        self.clock = clock
        self.venue = venue
        self.provider = provider
        self.notifier = notifier
        self.limiter = RateLimiter(settings.indicator_cooldown_sec, clock)
        self.ctx = TradingContext.from_settings(settings)
        self.services = CycleServices(
            fetcher=IndicatorFetcher(provider, self.limiter, settings),
            exposure=ExposureTracker(venue, notifier, clock, settings),
            dispatcher=TradeDispatcher(venue, notifier, clock, settings),
            clock=clock,
            settings=settings,
        )

    def prefill(self, value: float, count: int) -> None:
        for _ in range(count):
            self.ctx.history.add_sample(value)

    def set_price(self, price: float) -> None:
        self.ctx.prices.last_price = price
        self.ctx.prices.index_price = price

    def run(self):
        return asyncio.run(run_decision_cycle(self.ctx, self.services))


@pytest.fixture
def harness(settings, fake_clock, notifier, venue_factory, indicator_provider) -> _Harness:
    indicator_provider.payloads["rsi"] = {"value": 80.0}
    indicator_provider.payloads["bbands"] = {
        "valueUpperBand": 120.0,
        "valueMiddleBand": 110.0,
        "valueLowerBand": 100.0,
    }
    return _Harness(settings, fake_clock, notifier, venue_factory(), indicator_provider)


def test_cycle_enters_short_on_overbought_signal(harness: _Harness) -> None:
    harness.prefill(60.0, 14)
    harness.set_price(105.0)

    result = harness.run()

    assert result.status == "entered_short"
    assert result.decision.side is Side.SHORT
    assert harness.venue.orders == [{"side": Side.SHORT, "leverage": 1.0, "quantity": 2.0}]
    assert [call[0] for call in harness.provider.calls] == ["rsi", "bbands"]
    assert harness.clock.sleeps == [15.0]
    assert len(harness.ctx.history) == 15
    assert harness.ctx.cooldowns.last_trade_at == harness.clock.monotonic()
    assert harness.notifier.messages == ["Shorted on LNM at 105.0"]


def test_cycle_enters_long_on_oversold_signal(harness: _Harness) -> None:
    harness.provider.payloads["rsi"] = {"value": 30.0}
    harness.prefill(40.0, 14)
    harness.set_price(110.0)

    result = harness.run()

    assert result.status == "entered_long"
    assert harness.venue.orders[0]["side"] is Side.LONG


def test_cycle_waits_for_prices(harness: _Harness) -> None:
    result = harness.run()
    assert result.status == "prices_not_ready"
    assert harness.venue.list_calls == 0
    assert harness.provider.calls == []


def test_cycle_respects_trade_cooldown(harness: _Harness) -> None:
    harness.set_price(105.0)
    harness.ctx.cooldowns.last_trade_at = harness.clock.monotonic()

    result = harness.run()

    assert result.status == "trade_cooldown"
    assert harness.venue.list_calls == 0


def test_cycle_aborts_when_positions_unavailable(harness: _Harness) -> None:
    harness.set_price(105.0)
    harness.venue.fail_list = True

    result = harness.run()

    assert result.status == "positions_unavailable"
    assert harness.provider.calls == []


def test_cycle_records_sample_while_warming_up(harness: _Harness) -> None:
    harness.set_price(105.0)

    result = harness.run()

    assert result.status == "warming_up"
    assert result.decision.is_none
    assert list(harness.ctx.history) == [80.0]
    assert harness.venue.orders == []


def test_cycle_skips_when_indicator_cooldown_active(harness: _Harness) -> None:
    harness.set_price(105.0)
    harness.limiter.stamp(harness.clock.monotonic())

    result = harness.run()

    assert result.status == "fetch_cooldown"
    assert harness.provider.calls == []
    assert len(harness.ctx.history) == 0


def test_cycle_blocks_entry_at_exposure_cap(harness: _Harness, position_factory) -> None:
    harness.venue.snapshots = [[position_factory("big", Side.LONG, quantity=20.0, pl=1.0)]]
    harness.prefill(60.0, 14)
    harness.set_price(105.0)

    result = harness.run()

    assert result.status == "exposure_capped"
    assert harness.venue.orders == []
    assert len(harness.ctx.history) == 15


def test_cycle_closes_positions_before_entry(harness: _Harness, position_factory) -> None:
    harness.venue.snapshots = [[position_factory("win", Side.SHORT, pl=25.0)], []]
    harness.prefill(60.0, 14)
    harness.set_price(105.0)

    result = harness.run()

    assert harness.venue.closed == ["win"]
    assert result.closes[0]["status"] == "closed"
    assert result.status == "entered_short"
    assert harness.clock.sleeps == [1.0, 15.0]


def test_rejected_order_reports_failure_and_stamps_trade(harness: _Harness) -> None:
    harness.venue.fail_order = True
    harness.prefill(60.0, 14)
    harness.set_price(105.0)

    result = harness.run()

    assert result.status == "order_failed"
    assert result.orders[0]["status"] == "failed"
    assert harness.ctx.cooldowns.last_trade_at is not None
    assert harness.notifier.messages == []


def test_band_fetch_failure_keeps_rsi_sample(harness: _Harness) -> None:
    harness.provider.payloads["bbands"] = {"message": "quota exceeded"}
    harness.set_price(105.0)

    result = harness.run()

    assert result.status == "fetch_failed"
    assert list(harness.ctx.history) == [80.0]


def test_invalid_sample_ends_cycle(harness: _Harness) -> None:
    harness.prefill(float("nan"), 14)
    harness.set_price(105.0)

    result = harness.run()

    assert result.status == "invalid_sample"
    assert harness.venue.orders == []
