from __future__ import annotations

import asyncio

import pytest

from lnm_trader.config import Settings
from lnm_trader.exec.dispatcher import TradeDispatcher
from lnm_trader.types import NO_ACTION, CooldownState, Side, TradeDecision


def test_can_make_trade_requires_strictly_more_than_cooldown(
    settings: Settings, fake_clock, notifier, venue_factory
) -> None:
    dispatcher = TradeDispatcher(venue_factory(), notifier, fake_clock, settings)
    cooldowns = CooldownState()
    assert dispatcher.can_make_trade(cooldowns)

    cooldowns.last_trade_at = fake_clock.monotonic()
    fake_clock.advance(1.0)
    assert not dispatcher.can_make_trade(cooldowns)
    fake_clock.advance(0.001)
    assert dispatcher.can_make_trade(cooldowns)


def test_execute_submits_and_notifies(settings: Settings, fake_clock, notifier, venue_factory) -> None:
    venue = venue_factory()
    dispatcher = TradeDispatcher(venue, notifier, fake_clock, settings)
    cooldowns = CooldownState()

    order = asyncio.run(dispatcher.execute(TradeDecision.enter(Side.SHORT, 2.0, 1.0), 64_000.0, cooldowns))

    assert venue.orders == [{"side": Side.SHORT, "leverage": 1.0, "quantity": 2.0}]
    assert order["status"] == "submitted"
    assert order["position_id"] == "order-1"
    assert cooldowns.last_trade_at == fake_clock.monotonic()
    assert notifier.messages == ["Shorted on LNM at 64000.0"]


def test_failed_submission_still_stamps_cooldown(
    settings: Settings, fake_clock, notifier, venue_factory
) -> None:
    venue = venue_factory()
    venue.fail_order = True
    dispatcher = TradeDispatcher(venue, notifier, fake_clock, settings)
    cooldowns = CooldownState()

    order = asyncio.run(dispatcher.execute(TradeDecision.enter(Side.LONG, 2.0, 1.0), 63_000.0, cooldowns))

    assert order["status"] == "failed"
    assert cooldowns.last_trade_at is not None
    assert notifier.messages == []


def test_dry_run_skips_venue(settings: Settings, fake_clock, notifier, venue_factory) -> None:
    venue = venue_factory()
    dispatcher = TradeDispatcher(venue, notifier, fake_clock, settings, dry_run=True)
    cooldowns = CooldownState()

    order = asyncio.run(dispatcher.execute(TradeDecision.enter(Side.LONG, 2.0, 1.0), 63_000.0, cooldowns))

    assert venue.orders == []
    assert order["status"] == "dry_run"
    assert cooldowns.last_trade_at is not None
    assert notifier.messages == ["Longed on LNM at 63000.0 (dry run)"]


def test_execute_rejects_no_action(settings: Settings, fake_clock, notifier, venue_factory) -> None:
    dispatcher = TradeDispatcher(venue_factory(), notifier, fake_clock, settings)
    cooldowns = CooldownState()
    with pytest.raises(ValueError):
        asyncio.run(dispatcher.execute(NO_ACTION, 1.0, cooldowns))
    assert cooldowns.last_trade_at is None
