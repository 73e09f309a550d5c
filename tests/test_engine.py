from __future__ import annotations

import asyncio

import pytest

from lnm_trader.config import Settings
from lnm_trader.engine import TradingEngine
from lnm_trader.pipeline import CycleServices, TradingContext
from lnm_trader.types import CycleResult, IndexTick, LastPriceTick, TickDirection


class _CycleRecorder:
    def __init__(self) -> None:
        self.calls = 0
        self.release = asyncio.Event()
        self.block = False

    async def __call__(self, ctx: TradingContext, services: CycleServices) -> CycleResult:
        self.calls += 1
        assert ctx.in_progress
        if self.block:
            await self.release.wait()
        return CycleResult(status="no_signal")


@pytest.fixture
def engine_factory(settings: Settings, fake_clock, monkeypatch):
    def _build() -> tuple[TradingEngine, _CycleRecorder]:
        recorder = _CycleRecorder()
        monkeypatch.setattr("lnm_trader.engine.run_decision_cycle", recorder)
        services = CycleServices(
            fetcher=None,  # type: ignore[arg-type]
            exposure=None,  # type: ignore[arg-type]
            dispatcher=None,  # type: ignore[arg-type]
            clock=fake_clock,
            settings=settings,
        )
        return TradingEngine(TradingContext.from_settings(settings), services), recorder

    return _build


def test_cycle_gate_allows_one_cycle_per_cooldown(engine_factory, fake_clock) -> None:
    async def scenario() -> None:
        engine, recorder = engine_factory()

        assert engine.handle_tick(LastPriceTick(price=64_000.0, direction=TickDirection.UP))
        await asyncio.sleep(0)
        assert not engine.handle_tick(IndexTick(price=63_990.0))

        fake_clock.advance(59.5)
        assert not engine.handle_tick(IndexTick(price=63_995.0))
        fake_clock.advance(0.5)
        await asyncio.sleep(0)
        assert engine.handle_tick(IndexTick(price=64_001.0))
        await asyncio.sleep(0)

        assert recorder.calls == 2
        prices = engine.context.prices
        assert prices.last_price == 64_000.0
        assert prices.index_price == 64_001.0
        assert prices.last_tick_direction is TickDirection.UP

    asyncio.run(scenario())


def test_trigger_skipped_while_cycle_in_progress(engine_factory, fake_clock) -> None:
    async def scenario() -> None:
        engine, recorder = engine_factory()
        recorder.block = True

        assert engine.handle_tick(IndexTick(price=1.0))
        first_stamp = engine.context.cooldowns.last_cycle_at
        await asyncio.sleep(0)

        fake_clock.advance(120.0)
        assert not engine.handle_tick(IndexTick(price=2.0))
        assert engine.context.cooldowns.last_cycle_at == first_stamp
        assert engine.context.in_progress

        recorder.release.set()
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert not engine.context.in_progress
        assert engine.handle_tick(IndexTick(price=3.0))
        await asyncio.sleep(0)
        assert recorder.calls == 2

    asyncio.run(scenario())


def test_run_consumes_feed_until_it_stops(engine_factory) -> None:
    class _Feed:
        async def run(self, queue: asyncio.Queue) -> None:
            queue.put_nowait(LastPriceTick(price=64_200.0))
            queue.put_nowait(IndexTick(price=64_190.0))
            await asyncio.sleep(0)

    engine, recorder = engine_factory()
    asyncio.run(engine.run(_Feed()))  # type: ignore[arg-type]

    assert recorder.calls == 1
    assert engine.context.prices.last_price == 64_200.0
    assert engine.context.prices.index_price == 64_190.0
    assert not engine.context.in_progress
