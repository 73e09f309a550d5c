"""Tick consumer: applies ticks to price state and triggers decision cycles."""

from __future__ import annotations

import asyncio

from lnm_trader.pipeline import CycleServices, TradingContext, run_decision_cycle
from lnm_trader.stream.supervisor import ConnectionSupervisor
from lnm_trader.types import IndexTick, LastPriceTick, Tick
from lnm_trader.utils.clock import elapsed_since
from lnm_trader.utils.logging import get_logger


class TradingEngine:
    """Single consumer of the tick queue and sole writer of the trading context.

    A decision cycle runs as its own task so prices keep updating while it
    waits on the network. While one is running, further triggers are skipped.
    """

    def __init__(self, ctx: TradingContext, services: CycleServices) -> None:
        self._ctx = ctx
        self._services = services
        self._clock = services.clock
        self._settings = services.settings
        self._cycle_task: asyncio.Task[None] | None = None
        self._logger = get_logger("lnm_trader.engine")

    @property
    def context(self) -> TradingContext:
        return self._ctx

    async def run(self, supervisor: ConnectionSupervisor) -> None:
        """Run the feed and the consumer until the feed stops."""
        queue: asyncio.Queue[Tick | None] = asyncio.Queue()
        consumer = asyncio.create_task(self.consume(queue))
        try:
            await supervisor.run(queue)
        finally:
            queue.put_nowait(None)
            await consumer

    async def consume(self, queue: asyncio.Queue[Tick | None]) -> None:
        """Apply ticks in arrival order; a None item ends consumption."""
        try:
            while True:
                tick = await queue.get()
                if tick is None:
                    break
                self.handle_tick(tick)
        finally:
            if self._cycle_task is not None:
                await self._cycle_task

    def should_run_cycle(self) -> bool:
        return (
            elapsed_since(self._clock, self._ctx.cooldowns.last_cycle_at)
            >= self._settings.cycle_cooldown_sec
        )

    def handle_tick(self, tick: Tick) -> bool:
        """Update prices; start a cycle if the gate is open. Returns True if started."""
        prices = self._ctx.prices
        if isinstance(tick, LastPriceTick):
            prices.last_price = tick.price
            prices.last_tick_direction = tick.direction
        elif isinstance(tick, IndexTick):
            prices.index_price = tick.price

        if not self.should_run_cycle():
            return False
        if self._ctx.in_progress:
            self._logger.warning("decision_cycle_still_running", category="warn")
            return False
        self._ctx.cooldowns.last_cycle_at = self._clock.monotonic()
        self._ctx.in_progress = True
        self._cycle_task = asyncio.create_task(self._run_cycle())
        return True

    async def _run_cycle(self) -> None:
        try:
            result = await run_decision_cycle(self._ctx, self._services)
            self._logger.info(
                "cycle_completed",
                category="info",
                status=result.status,
                elapsed_ms=round(result.elapsed_ms, 2),
                orders=len(result.orders),
                closes=len(result.closes),
            )
        finally:
            self._ctx.in_progress = False
