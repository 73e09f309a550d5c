"""One decision cycle: exits, indicator reads, signal, entry."""

from __future__ import annotations

from dataclasses import dataclass, field
from time import perf_counter

from lnm_trader.config import Settings
from lnm_trader.data.fetcher import IndicatorFetcher
from lnm_trader.errors import CooldownActive, InvalidSampleError, UpstreamFetchError
from lnm_trader.exec.dispatcher import TradeDispatcher
from lnm_trader.features.history import IndicatorHistory
from lnm_trader.risk.exposure import ExposureTracker
from lnm_trader.strategy.signal import derive_rsi_thresholds, evaluate_signal
from lnm_trader.types import CooldownState, CycleResult, PriceState
from lnm_trader.utils.clock import Clock
from lnm_trader.utils.logging import (
    get_logger,
    log_finance,
    log_risk_event,
    log_trade_signal,
)


@dataclass(slots=True)
class TradingContext:
    """Mutable trading state, owned by the engine and handed to each cycle."""

    history: IndicatorHistory
    prices: PriceState = field(default_factory=PriceState)
    cooldowns: CooldownState = field(default_factory=CooldownState)
    in_progress: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "TradingContext":
        return cls(history=IndicatorHistory(settings.history_capacity, settings.rsi_period))


@dataclass(slots=True)
class CycleServices:
    """Collaborators used by a decision cycle."""

    fetcher: IndicatorFetcher
    exposure: ExposureTracker
    dispatcher: TradeDispatcher
    clock: Clock
    settings: Settings


async def run_decision_cycle(ctx: TradingContext, services: CycleServices) -> CycleResult:
    """Run one decision cycle. Never raises; failures end the cycle early."""
    logger = get_logger("lnm_trader.pipeline")
    settings = services.settings
    started = perf_counter()
    result = CycleResult(status="unknown")

    if not services.dispatcher.can_make_trade(ctx.cooldowns):
        logger.error("trade_not_possible", category="error", reason="trade_cooldown_active")
        return _finish_cycle(result, started, status="trade_cooldown")
    if not ctx.prices.ready:
        return _finish_cycle(result, started, status="prices_not_ready")

    try:
        exposure, closes = await services.exposure.refresh()
    except UpstreamFetchError as exc:
        logger.error("fetching_positions_failed", category="error", error=str(exc), exc_info=True)
        return _finish_cycle(result, started, status="positions_unavailable")
    result.closes.extend(closes)

    logger.info(
        "tick_state",
        category="info",
        last_tick_direction=ctx.prices.last_tick_direction.value,
        price=ctx.prices.last_price,
    )

    try:
        rsi = await services.fetcher.fetch_rsi()
        ctx.history.add_sample(rsi.value)
        await services.clock.sleep(settings.fetch_spacing_sec)
        bands = await services.fetcher.fetch_bbands()

        moving_average = ctx.history.moving_average()
        if moving_average is None:
            logger.info(
                "rsi_history_warming_up",
                category="info",
                samples=len(ctx.history),
                required=ctx.history.period,
            )
        else:
            thresholds = derive_rsi_thresholds(moving_average, settings)
            log_finance(
                logger,
                "rsi_moving_average",
                moving_average=moving_average,
                buy_threshold=thresholds.buy,
                sell_threshold=thresholds.sell,
            )
        log_finance(
            logger,
            "indicator_snapshot",
            rsi=rsi.value,
            lower_band=bands.lower,
            upper_band=bands.upper,
        )

        # the feed keeps updating while the fetches above are suspended
        price = ctx.prices.last_price
        if price is None:
            return _finish_cycle(result, started, status="prices_not_ready")
        log_finance(logger, "price_snapshot", price=price, index_price=ctx.prices.index_price)

        evaluation = evaluate_signal(
            rsi=rsi.value,
            moving_average=moving_average,
            bands=bands,
            price=price,
            exposure=exposure,
            settings=settings,
        )
        result.decision = evaluation.decision
        if evaluation.price_thresholds is not None:
            logger.info(
                "price_thresholds",
                category="info",
                sell_floor=evaluation.price_thresholds.sell_floor,
                buy_ceiling=evaluation.price_thresholds.buy_ceiling,
            )
        if evaluation.reason == "exposure_capped":
            log_risk_event(
                logger,
                event_type="max_side_exposure_reached",
                action="skip_entry",
                short_exposure=exposure.short_quantity,
                long_exposure=exposure.long_quantity,
                cap=settings.max_side_exposure,
            )
        if evaluation.decision.side is None:
            return _finish_cycle(result, started, status=evaluation.reason)

        side = evaluation.decision.side
        rsi_threshold, price_threshold = evaluation.entry_thresholds()
        log_trade_signal(
            logger,
            side=side.label,
            rsi=rsi.value,
            threshold=rsi_threshold,
            price=price,
            price_threshold=price_threshold,
        )
        order = await services.dispatcher.execute(evaluation.decision, price, ctx.cooldowns)
        result.orders.append(order)
        if order["status"] == "failed":
            return _finish_cycle(result, started, status="order_failed")
        log_finance(logger, "trade_action_executed", action=side.label, status=order["status"])
        return _finish_cycle(result, started, status=f"entered_{side.label}")

    except CooldownActive as exc:
        logger.warning("indicator_cooldown_active", category="warn", error=str(exc))
        return _finish_cycle(result, started, status="fetch_cooldown")
    except UpstreamFetchError as exc:
        logger.error("indicator_fetch_failed", category="error", error=str(exc), exc_info=True)
        return _finish_cycle(result, started, status="fetch_failed")
    except InvalidSampleError as exc:
        logger.error("invalid_rsi_sample", category="error", error=str(exc))
        return _finish_cycle(result, started, status="invalid_sample")
    except Exception as exc:  # noqa: BLE001 - top-level guard, next tick retries.
        logger.exception(
            "trade_execution_failed",
            category="error",
            error=str(exc),
            error_type=type(exc).__name__,
            details=_error_details(exc),
        )
        return _finish_cycle(result, started, status="failed")


def _error_details(exc: BaseException) -> dict[str, object]:
    details: dict[str, object] = {"args": [repr(arg) for arg in exc.args]}
    details.update({key: repr(value) for key, value in vars(exc).items()})
    return details


def _finish_cycle(result: CycleResult, started: float, *, status: str) -> CycleResult:
    result.status = status
    result.elapsed_ms = (perf_counter() - started) * 1000
    get_logger("lnm_trader.pipeline").debug("cycle_end", status=status, elapsed_ms=result.elapsed_ms)
    return result
