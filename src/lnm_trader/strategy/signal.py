"""Deterministic entry signal from RSI, its moving average and Bollinger bands."""

from __future__ import annotations

from dataclasses import dataclass

from lnm_trader.config import Settings
from lnm_trader.data.fetcher import BandValues
from lnm_trader.risk.exposure import exceeds_cap
from lnm_trader.types import NO_ACTION, ExposureSummary, Side, TradeDecision


@dataclass(frozen=True, slots=True)
class RsiThresholds:
    sell: float
    buy: float
    adaptive: bool


@dataclass(frozen=True, slots=True)
class PriceThresholds:
    sell_floor: float
    buy_ceiling: float


@dataclass(frozen=True, slots=True)
class SignalEvaluation:
    """Decision plus the figures that produced it."""

    decision: TradeDecision
    reason: str
    rsi_thresholds: RsiThresholds | None = None
    price_thresholds: PriceThresholds | None = None

    def entry_thresholds(self) -> tuple[float, float]:
        """RSI and price thresholds that the entered side crossed."""
        if self.decision.side is None or self.rsi_thresholds is None or self.price_thresholds is None:
            raise ValueError("no_entry_decision")
        if self.decision.side is Side.SHORT:
            return self.rsi_thresholds.sell, self.price_thresholds.sell_floor
        return self.rsi_thresholds.buy, self.price_thresholds.buy_ceiling


def derive_rsi_thresholds(moving_average: float | None, settings: Settings) -> RsiThresholds:
    """Adaptive thresholds around the RSI average; fixed defaults until it exists."""
    if moving_average is None:
        return RsiThresholds(
            sell=settings.default_sell_rsi,
            buy=settings.default_buy_rsi,
            adaptive=False,
        )
    return RsiThresholds(
        sell=moving_average + settings.sell_rsi_offset,
        buy=moving_average - settings.buy_rsi_offset,
        adaptive=True,
    )


def derive_price_thresholds(bands: BandValues, settings: Settings) -> PriceThresholds:
    return PriceThresholds(
        sell_floor=bands.lower * settings.sell_band_factor,
        buy_ceiling=bands.upper * settings.buy_band_factor,
    )


def evaluate_signal(
    *,
    rsi: float,
    moving_average: float | None,
    bands: BandValues,
    price: float,
    exposure: ExposureSummary,
    settings: Settings,
) -> SignalEvaluation:
    """Return enter-short, enter-long or no action.

    Short is checked before long, so short wins if both could hold.
    """
    if moving_average is None:
        return SignalEvaluation(decision=NO_ACTION, reason="warming_up")
    if exceeds_cap(exposure, settings.max_side_exposure):
        return SignalEvaluation(decision=NO_ACTION, reason="exposure_capped")

    rsi_thresholds = derive_rsi_thresholds(moving_average, settings)
    price_thresholds = derive_price_thresholds(bands, settings)

    if rsi >= rsi_thresholds.sell and price > price_thresholds.sell_floor:
        side: Side | None = Side.SHORT
    elif rsi <= rsi_thresholds.buy and price < price_thresholds.buy_ceiling:
        side = Side.LONG
    else:
        side = None

    if side is None:
        return SignalEvaluation(
            decision=NO_ACTION,
            reason="no_signal",
            rsi_thresholds=rsi_thresholds,
            price_thresholds=price_thresholds,
        )
    return SignalEvaluation(
        decision=TradeDecision.enter(side, settings.order_quantity, settings.order_leverage),
        reason=f"{side.label}_signal",
        rsi_thresholds=rsi_thresholds,
        price_thresholds=price_thresholds,
    )
