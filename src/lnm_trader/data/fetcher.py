"""Indicator fetches behind one shared cooldown.

Every indicator query costs quota on the same metered provider, so all kinds
share a single ``RateLimiter``. A call made inside the window is rejected
immediately with ``CooldownActive``; it never waits.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from lnm_trader.config import Settings
from lnm_trader.errors import CooldownActive, UpstreamFetchError
from lnm_trader.utils.clock import Clock, elapsed_since
from lnm_trader.utils.logging import get_logger


class IndicatorProvider(Protocol):
    async def get_indicator(self, kind: str, symbol: str, interval: str) -> dict[str, Any]: ...


@dataclass(frozen=True, slots=True)
class IndicatorValue:
    value: float


@dataclass(frozen=True, slots=True)
class BandValues:
    upper: float
    middle: float | None
    lower: float


@dataclass(frozen=True, slots=True)
class MacdValues:
    macd: float
    signal: float
    histogram: float


class RateLimiter:
    """One cooldown timestamp shared by every caller it is injected into."""

    def __init__(self, cooldown_sec: float, clock: Clock) -> None:
        self._cooldown_sec = cooldown_sec
        self._clock = clock
        self._last_at: float | None = None

    @property
    def last_at(self) -> float | None:
        return self._last_at

    def acquire(self, label: str) -> float:
        """Return the attempt instant, or raise CooldownActive inside the window."""
        elapsed = elapsed_since(self._clock, self._last_at)
        if elapsed < self._cooldown_sec:
            raise CooldownActive(label, self._cooldown_sec - elapsed)
        return self._clock.monotonic()

    def stamp(self, instant: float) -> None:
        self._last_at = instant


class IndicatorFetcher:
    """Typed indicator reads for the configured instrument."""

    def __init__(self, provider: IndicatorProvider, limiter: RateLimiter, settings: Settings) -> None:
        self._provider = provider
        self._limiter = limiter
        self._symbol = settings.indicator_symbol
        self._default_timeframe = settings.indicator_timeframe
        self._logger = get_logger("lnm_trader.data.fetcher")

    async def fetch_rsi(self, timeframe: str | None = None) -> IndicatorValue:
        payload = await self._fetch("rsi", timeframe)
        return IndicatorValue(value=_number(payload, "value", "rsi"))

    async def fetch_bbands(self, timeframe: str | None = None) -> BandValues:
        payload = await self._fetch("bbands", timeframe)
        middle = payload.get("valueMiddleBand")
        return BandValues(
            upper=_number(payload, "valueUpperBand", "bbands"),
            middle=float(middle) if isinstance(middle, (int, float)) else None,
            lower=_number(payload, "valueLowerBand", "bbands"),
        )

    async def fetch_ultosc(self, timeframe: str | None = None) -> IndicatorValue:
        payload = await self._fetch("ultosc", timeframe)
        return IndicatorValue(value=_number(payload, "value", "ultosc"))

    async def fetch_stddev(self, timeframe: str | None = None) -> IndicatorValue:
        payload = await self._fetch("stddev", timeframe)
        return IndicatorValue(value=_number(payload, "value", "stddev"))

    async def fetch_macd(self, timeframe: str | None = None) -> MacdValues:
        payload = await self._fetch("macd", timeframe)
        return MacdValues(
            macd=_number(payload, "valueMACD", "macd"),
            signal=_number(payload, "valueMACDSignal", "macd"),
            histogram=_number(payload, "valueMACDHist", "macd"),
        )

    async def _fetch(self, kind: str, timeframe: str | None) -> dict[str, Any]:
        interval = timeframe or self._default_timeframe
        attempted_at = self._limiter.acquire(kind)
        try:
            payload = await self._provider.get_indicator(kind, self._symbol, interval)
        except UpstreamFetchError as exc:
            self._logger.warning("indicator_fetch_failed", kind=kind, interval=interval, error=str(exc))
            raise
        self._limiter.stamp(attempted_at)
        return payload


def _number(payload: dict[str, Any], key: str, kind: str) -> float:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise UpstreamFetchError(f"{kind}_missing_{key}")
    return float(value)
