"""Shared domain types for the decision core."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Side(str, Enum):
    """Position side, valued with the venue's wire codes."""

    SHORT = "s"
    LONG = "b"

    @property
    def label(self) -> str:
        return "short" if self is Side.SHORT else "long"


class TickDirection(str, Enum):
    """Direction of the last traded tick."""

    UP = "UP"
    DOWN = "DOWN"
    FLAT = "FLAT"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, raw: object) -> "TickDirection":
        """Map venue tick strings (PlusTick, ZeroMinusTick, ...) to a direction."""
        if not isinstance(raw, str) or not raw:
            return cls.UNKNOWN
        token = raw.strip().lower()
        if token in ("plustick", "up"):
            return cls.UP
        if token in ("minustick", "down"):
            return cls.DOWN
        if token.startswith("zero") or token == "flat":
            return cls.FLAT
        return cls.UNKNOWN


@dataclass(slots=True)
class PriceState:
    """Latest prices seen on the live feed."""

    last_price: float | None = None
    index_price: float | None = None
    last_tick_direction: TickDirection = TickDirection.UNKNOWN

    @property
    def ready(self) -> bool:
        return self.last_price is not None and self.index_price is not None


@dataclass(frozen=True, slots=True)
class LastPriceTick:
    price: float
    direction: TickDirection = TickDirection.UNKNOWN


@dataclass(frozen=True, slots=True)
class IndexTick:
    price: float


Tick = LastPriceTick | IndexTick


@dataclass(slots=True)
class CooldownState:
    """Monotonic timestamps (seconds) of the last trade and the last cycle."""

    last_trade_at: float | None = None
    last_cycle_at: float | None = None


@dataclass(frozen=True, slots=True)
class TradeDecision:
    """Output of the signal evaluator; side is None for no action."""

    side: Side | None = None
    quantity: float = 0.0
    leverage: float = 0.0

    @classmethod
    def enter(cls, side: Side, quantity: float, leverage: float) -> "TradeDecision":
        return cls(side=side, quantity=quantity, leverage=leverage)

    @property
    def is_none(self) -> bool:
        return self.side is None


NO_ACTION = TradeDecision()


@dataclass(slots=True)
class ExposureSummary:
    """Per-side open quantity and P&L for one cycle."""

    short_quantity: float = 0.0
    long_quantity: float = 0.0
    short_pl: float = 0.0
    long_pl: float = 0.0
    profitable_shorts: float = 0.0
    profitable_longs: float = 0.0
    closed_ids: list[str] = field(default_factory=list)


@dataclass(slots=True)
class CycleResult:
    """Outcome of one decision cycle."""

    status: str
    decision: TradeDecision = NO_ACTION
    orders: list[dict[str, object]] = field(default_factory=list)
    closes: list[dict[str, object]] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    elapsed_ms: float = 0.0
