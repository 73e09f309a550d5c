"""Market order execution for evaluated decisions."""

from __future__ import annotations

from typing import Any, Protocol

from lnm_trader.config import Settings
from lnm_trader.errors import TradeSubmissionError
from lnm_trader.notify.telegram import Notifier
from lnm_trader.types import CooldownState, Side, TradeDecision
from lnm_trader.utils.clock import Clock, elapsed_since
from lnm_trader.utils.logging import get_logger, log_order_execution

_NOTIFY_VERB = {Side.SHORT: "Shorted", Side.LONG: "Longed"}


class OrderVenue(Protocol):
    async def submit_market_order(self, side: Side, leverage: float, quantity: float) -> dict[str, Any]: ...


class TradeDispatcher:
    """Submits one market order per decision and stamps the trade cooldown."""

    def __init__(
        self,
        venue: OrderVenue,
        notifier: Notifier,
        clock: Clock,
        settings: Settings,
        *,
        dry_run: bool = False,
    ) -> None:
        self._venue = venue
        self._notifier = notifier
        self._clock = clock
        self._settings = settings
        self._dry_run = dry_run
        self._logger = get_logger("lnm_trader.exec.dispatcher")

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    def can_make_trade(self, cooldowns: CooldownState) -> bool:
        """At least ``trade_cooldown_sec`` must separate two trade attempts."""
        return elapsed_since(self._clock, cooldowns.last_trade_at) > self._settings.trade_cooldown_sec

    async def execute(
        self,
        decision: TradeDecision,
        price: float,
        cooldowns: CooldownState,
    ) -> dict[str, object]:
        """Submit the order for ``decision``.

        The trade timestamp is stamped whether or not the venue accepted the
        order. Submission failures are logged and reported in the returned
        record with ``status="failed"``.
        """
        if decision.side is None:
            raise ValueError("decision_has_no_side")

        side = decision.side
        order: dict[str, object] = {
            "action": "open",
            "side": side.label,
            "type": "market",
            "quantity": decision.quantity,
            "leverage": decision.leverage,
            "price": price,
        }
        try:
            if self._dry_run:
                order["status"] = "dry_run"
            else:
                response = await self._venue.submit_market_order(side, decision.leverage, decision.quantity)
                order["status"] = "submitted"
                order["position_id"] = response.get("id")
        except TradeSubmissionError as exc:
            self._logger.error(
                "trade_execution_failed",
                category="error",
                error=str(exc),
                error_type=type(exc).__name__,
                status_code=exc.status_code,
                details=exc.payload,
                exc_info=True,
            )
            order["status"] = "failed"
            order["error"] = str(exc)
        finally:
            cooldowns.last_trade_at = self._clock.monotonic()

        log_order_execution(
            self._logger,
            side=side.label,
            quantity=decision.quantity,
            leverage=decision.leverage,
            price=price,
            status=str(order["status"]),
        )
        if order["status"] != "failed":
            suffix = " (dry run)" if self._dry_run else ""
            await self._notifier.send(f"{_NOTIFY_VERB[side]} on LNM at {price}{suffix}")
        return order
