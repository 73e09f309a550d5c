"""Per-side exposure and take-profit / stop-loss closes."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Literal, Protocol

from lnm_trader.config import Settings
from lnm_trader.exchange.schemas import Position
from lnm_trader.notify.telegram import Notifier
from lnm_trader.types import ExposureSummary, Side
from lnm_trader.utils.clock import Clock
from lnm_trader.utils.logging import get_logger, log_finance, log_position_close

CloseReason = Literal["take_profit", "stop_loss"]


class PositionVenue(Protocol):
    async def list_open_positions(self) -> list[Position]: ...

    async def close_position(self, position_id: str) -> dict[str, Any]: ...


def summarize_positions(positions: Iterable[Position]) -> ExposureSummary:
    """Sum quantity and pl per side."""
    summary = ExposureSummary()
    for position in positions:
        if position.side is Side.SHORT:
            summary.short_quantity += position.quantity
            summary.short_pl += position.pl
        else:
            summary.long_quantity += position.quantity
            summary.long_pl += position.pl
    return summary


def exceeds_cap(summary: ExposureSummary, cap: float) -> bool:
    """True when either side is at or above ``cap``."""
    return summary.short_quantity >= cap or summary.long_quantity >= cap


class ExposureTracker:
    """Rule-based exits evaluated per position, plus the global exposure brake."""

    def __init__(
        self,
        venue: PositionVenue,
        notifier: Notifier,
        clock: Clock,
        settings: Settings,
    ) -> None:
        self._venue = venue
        self._notifier = notifier
        self._clock = clock
        self._settings = settings
        self._logger = get_logger("lnm_trader.risk.exposure")

    def classify(self, position: Position) -> CloseReason | None:
        """Thresholds are strict: pl equal to a threshold keeps the position open."""
        if position.pl > self._settings.take_profit_pl:
            return "take_profit"
        if position.pl < self._settings.stop_loss_pl:
            return "stop_loss"
        return None

    async def refresh(self) -> tuple[ExposureSummary, list[dict[str, object]]]:
        """Read positions, close those past a threshold, and return fresh exposure.

        Raises:
            UpstreamFetchError: the position snapshot could not be read.
        """
        positions = await self._venue.list_open_positions()
        summary = summarize_positions(positions)
        closes: list[dict[str, object]] = []

        for position in positions:
            reason = self.classify(position)
            if reason is None:
                continue
            closes.append(await self._close(position, reason, summary))

        if closes:
            await self._clock.sleep(self._settings.settle_delay_sec)
            fresh = summarize_positions(await self._venue.list_open_positions())
            fresh.profitable_shorts = summary.profitable_shorts
            fresh.profitable_longs = summary.profitable_longs
            fresh.closed_ids = summary.closed_ids
            summary = fresh

        log_finance(
            self._logger,
            "exposure_summary",
            profitable_sells=summary.profitable_shorts,
            short_exposure=summary.short_quantity,
            short_pl=summary.short_pl,
            profitable_buys=summary.profitable_longs,
            long_exposure=summary.long_quantity,
            long_pl=summary.long_pl,
        )
        return summary, closes

    async def _close(
        self,
        position: Position,
        reason: CloseReason,
        summary: ExposureSummary,
    ) -> dict[str, object]:
        side = position.side.label
        log_position_close(
            self._logger,
            position_id=position.id,
            side=side,
            pl=position.pl,
            reason=reason,
            quantity=position.quantity,
            entry_price=position.entry_price,
            opening_fee=position.opening_fee,
        )
        record: dict[str, object] = {
            "action": "close",
            "position_id": position.id,
            "side": side,
            "pl": position.pl,
            "reason": reason,
        }
        try:
            await self._venue.close_position(position.id)
        except Exception as exc:  # noqa: BLE001 - other positions are still evaluated.
            self._logger.error(
                "close_position_failed",
                category="error",
                position_id=position.id,
                error=str(exc),
            )
            record["status"] = "failed"
            record["error"] = str(exc)
            return record

        record["status"] = "closed"
        summary.closed_ids.append(position.id)
        if reason == "take_profit":
            if position.side is Side.SHORT:
                summary.profitable_shorts += position.quantity
            else:
                summary.profitable_longs += position.quantity
            text = f"Closed profitable {side} on LNM"
        else:
            text = f"Closed {side} at a loss on LNM"
        await self._notifier.send(
            f"{text}: fee {position.opening_fee}, price {position.entry_price}, pl {position.pl}"
        )
        return record
