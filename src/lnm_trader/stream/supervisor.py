"""Live feed lifecycle: connect, subscribe, forward ticks, reconnect with backoff."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager
from enum import Enum
from typing import Protocol

from lnm_trader.config import Settings
from lnm_trader.errors import FeedConnectionError, MalformedPayload
from lnm_trader.stream.lnmarkets_ws import decode_message
from lnm_trader.types import Tick
from lnm_trader.utils.clock import Clock
from lnm_trader.utils.logging import get_logger


class FeedState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    CLOSED = "closed"
    ERRORED = "errored"
    RECONNECTING = "reconnecting"
    STOPPED = "stopped"


class FeedTransport(Protocol):
    def connect(self) -> AbstractAsyncContextManager[AsyncIterator[str | bytes]]: ...


def backoff_delay_ms(retry_count: int, base_ms: int = 1000, max_ms: int = 30000) -> int:
    """Exponential reconnect delay: base * 2**retry, capped."""
    return min(base_ms * 2**retry_count, max_ms)


class ConnectionSupervisor:
    """Drives the feed state machine and puts decoded ticks on a queue.

    The retry counter resets each time a subscription is established. Once
    ``max_reconnect_retries`` reconnects have been spent without one, the
    supervisor stops for good.
    """

    def __init__(self, transport: FeedTransport, clock: Clock, settings: Settings) -> None:
        self._transport = transport
        self._clock = clock
        self._settings = settings
        self._logger = get_logger("lnm_trader.stream.supervisor")
        self._state = FeedState.DISCONNECTED
        self._retry_count = 0
        self._stop_requested = False
        self.transitions: list[FeedState] = [FeedState.DISCONNECTED]

    @property
    def state(self) -> FeedState:
        return self._state

    @property
    def retry_count(self) -> int:
        return self._retry_count

    def stop(self) -> None:
        """Ask the supervisor not to reconnect after the current session."""
        self._stop_requested = True

    async def run(self, queue: asyncio.Queue[Tick | None]) -> None:
        """Run until retries are exhausted or stop() was called."""
        while True:
            self._set_state(FeedState.CONNECTING)
            try:
                async with self._transport.connect() as messages:
                    self._set_state(FeedState.SUBSCRIBED)
                    self._retry_count = 0
                    async for raw in messages:
                        self._forward(raw, queue)
                        if self._stop_requested:
                            break
                self._set_state(FeedState.CLOSED)
                self._logger.info("websocket_closed", category="info")
            except FeedConnectionError as exc:
                self._set_state(FeedState.ERRORED)
                self._logger.error("websocket_error", category="error", error=str(exc))
            except Exception as exc:  # noqa: BLE001 - any feed failure goes through backoff.
                self._set_state(FeedState.ERRORED)
                self._logger.exception("websocket_setup_failed", category="error", error=str(exc))

            if self._stop_requested:
                self._set_state(FeedState.STOPPED)
                return
            if self._retry_count >= self._settings.max_reconnect_retries:
                self._logger.error(
                    "max_reconnect_retries_reached",
                    category="error",
                    retries=self._retry_count,
                )
                self._set_state(FeedState.STOPPED)
                return

            delay_ms = backoff_delay_ms(
                self._retry_count,
                self._settings.reconnect_base_ms,
                self._settings.reconnect_max_ms,
            )
            self._set_state(FeedState.RECONNECTING)
            self._logger.info(
                "websocket_reconnecting",
                category="info",
                retry=self._retry_count + 1,
                delay_ms=delay_ms,
            )
            self._retry_count += 1
            await self._clock.sleep(delay_ms / 1000)

    def _forward(self, raw: str | bytes, queue: asyncio.Queue[Tick | None]) -> None:
        try:
            tick = decode_message(raw)
        except MalformedPayload as exc:
            self._logger.error(
                "malformed_payload_dropped",
                category="error",
                channel=exc.channel,
                detail=exc.detail,
            )
            return
        if tick is not None:
            queue.put_nowait(tick)

    def _set_state(self, state: FeedState) -> None:
        self._state = state
        self.transitions.append(state)
