"""Time source used by every cooldown and delay."""

from __future__ import annotations

import asyncio
import time
from typing import Protocol


class Clock(Protocol):
    def monotonic(self) -> float: ...

    async def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Monotonic wall time backed by the running event loop."""

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


def elapsed_since(clock: Clock, instant: float | None) -> float:
    """Seconds since ``instant``; infinite when it was never set."""
    if instant is None:
        return float("inf")
    return clock.monotonic() - instant
