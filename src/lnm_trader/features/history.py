"""Rolling RSI history and its moving average."""

from __future__ import annotations

import math
from collections import deque
from collections.abc import Iterator
from numbers import Real
from statistics import fmean

from lnm_trader.errors import InvalidSampleError


class IndicatorHistory:
    """Fixed-capacity FIFO of oscillator samples, oldest evicted first."""

    def __init__(self, capacity: int = 16, period: int = 15) -> None:
        if capacity <= 0:
            raise ValueError("capacity_must_be_positive")
        if period <= 0:
            raise ValueError("period_must_be_positive")
        self._capacity = capacity
        self._period = period
        self._samples: deque[object] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def period(self) -> int:
        return self._period

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[object]:
        return iter(self._samples)

    def add_sample(self, value: object) -> None:
        """Append one reading. Validation happens when averaging."""
        self._samples.append(value)

    def is_ready(self, period: int | None = None) -> bool:
        return len(self._samples) >= (period or self._period)

    def moving_average(self, period: int | None = None) -> float | None:
        """Mean of the most recent ``period`` samples, or None while warming up.

        Raises:
            InvalidSampleError: a sample in the window is not a finite number.
        """
        window = period or self._period
        if len(self._samples) < window:
            return None
        recent = list(self._samples)[-window:]
        for sample in recent:
            if not _is_number(sample):
                raise InvalidSampleError(f"non_numeric_sample: {sample!r}")
        return fmean(float(sample) for sample in recent)  # type: ignore[arg-type]


def _is_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return math.isfinite(float(value))
