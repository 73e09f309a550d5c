"""Exception taxonomy shared across the trader."""

from __future__ import annotations

from typing import Any


class TraderError(Exception):
    """Base trader error."""


class ConfigurationError(TraderError):
    """Raised at startup when required credentials are missing."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing required environment variables: {', '.join(self.missing)}")


class CooldownActive(TraderError):
    """Raised when an action is attempted before its cooldown elapsed."""

    def __init__(self, label: str, remaining_sec: float) -> None:
        self.label = label
        self.remaining_sec = remaining_sec
        super().__init__(f"{label} call is on cooldown ({remaining_sec:.1f}s left)")


class UpstreamFetchError(TraderError):
    """Raised when a read from an upstream service fails."""


class TradeSubmissionError(TraderError):
    """Raised when the venue rejects or fails a write (order, close)."""

    def __init__(self, message: str, *, status_code: int | None = None, payload: Any = None) -> None:
        self.status_code = status_code
        self.payload = payload
        super().__init__(message)


class FeedConnectionError(TraderError):
    """Raised when the live data connection cannot be opened or drops."""


class MalformedPayload(TraderError):
    """Raised when a streamed message lacks the expected fields."""

    def __init__(self, channel: str, detail: str) -> None:
        self.channel = channel
        self.detail = detail
        super().__init__(f"{channel}: {detail}")


class InvalidSampleError(ValueError):
    """Raised when a non-numeric sample is found while averaging."""
