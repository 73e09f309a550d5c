"""Structured logging setup.

Uses structlog on top of the stdlib root logger, rendering either JSON or a
colored console line. Trading events carry a ``category`` field (info, warn,
error, finance, finance-profit) so alerts can be filtered downstream.
"""

import logging
import sys
from typing import Any, Literal

import structlog
from structlog.types import Processor

from lnm_trader.config import LogFormat, Settings, get_settings

Category = Literal["info", "warn", "error", "finance", "finance-profit"]


def setup_logging(settings: Settings | None = None) -> None:
    """Configure structlog from settings (log level and output format)."""
    settings = settings or get_settings()

    log_level = getattr(logging, settings.log_level)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.log_format == LogFormat.JSON:
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structured logger.

    Args:
        name: Logger name. Defaults to the calling module when None.

    Returns:
        A bound structlog logger.
    """
    return structlog.get_logger(name)


def log_finance(
    logger: structlog.stdlib.BoundLogger,
    event: str,
    *,
    profit: bool = False,
    **kwargs: Any,
) -> None:
    """Log a market or account figure under the finance categories."""
    category: Category = "finance-profit" if profit else "finance"
    logger.info(event, category=category, **kwargs)


def log_trade_signal(
    logger: structlog.stdlib.BoundLogger,
    *,
    side: str,
    rsi: float,
    threshold: float,
    price: float,
    price_threshold: float,
    **kwargs: Any,
) -> None:
    """Log an entry condition being met."""
    logger.warning(
        "trade_signal",
        category="warn",
        side=side,
        rsi=rsi,
        rsi_threshold=threshold,
        price=price,
        price_threshold=price_threshold,
        **kwargs,
    )


def log_order_execution(
    logger: structlog.stdlib.BoundLogger,
    *,
    side: str,
    quantity: float,
    leverage: float,
    price: float | None = None,
    status: str = "submitted",
    **kwargs: Any,
) -> None:
    """Log an order submission."""
    logger.info(
        "order_execution",
        category="finance",
        side=side,
        quantity=quantity,
        leverage=leverage,
        price=price,
        status=status,
        **kwargs,
    )


def log_position_close(
    logger: structlog.stdlib.BoundLogger,
    *,
    position_id: str,
    side: str,
    pl: float,
    reason: Literal["take_profit", "stop_loss"],
    **kwargs: Any,
) -> None:
    """Log a position being closed; profits and losses get different categories."""
    if reason == "take_profit":
        logger.info(
            "closing_position",
            category="finance-profit",
            position_id=position_id,
            side=side,
            pl=pl,
            reason=reason,
            **kwargs,
        )
    else:
        logger.error(
            "closing_position_at_loss",
            category="error",
            position_id=position_id,
            side=side,
            pl=pl,
            reason=reason,
            **kwargs,
        )


def log_risk_event(
    logger: structlog.stdlib.BoundLogger,
    *,
    event_type: str,
    action: str,
    **kwargs: Any,
) -> None:
    """Log a risk guard decision."""
    logger.warning(
        "risk_event",
        category="warn",
        event_type=event_type,
        action=action,
        **kwargs,
    )
