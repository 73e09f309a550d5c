"""Venue payload schemas and strict parsing helpers."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from lnm_trader.errors import MalformedPayload
from lnm_trader.types import Side, TickDirection


class Position(BaseModel):
    """Snapshot of one running futures position."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: str
    side: Side
    quantity: float
    pl: float = 0.0
    opening_fee: float = 0.0
    entry_price: float = Field(alias="price")
    leverage: float | None = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return str(v)


class LastPriceEvent(BaseModel):
    """Payload of the ``last-price`` channel."""

    model_config = ConfigDict(extra="ignore")

    last_price: float = Field(alias="lastPrice")
    last_tick_direction: TickDirection = Field(
        default=TickDirection.UNKNOWN,
        alias="lastTickDirection",
    )

    @field_validator("last_tick_direction", mode="before")
    @classmethod
    def parse_direction(cls, v: Any) -> TickDirection:
        return TickDirection.parse(v)


class IndexEvent(BaseModel):
    """Payload of the ``index`` channel."""

    model_config = ConfigDict(extra="ignore")

    index: float


def parse_positions(payload: Any) -> list[Position]:
    """Parse a positions list; any invalid entry fails the whole snapshot."""
    if not isinstance(payload, list):
        raise ValueError("positions_payload_not_list")
    return [Position.model_validate(item) for item in payload]


def parse_event(model: type[BaseModel], channel: str, data: Any) -> Any:
    """Validate one streamed payload, mapping violations to MalformedPayload."""
    if not isinstance(data, dict):
        raise MalformedPayload(channel, "data_not_object")
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise MalformedPayload(channel, f"{location}: {first['msg']}") from exc
