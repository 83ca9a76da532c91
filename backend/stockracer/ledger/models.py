"""Pydantic models for portfolios, positions and the trade log."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TradeSide(StrEnum):
    BUY = "BUY"
    SELL = "SELL"


class Position(BaseModel):
    """Open holding in one symbol."""

    shares: float = Field(gt=0)
    avg_cost: float = Field(gt=0)
    opened_at: datetime = Field(default_factory=utc_now)


class Snapshot(BaseModel):
    """Point-in-time portfolio valuation."""

    timestamp: datetime = Field(default_factory=utc_now)
    value: float


class Portfolio(BaseModel):
    """Cash, positions and value history for one agent."""

    cash: float = Field(ge=0)
    positions: dict[str, Position] = Field(default_factory=dict)
    starting_value: float
    history: list[Snapshot] = Field(default_factory=list)


class Trade(BaseModel):
    """Immutable trade log entry."""

    model_config = {"frozen": True}

    id: str
    agent_key: str
    side: TradeSide
    symbol: str
    shares: float = Field(gt=0)
    price: float = Field(gt=0)
    total: float
    pnl: float | None = None  # SELL only
    timestamp: datetime = Field(default_factory=utc_now)


class Performance(BaseModel):
    """Returns derived from the value history."""

    start_value: float
    current_value: float
    total_return: float
    total_return_percent: float
    period_returns: list[float] = Field(default_factory=list)
    trades_count: int = 0
