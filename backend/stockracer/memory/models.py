"""Memory records kept per agent: outcomes, observations, beliefs, reflections."""

from __future__ import annotations

from datetime import date, datetime, timezone

from pydantic import BaseModel, Field

STOCK_SENTIMENT = "stock_sentiment"
GENERAL_SYMBOL = "_general"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TradeOutcome(BaseModel):
    """What happened when a position was closed, and the lesson drawn."""

    id: int
    agent_key: str
    symbol: str
    action: str
    entry_price: float | None = None
    exit_price: float | None = None
    pnl: float | None = None
    pnl_percent: float | None = None
    hold_duration_hours: float | None = None
    market_condition: str | None = None
    reason: str | None = None
    lesson: str | None = None
    created_at: datetime = Field(default_factory=_utc_now)


class Observation(BaseModel):
    """Free-text note an agent made about a symbol."""

    id: int
    agent_key: str
    symbol: str | None = None
    observation: str
    confidence: float = Field(default=0.5, ge=0, le=1)
    validated: bool = False
    created_at: datetime = Field(default_factory=_utc_now)


class Belief(BaseModel):
    """Scalar belief, unique per (agent, belief_type, symbol)."""

    agent_key: str
    belief_type: str
    symbol: str = GENERAL_SYMBOL
    value: float = Field(ge=-1, le=1)
    note: str | None = None
    updated_at: datetime = Field(default_factory=_utc_now)


class Reflection(BaseModel):
    """End-of-day reflection, one per agent per calendar date."""

    agent_key: str
    date: date
    portfolio_value: float | None = None
    trades_made: int = 0
    reflection: str | None = None
    mood: str | None = None
    strategy_adjustment: str | None = None
    created_at: datetime = Field(default_factory=_utc_now)


class WinRate(BaseModel):
    total: int = 0
    wins: int = 0
    losses: int = 0
    avg_return: float | None = None
    avg_win: float | None = None
    avg_loss: float | None = None
    win_rate: float = 0.0


class SymbolStats(BaseModel):
    """Aggregated outcomes for one symbol."""

    symbol: str
    trades: int
    avg_return: float
    total_pnl: float
    wins: int
    losses: int


class MemorySummary(BaseModel):
    """Composite view used by strategies, reporting and the graveyard."""

    win_rate: WinRate
    best_symbols: list[SymbolStats] = Field(default_factory=list)
    worst_symbols: list[SymbolStats] = Field(default_factory=list)
    recent_trades: list[TradeOutcome] = Field(default_factory=list)
    beliefs: list[Belief] = Field(default_factory=list)
    reflections: list[Reflection] = Field(default_factory=list)
