"""Market snapshot models: quotes, technical analyses and top movers."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class Trend(StrEnum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


def _last(values: list[Any] | None) -> Any:
    if not values:
        return None
    return values[-1]


class Quote(BaseModel):
    """Latest price for one symbol."""

    symbol: str
    price: float
    previous_close: float | None = None
    change: float = 0.0
    change_percent: float = 0.0
    volume: float = 0
    high: float | None = None
    low: float | None = None
    open: float | None = None
    fifty_two_week_high: float | None = None
    fifty_two_week_low: float | None = None
    name: str = ""
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_chart(cls, symbol: str, result: dict[str, Any]) -> Quote:
        """Build from one entry of a Yahoo chart response's ``result`` list."""
        meta = result.get("meta") or {}
        indicators = ((result.get("indicators") or {}).get("quote") or [{}])[0] or {}

        price = meta.get("regularMarketPrice")
        if price is None:
            raise ValueError(f"No price in chart response for {symbol}")
        previous_close = meta.get("previousClose") or meta.get("chartPreviousClose")
        change = price - previous_close if previous_close else 0.0
        change_percent = change / previous_close * 100 if previous_close else 0.0

        return cls(
            symbol=meta.get("symbol") or symbol,
            price=price,
            previous_close=previous_close,
            change=change,
            change_percent=change_percent,
            volume=_last(indicators.get("volume")) or 0,
            high=_last(indicators.get("high")) or price,
            low=_last(indicators.get("low")) or price,
            open=_last(indicators.get("open")) or price,
            fifty_two_week_high=meta.get("fiftyTwoWeekHigh"),
            fifty_two_week_low=meta.get("fiftyTwoWeekLow"),
            name=meta.get("shortName") or meta.get("longName") or symbol,
        )


class Analysis(BaseModel):
    """Technical summary derived from roughly a month of daily bars."""

    symbol: str
    price: float
    daily_change: float
    week_change: float
    month_change: float
    volatility: float
    trend: Trend
    rsi: float
    signal: float
    support: float
    resistance: float
    above_week_avg: bool
    above_month_avg: bool
    week_avg: float
    month_avg: float


class TopMovers(BaseModel):
    gainers: list[Quote] = Field(default_factory=list)
    losers: list[Quote] = Field(default_factory=list)
