"""Technical analysis over daily bars.

Pure functions, no I/O. The client feeds them the close/high/low series of a
one-month daily chart.
"""

from __future__ import annotations

import math
from statistics import fmean

from .models import Analysis, Trend

MIN_CLOSES = 5
WEEK_BARS = 5
RSI_PERIOD = 14
LEVEL_BARS = 10

# Signal contributions
TREND_SIGNAL = 20
RSI_OVERSOLD = 30
RSI_OVERBOUGHT = 70
RSI_SIGNAL = 30


def _clean(values: list[float | None] | None) -> list[float]:
    return [v for v in values or [] if v is not None]


def compute_rsi(returns: list[float], period: int = RSI_PERIOD) -> float:
    """RSI over the last ``period`` returns, averaging over the full period."""
    window = returns[-period:]
    avg_gain = sum(r for r in window if r > 0) / period
    avg_loss = sum(-r for r in window if r < 0) / period
    rs = avg_gain / avg_loss if avg_loss > 0 else 100
    return 100 - 100 / (1 + rs)


def compute_signal(
    trend: Trend, rsi: float, daily_change: float, week_change: float
) -> float:
    """Combined buy (+) / sell (-) score from trend, RSI and recent moves."""
    signal = 0.0
    if trend == Trend.BULLISH:
        signal += TREND_SIGNAL
    if trend == Trend.BEARISH:
        signal -= TREND_SIGNAL
    if rsi < RSI_OVERSOLD:
        signal += RSI_SIGNAL
    if rsi > RSI_OVERBOUGHT:
        signal -= RSI_SIGNAL
    if daily_change < -2:
        signal += 15
    if daily_change > 3:
        signal -= 10
    if week_change > 5:
        signal -= 10
    if week_change < -5:
        signal += 15
    return signal


def analyze_bars(
    symbol: str,
    closes: list[float | None],
    highs: list[float | None] | None = None,
    lows: list[float | None] | None = None,
) -> Analysis | None:
    """Analyze a daily series.

    Returns None when fewer than five closes exist or any close is not positive.
    """
    closes = _clean(closes)
    if len(closes) < MIN_CLOSES or min(closes) <= 0:
        return None

    current = closes[-1]
    prev = closes[-2]
    week = closes[-WEEK_BARS:]

    week_avg = fmean(week)
    month_avg = fmean(closes)
    daily_change = (current - prev) / prev * 100
    week_change = (current - week[0]) / week[0] * 100
    month_change = (current - closes[0]) / closes[0] * 100

    returns = [(b - a) / a for a, b in zip(closes, closes[1:])]
    mean_return = fmean(returns)
    volatility = math.sqrt(fmean([(r - mean_return) ** 2 for r in returns])) * 100

    above_week_avg = current > week_avg
    above_month_avg = current > month_avg
    if above_week_avg and above_month_avg:
        trend = Trend.BULLISH
    elif not above_week_avg and not above_month_avg:
        trend = Trend.BEARISH
    else:
        trend = Trend.NEUTRAL

    rsi = compute_rsi(returns)

    recent_highs = _clean(highs)[-LEVEL_BARS:]
    recent_lows = _clean(lows)[-LEVEL_BARS:]
    resistance = max(recent_highs) if recent_highs else current * 1.05
    support = min(recent_lows) if recent_lows else current * 0.95

    return Analysis(
        symbol=symbol,
        price=current,
        daily_change=daily_change,
        week_change=week_change,
        month_change=month_change,
        volatility=volatility,
        trend=trend,
        rsi=rsi,
        signal=compute_signal(trend, rsi, daily_change, week_change),
        support=support,
        resistance=resistance,
        above_week_avg=above_week_avg,
        above_month_avg=above_month_avg,
        week_avg=week_avg,
        month_avg=month_avg,
    )
