"""Momentum: chase whatever is running, cut losers fast."""

from __future__ import annotations

from stockracer.market import Analysis, Trend

from .base import BuyIntent, Scored, Strategy, StrategyContext, is_bearish, rank, size_shares
from .kinds import StrategyKind

STOP_LOSS = -3.0
BUY_THRESHOLD = 20
POSITION_SIZE = 0.4


def score(analysis: Analysis) -> float:
    a = analysis
    total = a.daily_change * 10 if a.daily_change > 0 else 0
    total += a.week_change * 3 if a.week_change > 0 else 0
    total += 20 if a.trend == Trend.BULLISH else -10
    total += 15 if 50 < a.rsi < 75 else -5
    return total


class MomentumStrategy(Strategy):
    kind = StrategyKind.MOMENTUM

    def sell_reason(self, ctx, pnl_percent, analysis):
        reason = None
        if pnl_percent < STOP_LOSS:
            reason = "Momentum loss cut"
        if is_bearish(analysis) and pnl_percent < 0:
            reason = "Trend reversal"
        return reason

    def pick_buy(self, ctx: StrategyContext, cash: float) -> BuyIntent | None:
        symbols = ctx.tradeable(list(ctx.analyses))
        ranked = rank([Scored(s, score(ctx.analyses[s]), ctx.analyses[s]) for s in symbols])
        if not ranked or ranked[0].score <= BUY_THRESHOLD:
            return None

        pick = ranked[0]
        a = pick.analysis
        price = ctx.price_of(pick.symbol)
        return BuyIntent(
            symbol=pick.symbol,
            shares=size_shares(cash, POSITION_SIZE, price),
            price=price,
            score=pick.score,
            observation=(
                f"Chasing momentum @ ${price:.2f} | daily:{a.daily_change:+.1f}% "
                f"week:{a.week_change:+.1f}%"
            ),
            confidence=0.6,
        )
