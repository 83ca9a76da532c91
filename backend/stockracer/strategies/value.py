"""Value investing: patient dip-buying in steady names, no repeat mistakes."""

from __future__ import annotations

from stockracer.market import Analysis, Trend

from .base import BuyIntent, Scored, Strategy, StrategyContext, rank, size_shares
from .kinds import StrategyKind

TAKE_PROFIT = 8.0
STOP_LOSS = -7.0
BUY_THRESHOLD = 10
POSITION_SIZE = 0.3
WORST_MEMORY = 5


def score(analysis: Analysis, sentiment: float) -> float:
    a = analysis
    total = 30 if a.rsi < 40 else 15 if a.rsi < 50 else -10
    total += {Trend.BEARISH: 20, Trend.NEUTRAL: 10}.get(a.trend, -5)
    total += 15 if a.volatility < 2 else 5 if a.volatility < 3 else -10
    total += a.signal * 0.3 if a.signal > 0 else 0
    total += sentiment * 15 if sentiment > 0 else sentiment * 10
    total += 20 if a.daily_change < -1 else 0
    return total


class ValueStrategy(Strategy):
    kind = StrategyKind.VALUE

    def sell_reason(self, ctx, pnl_percent, analysis):
        reason = None
        if pnl_percent > TAKE_PROFIT:
            reason = "Value target reached"
        if pnl_percent < STOP_LOSS:
            reason = "Value thesis broken"
        return reason

    def pick_buy(self, ctx: StrategyContext, cash: float) -> BuyIntent | None:
        worst = {s.symbol for s in ctx.memory.worst_symbols(ctx.agent.key, WORST_MEMORY)}
        symbols = [
            s for s in ctx.tradeable(ctx.quoted_and_analysed(ctx.agent.preferred_symbols))
            if s not in worst
        ]
        ranked = rank(
            [Scored(s, score(ctx.analyses[s], ctx.sentiment(s)), ctx.analyses[s]) for s in symbols]
        )
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
                f"Bought at ${price:.2f} | RSI:{a.rsi:.0f} trend:{a.trend} "
                f"signal:{a.signal:.0f} | Score:{pick.score:.0f}"
            ),
            confidence=min(0.9, pick.score / 100),
        )
