"""Scalping: small entries on shallow dips, out at +/-1.5%."""

from __future__ import annotations

from stockracer.market import Analysis, Trend

from .base import BuyIntent, Scored, Strategy, StrategyContext, rank, size_shares
from .kinds import StrategyKind

EXIT_BAND = 1.5
BUY_THRESHOLD = 15
POSITION_SIZE = 0.3


def score(analysis: Analysis, sentiment: float) -> float:
    a = analysis
    total = 25 if -2 < a.daily_change < 0 else 0
    total += 20 if 35 < a.rsi < 50 else 0
    total += 15 if a.trend != Trend.BEARISH else -15
    total += 15 if a.volatility < 2 else -20 if a.volatility > 4 else 0
    total += sentiment * 20 if sentiment > 0 else sentiment * 10
    return total


class ScalpStrategy(Strategy):
    kind = StrategyKind.SCALP

    def sell_reason(self, ctx, pnl_percent, analysis):
        if pnl_percent > EXIT_BAND:
            return "Quick profit"
        if pnl_percent < -EXIT_BAND:
            return "Quick stop-loss"
        return None

    def pick_buy(self, ctx: StrategyContext, cash: float) -> BuyIntent | None:
        symbols = ctx.tradeable(ctx.quoted_and_analysed(ctx.universe))
        ranked = rank(
            [Scored(s, score(ctx.analyses[s], ctx.sentiment(s)), ctx.analyses[s]) for s in symbols]
        )
        if not ranked or ranked[0].score <= BUY_THRESHOLD:
            return None

        pick = ranked[0]
        a = pick.analysis
        price = ctx.price_of(pick.symbol)
        win_rate = ctx.memory.win_rate(ctx.agent.key).win_rate
        return BuyIntent(
            symbol=pick.symbol,
            shares=size_shares(cash, POSITION_SIZE, price),
            price=price,
            score=pick.score,
            observation=(
                f"Scalp entry @ ${price:.2f} | RSI:{a.rsi:.0f} "
                f"vol:{a.volatility:.1f}% WinRate:{win_rate:.0f}%"
            ),
            confidence=0.5,
        )
