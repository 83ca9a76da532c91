"""Growth investing: innovation names in confirmed uptrends."""

from __future__ import annotations

from stockracer.market import Analysis, Trend

from .base import BuyIntent, Scored, Strategy, StrategyContext, rank, size_shares
from .kinds import StrategyKind

STOP_LOSS = -8.0
OVERBOUGHT_RSI = 80
BUY_THRESHOLD = 15
POSITION_SIZE = 0.25


def score(analysis: Analysis, sentiment: float) -> float:
    a = analysis
    total = {Trend.BULLISH: 30, Trend.NEUTRAL: 5}.get(a.trend, -20)
    total += 15 if a.above_week_avg else -10
    total += 15 if a.above_month_avg else -10
    total += a.week_change * 2 if a.week_change > 0 else a.week_change
    total += 15 if 40 < a.rsi < 65 else -5
    total += sentiment * 20 if sentiment > 0 else 0
    return total


class GrowthStrategy(Strategy):
    kind = StrategyKind.GROWTH

    def sell_reason(self, ctx, pnl_percent, analysis):
        reason = None
        if pnl_percent < STOP_LOSS:
            reason = "Growth story broken"
        if analysis is not None and analysis.rsi > OVERBOUGHT_RSI:
            reason = "Overbought - take profits"
        return reason

    def pick_buy(self, ctx: StrategyContext, cash: float) -> BuyIntent | None:
        symbols = ctx.tradeable(ctx.quoted_and_analysed(ctx.agent.preferred_symbols))
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
                f"Innovation buy @ ${price:.2f} | trend:{a.trend} "
                f"week:{a.week_change:.1f}% RSI:{a.rsi:.0f}"
            ),
            confidence=0.7,
        )
