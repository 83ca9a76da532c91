"""Diamond hands: buy every dip in blue chips, almost never sell."""

from __future__ import annotations

from stockracer.market import Analysis, Trend

from .base import BuyIntent, Scored, Strategy, StrategyContext, rank, size_shares
from .kinds import StrategyKind

CAPITULATION = -15.0
DIP_SIZE = 0.4
STEADY_SIZE = 0.3
STEADY_MAX_VOLATILITY = 2.5
# Idle cash above this share of starting value triggers a steady buy
IDLE_CASH_RATIO = 0.5


def dip_score(analysis: Analysis) -> float:
    a = analysis
    total = abs(a.daily_change) * 10
    total += 30 if a.rsi < 35 else 15 if a.rsi < 45 else 0
    total += 15 if a.trend == Trend.BEARISH else 0
    return total


class HodlStrategy(Strategy):
    kind = StrategyKind.HODL

    def sell_reason(self, ctx, pnl_percent, analysis):
        if pnl_percent < CAPITULATION:
            return "Even diamond hands have limits"
        return None

    def pick_buy(self, ctx: StrategyContext, cash: float) -> BuyIntent | None:
        symbols = ctx.tradeable(ctx.quoted_and_analysed(ctx.agent.preferred_symbols))
        dips = rank(
            [
                Scored(s, dip_score(ctx.analyses[s]), ctx.analyses[s])
                for s in symbols
                if ctx.analyses[s].daily_change < 0 or ctx.analyses[s].week_change < 0
            ]
        )

        if dips:
            pick = dips[0]
            price = ctx.price_of(pick.symbol)
            a = pick.analysis
            return BuyIntent(
                symbol=pick.symbol,
                shares=size_shares(cash, DIP_SIZE, price),
                price=price,
                score=pick.score,
                observation=(
                    f"Buying the dip @ ${price:.2f} | daily:{a.daily_change:.1f}% "
                    f"RSI:{a.rsi:.0f}"
                ),
                confidence=0.5,
            )

        if cash <= ctx.portfolio.starting_value * IDLE_CASH_RATIO:
            return None

        safe = sorted(
            (s for s in symbols if ctx.analyses[s].volatility < STEADY_MAX_VOLATILITY),
            key=lambda s: ctx.analyses[s].rsi,
        )
        if not safe:
            return None

        symbol = safe[0]
        price = ctx.price_of(symbol)
        return BuyIntent(
            symbol=symbol,
            shares=size_shares(cash, STEADY_SIZE, price),
            price=price,
            score=0.0,
            observation=f"Steady buy @ ${price:.2f} | RSI:{ctx.analyses[symbol].rsi:.0f}",
            confidence=0.5,
        )
