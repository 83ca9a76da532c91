"""Technical trading: signal, RSI and support/resistance, no emotions."""

from __future__ import annotations

from stockracer.market import Analysis, Trend

from .base import BuyIntent, Scored, Strategy, StrategyContext, rank, size_shares
from .kinds import StrategyKind

OVERBOUGHT_RSI = 70
STRONG_SELL_SIGNAL = -30
STOP_LOSS = -5.0
BUY_THRESHOLD = 25
POSITION_SIZE = 0.25


def score(analysis: Analysis) -> float:
    a = analysis
    total = a.signal
    total += 30 if a.rsi < 30 else 15 if a.rsi < 40 else -30 if a.rsi > 70 else 0
    total += 25 if a.price <= a.support * 1.02 else 0
    total += -25 if a.price >= a.resistance * 0.98 else 0
    total += 15 if a.trend == Trend.BULLISH and a.rsi < 60 else 0
    total += 10 if a.above_week_avg and a.above_month_avg else -5
    return total


class TechnicalStrategy(Strategy):
    kind = StrategyKind.TECHNICAL

    def sell_reason(self, ctx, pnl_percent, analysis):
        reason = None
        if analysis is not None and analysis.rsi > OVERBOUGHT_RSI and pnl_percent > 0:
            reason = "RSI overbought signal"
        if analysis is not None and analysis.signal < STRONG_SELL_SIGNAL:
            reason = "Strong sell signal"
        if pnl_percent < STOP_LOSS:
            reason = "Technical stop-loss"
        return reason

    def pick_buy(self, ctx: StrategyContext, cash: float) -> BuyIntent | None:
        symbols = ctx.tradeable([s for s in ctx.universe if s in ctx.analyses])
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
                f"Signal:{a.signal:.0f} RSI:{a.rsi:.0f} Trend:{a.trend} "
                f"Support:${a.support:.2f} Resistance:${a.resistance:.2f} SCORE:{pick.score:.0f}"
            ),
            confidence=min(0.9, pick.score / 80),
        )
