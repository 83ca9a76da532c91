"""YOLO trading: chase volatility and big moves, with a chaos factor."""

from __future__ import annotations

from stockracer.market import Analysis

from .base import BuyIntent, Scored, Strategy, StrategyContext, rank, size_shares
from .kinds import StrategyKind

PANIC_LEVEL = -5.0
TENDIES_LEVEL = 10.0
CHAOS_WEIGHT = 30
MIN_SIZE = 0.3
SIZE_SPREAD = 0.5


def score(analysis: Analysis, chaos: float) -> float:
    a = analysis
    total = 30 if a.volatility > 3 else 15 if a.volatility > 2 else 0
    move = abs(a.daily_change)
    total += 25 if move > 3 else 10 if move > 1 else 0
    total += 20 if a.week_change > 5 else 15 if a.week_change < -5 else 0
    return total + chaos * CHAOS_WEIGHT


class MemeStrategy(Strategy):
    kind = StrategyKind.MEME

    def sell_reason(self, ctx, pnl_percent, analysis):
        reason = None
        if pnl_percent < PANIC_LEVEL and ctx.rng.random() > 0.5:
            reason = "Panic sell!"
        if pnl_percent > TENDIES_LEVEL:
            reason = "Taking tendies"
        return reason

    def pick_buy(self, ctx: StrategyContext, cash: float) -> BuyIntent | None:
        symbols = ctx.tradeable(ctx.quoted_and_analysed(ctx.agent.preferred_symbols))
        ranked = rank(
            [Scored(s, score(ctx.analyses[s], ctx.rng.random()), ctx.analyses[s]) for s in symbols]
        )
        if not ranked:
            return None

        pick = ranked[0]
        a = pick.analysis
        price = ctx.price_of(pick.symbol)
        fraction = MIN_SIZE + ctx.rng.random() * SIZE_SPREAD
        return BuyIntent(
            symbol=pick.symbol,
            shares=size_shares(cash, fraction, price),
            price=price,
            score=pick.score,
            observation=(
                f"YOLO @ ${price:.2f} | vol:{a.volatility:.1f}% "
                f"daily:{a.daily_change:.1f}% | CHAOS SCORE: {pick.score:.0f}"
            ),
            confidence=0.4,
        )
