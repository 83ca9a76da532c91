"""Strategy interface shared by every trading personality.

A strategy is a pure decision function: given a read-only context it returns
a TradePlan of sell intents plus at most one buy intent. Strategies never
touch the ledger or write memory; the executor applies the plan.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, ClassVar

from stockracer.ledger import Portfolio, round_shares
from stockracer.market import Analysis, Quote, TopMovers, Trend
from stockracer.memory import MemoryStore

from .kinds import StrategyKind

if TYPE_CHECKING:
    from stockracer.arena.models import Agent

# Memory override: a strongly disliked symbol is dumped whenever it is underwater
BAD_SENTIMENT_THRESHOLD = -0.5
BAD_HISTORY_REASON = "Bad history with this stock"

# Sentiment nudges applied after a sell
SENTIMENT_WIN_STEP = 0.2
SENTIMENT_LOSS_STEP = -0.3

MIN_CASH_TO_BUY = 1.0


@dataclass
class StrategyContext:
    """Everything a strategy may read when deciding one round.

    ``movers`` carries the round's biggest gainers and losers across the
    universe. It is part of the input every strategy receives, though none of
    the built-in kinds score on it.
    """

    agent: Agent
    portfolio: Portfolio
    quotes: dict[str, Quote]
    analyses: dict[str, Analysis]
    movers: TopMovers
    memory: MemoryStore
    rng: random.Random
    universe: list[str]

    def sentiment(self, symbol: str) -> float:
        return self.memory.sentiment(self.agent.key, symbol)

    def price_of(self, symbol: str) -> float | None:
        """Current quote price, or the latest analysed close when unquoted."""
        quote = self.quotes.get(symbol)
        if quote is not None:
            return quote.price
        analysis = self.analyses.get(symbol)
        return analysis.price if analysis is not None else None

    def quoted_and_analysed(self, symbols: list[str]) -> list[str]:
        return [s for s in symbols if s in self.quotes and s in self.analyses]

    def tradeable(self, symbols: list[str]) -> list[str]:
        avoid = set(self.agent.avoid_symbols)
        return [s for s in symbols if s not in avoid]


@dataclass(frozen=True)
class SellIntent:
    symbol: str
    shares: float
    price: float
    pnl_percent: float
    reason: str


@dataclass(frozen=True)
class BuyIntent:
    symbol: str
    shares: float
    price: float
    score: float
    observation: str | None = None
    confidence: float | None = None


@dataclass
class TradePlan:
    sells: list[SellIntent] = field(default_factory=list)
    buy: BuyIntent | None = None
    skipped: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.sells and self.buy is None


@dataclass(frozen=True)
class Scored:
    """A candidate symbol with its additive score."""

    symbol: str
    score: float
    analysis: Analysis


def rank(candidates: list[Scored]) -> list[Scored]:
    """Highest score first; ties keep candidate order."""
    return sorted(candidates, key=lambda c: c.score, reverse=True)


def size_shares(cash: float, fraction: float, price: float) -> float:
    return round_shares(cash * fraction / price) if price > 0 else 0.0


def hours_since(opened_at: datetime, now: datetime) -> float:
    return (now - opened_at).total_seconds() / 3600


class Strategy(ABC):
    """One trading personality's rules."""

    kind: ClassVar[StrategyKind]

    def decide(self, ctx: StrategyContext) -> TradePlan:
        """Frequency gate, then position review, then at most one buy."""
        if ctx.rng.random() > ctx.agent.trade_frequency:
            return TradePlan(skipped=True)

        sells = self.review_positions(ctx)
        cash = ctx.portfolio.cash + sum(s.shares * s.price for s in sells)

        buy = None
        if cash > MIN_CASH_TO_BUY:
            buy = self.pick_buy(ctx, cash)
            if buy is not None and buy.shares <= 0:
                buy = None
        return TradePlan(sells=sells, buy=buy)

    def review_positions(self, ctx: StrategyContext) -> list[SellIntent]:
        sells = []
        for symbol, position in ctx.portfolio.positions.items():
            quote = ctx.quotes.get(symbol)
            if quote is None:
                continue

            price = quote.price
            pnl_percent = (price - position.avg_cost) / position.avg_cost * 100
            reason = self.sell_reason(ctx, pnl_percent, ctx.analyses.get(symbol))

            if ctx.sentiment(symbol) < BAD_SENTIMENT_THRESHOLD and pnl_percent < 0:
                reason = BAD_HISTORY_REASON

            if reason:
                sells.append(
                    SellIntent(
                        symbol=symbol,
                        shares=position.shares,
                        price=price,
                        pnl_percent=pnl_percent,
                        reason=reason,
                    )
                )
        return sells

    @abstractmethod
    def sell_reason(
        self, ctx: StrategyContext, pnl_percent: float, analysis: Analysis | None
    ) -> str | None:
        """Reason to close a position, or None to keep it. Later rules win."""

    @abstractmethod
    def pick_buy(self, ctx: StrategyContext, cash: float) -> BuyIntent | None:
        """Best buy for this round given the cash left after sells."""


def is_bearish(analysis: Analysis | None) -> bool:
    return analysis is not None and analysis.trend == Trend.BEARISH
