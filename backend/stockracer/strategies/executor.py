"""Applies a TradePlan to the ledger and writes the results back to memory."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from stockracer.exceptions import LedgerError
from stockracer.ledger import Ledger, Trade, TradeSide
from stockracer.ledger.models import utc_now
from stockracer.market import Analysis
from stockracer.memory import MemoryStore

from .base import (
    SENTIMENT_LOSS_STEP,
    SENTIMENT_WIN_STEP,
    BuyIntent,
    SellIntent,
    TradePlan,
    hours_since,
)

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """Outcome of one intent. Failures carry the ledger's rejection message."""

    side: TradeSide
    symbol: str
    success: bool
    trade: Trade | None = None
    error: str | None = None
    reason: str | None = None


@dataclass
class AgentRoundResult:
    agent_key: str
    skipped: bool = False
    results: list[ExecutionResult] = field(default_factory=list)
    value: float | None = None

    @property
    def trades_made(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failures(self) -> list[ExecutionResult]:
        return [r for r in self.results if not r.success]


class StrategyExecutor:
    """Sells first, then the buy. Ledger rejections never propagate."""

    def __init__(self, ledger: Ledger, memory: MemoryStore):
        self.ledger = ledger
        self.memory = memory

    def execute(
        self,
        agent_key: str,
        plan: TradePlan,
        analyses: dict[str, Analysis] | None = None,
    ) -> AgentRoundResult:
        result = AgentRoundResult(agent_key=agent_key, skipped=plan.skipped)
        analyses = analyses or {}

        for sell in plan.sells:
            result.results.append(self._sell(agent_key, sell, analyses.get(sell.symbol)))
        if plan.buy is not None:
            result.results.append(self._buy(agent_key, plan.buy))
        return result

    def _sell(
        self, agent_key: str, intent: SellIntent, analysis: Analysis | None
    ) -> ExecutionResult:
        portfolio = self.ledger.get_portfolio(agent_key)
        position = portfolio.positions.get(intent.symbol) if portfolio else None
        entry_price = position.avg_cost if position else None
        opened_at = position.opened_at if position else None

        try:
            trade = self.ledger.sell(agent_key, intent.symbol, intent.shares, intent.price)
        except LedgerError as e:
            logger.warning(f"{agent_key} sell {intent.symbol} rejected: {e}")
            return ExecutionResult(
                side=TradeSide.SELL,
                symbol=intent.symbol,
                success=False,
                error=str(e),
                reason=intent.reason,
            )

        pnl_percent = intent.pnl_percent
        verdict = "winner" if pnl_percent > 0 else "loser"
        self.memory.record_outcome(
            agent_key,
            symbol=intent.symbol,
            action=TradeSide.SELL.value,
            entry_price=entry_price,
            exit_price=intent.price,
            pnl=trade.pnl,
            pnl_percent=pnl_percent,
            hold_duration_hours=hours_since(opened_at, utc_now()) if opened_at else None,
            market_condition=str(analysis.trend) if analysis else None,
            reason=intent.reason,
            lesson=f"{intent.symbol} was a {verdict} - {intent.reason}",
        )
        self.memory.nudge_sentiment(
            agent_key,
            intent.symbol,
            SENTIMENT_WIN_STEP if pnl_percent > 0 else SENTIMENT_LOSS_STEP,
            note=f"Sold at {pnl_percent:.1f}%: {intent.reason}",
        )

        logger.info(
            f"[{agent_key}] SELL {trade.shares} {intent.symbol} @ ${intent.price:.2f} "
            f"({pnl_percent:+.1f}%) - {intent.reason}"
        )
        return ExecutionResult(
            side=TradeSide.SELL,
            symbol=intent.symbol,
            success=True,
            trade=trade,
            reason=intent.reason,
        )

    def _buy(self, agent_key: str, intent: BuyIntent) -> ExecutionResult:
        try:
            trade = self.ledger.buy(agent_key, intent.symbol, intent.shares, intent.price)
        except LedgerError as e:
            logger.warning(f"{agent_key} buy {intent.symbol} rejected: {e}")
            return ExecutionResult(
                side=TradeSide.BUY,
                symbol=intent.symbol,
                success=False,
                error=str(e),
            )

        if intent.observation:
            self.memory.add_observation(
                agent_key,
                symbol=intent.symbol,
                observation=intent.observation,
                confidence=intent.confidence,
            )

        logger.info(
            f"[{agent_key}] BUY {trade.shares} {intent.symbol} @ ${intent.price:.2f} "
            f"(score:{intent.score:.0f})"
        )
        return ExecutionResult(
            side=TradeSide.BUY,
            symbol=intent.symbol,
            success=True,
            trade=trade,
        )
