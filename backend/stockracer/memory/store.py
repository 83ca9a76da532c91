"""Per-agent memory: trade outcomes, observations, beliefs and daily reflections.

Pure accumulation and query layer. Each fact kind lives in its own table and
is scoped by agent key. Nothing here makes trading decisions; strategies read
sentiment and outcome statistics, the executor writes them back.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, timezone
from statistics import fmean

from stockracer.storage import Table

from .models import (
    GENERAL_SYMBOL,
    STOCK_SENTIMENT,
    Belief,
    MemorySummary,
    Observation,
    Reflection,
    SymbolStats,
    TradeOutcome,
    WinRate,
)

logger = logging.getLogger(__name__)

MIN_TRADES_FOR_RANKING = 2


def clamp_unit(value: float) -> float:
    """Clamp a belief value to [-1, 1]."""
    return max(-1.0, min(1.0, value))


def _mean(values: list[float]) -> float | None:
    return fmean(values) if values else None


class MemoryStore:
    """Agent memory backed by four independent tables."""

    def __init__(
        self,
        outcomes_table: Table,
        observations_table: Table,
        beliefs_table: Table,
        reflections_table: Table,
    ):
        self._outcomes_table = outcomes_table
        self._observations_table = observations_table
        self._beliefs_table = beliefs_table
        self._reflections_table = reflections_table

        self.outcomes = [TradeOutcome.model_validate(r) for r in outcomes_table.load() or []]
        self.observations_log = [
            Observation.model_validate(r) for r in observations_table.load() or []
        ]
        self.beliefs_log = [Belief.model_validate(r) for r in beliefs_table.load() or []]
        self.reflections_log = [
            Reflection.model_validate(r) for r in reflections_table.load() or []
        ]

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _save_outcomes(self) -> None:
        self._outcomes_table.save([r.model_dump(mode="json") for r in self.outcomes])

    def _save_observations(self) -> None:
        self._observations_table.save([r.model_dump(mode="json") for r in self.observations_log])

    def _save_beliefs(self) -> None:
        self._beliefs_table.save([r.model_dump(mode="json") for r in self.beliefs_log])

    def _save_reflections(self) -> None:
        self._reflections_table.save([r.model_dump(mode="json") for r in self.reflections_log])

    @staticmethod
    def _next_id(records: list) -> int:
        return max((r.id for r in records), default=0) + 1

    # ------------------------------------------------------------------
    # Trade outcomes
    # ------------------------------------------------------------------

    def record_outcome(
        self,
        agent_key: str,
        *,
        symbol: str,
        action: str,
        entry_price: float | None = None,
        exit_price: float | None = None,
        pnl: float | None = None,
        pnl_percent: float | None = None,
        hold_duration_hours: float | None = None,
        market_condition: str | None = None,
        reason: str | None = None,
        lesson: str | None = None,
    ) -> TradeOutcome:
        outcome = TradeOutcome(
            id=self._next_id(self.outcomes),
            agent_key=agent_key,
            symbol=symbol,
            action=action,
            entry_price=entry_price,
            exit_price=exit_price,
            pnl=pnl,
            pnl_percent=pnl_percent,
            hold_duration_hours=hold_duration_hours,
            market_condition=market_condition,
            reason=reason,
            lesson=lesson,
        )
        self.outcomes.append(outcome)
        self._save_outcomes()
        return outcome

    def _outcomes_for(self, agent_key: str, symbol: str | None = None) -> list[TradeOutcome]:
        return [
            o for o in self.outcomes
            if o.agent_key == agent_key and (symbol is None or o.symbol == symbol)
        ]

    def trade_history(
        self, agent_key: str, symbol: str | None = None, limit: int = 20
    ) -> list[TradeOutcome]:
        """Outcomes newest first."""
        return list(reversed(self._outcomes_for(agent_key, symbol)))[:limit]

    def win_rate(self, agent_key: str, symbol: str | None = None) -> WinRate:
        outcomes = self._outcomes_for(agent_key, symbol)
        total = len(outcomes)
        wins = [o for o in outcomes if o.pnl is not None and o.pnl > 0]
        losses = [o for o in outcomes if o.pnl is not None and o.pnl < 0]

        def pct(records: list[TradeOutcome]) -> list[float]:
            return [o.pnl_percent for o in records if o.pnl_percent is not None]

        return WinRate(
            total=total,
            wins=len(wins),
            losses=len(losses),
            avg_return=_mean(pct(outcomes)),
            avg_win=_mean(pct(wins)),
            avg_loss=_mean(pct(losses)),
            win_rate=(len(wins) / total * 100) if total > 0 else 0.0,
        )

    def _symbol_stats(self, agent_key: str) -> list[SymbolStats]:
        grouped: dict[str, list[TradeOutcome]] = defaultdict(list)
        for outcome in self._outcomes_for(agent_key):
            grouped[outcome.symbol].append(outcome)

        stats = []
        for symbol, outcomes in grouped.items():
            if len(outcomes) < MIN_TRADES_FOR_RANKING:
                continue
            returns = [o.pnl_percent for o in outcomes if o.pnl_percent is not None]
            stats.append(
                SymbolStats(
                    symbol=symbol,
                    trades=len(outcomes),
                    avg_return=_mean(returns) or 0.0,
                    total_pnl=sum(o.pnl or 0.0 for o in outcomes),
                    wins=sum(1 for o in outcomes if (o.pnl or 0) > 0),
                    losses=sum(1 for o in outcomes if (o.pnl or 0) < 0),
                )
            )
        return stats

    def best_symbols(self, agent_key: str, limit: int = 5) -> list[SymbolStats]:
        """Symbols with at least two outcomes, best average return first."""
        stats = self._symbol_stats(agent_key)
        return sorted(stats, key=lambda s: s.avg_return, reverse=True)[:limit]

    def worst_symbols(self, agent_key: str, limit: int = 5) -> list[SymbolStats]:
        """Symbols with at least two outcomes, worst average return first."""
        stats = self._symbol_stats(agent_key)
        return sorted(stats, key=lambda s: s.avg_return)[:limit]

    # ------------------------------------------------------------------
    # Observations
    # ------------------------------------------------------------------

    def add_observation(
        self,
        agent_key: str,
        *,
        observation: str,
        symbol: str | None = None,
        confidence: float | None = None,
    ) -> Observation:
        record = Observation(
            id=self._next_id(self.observations_log),
            agent_key=agent_key,
            symbol=symbol,
            observation=observation,
            confidence=0.5 if confidence is None else max(0.0, min(1.0, confidence)),
        )
        self.observations_log.append(record)
        self._save_observations()
        return record

    def observations(self, agent_key: str, limit: int = 10) -> list[Observation]:
        records = [o for o in self.observations_log if o.agent_key == agent_key]
        return list(reversed(records))[:limit]

    # ------------------------------------------------------------------
    # Beliefs
    # ------------------------------------------------------------------

    def upsert_belief(
        self,
        agent_key: str,
        belief_type: str,
        symbol: str | None,
        value: float,
        note: str | None = None,
    ) -> Belief:
        """Insert or overwrite the (agent, type, symbol) belief with a clamped value."""
        symbol = symbol or GENERAL_SYMBOL
        belief = Belief(
            agent_key=agent_key,
            belief_type=belief_type,
            symbol=symbol,
            value=clamp_unit(value),
            note=note,
        )
        self.beliefs_log = [
            b for b in self.beliefs_log
            if not (b.agent_key == agent_key and b.belief_type == belief_type and b.symbol == symbol)
        ]
        self.beliefs_log.append(belief)
        self._save_beliefs()
        return belief

    def beliefs(self, agent_key: str, belief_type: str | None = None) -> list[Belief]:
        """Beliefs most recently updated first."""
        records = [
            b for b in self.beliefs_log
            if b.agent_key == agent_key and (belief_type is None or b.belief_type == belief_type)
        ]
        return list(reversed(records))

    def sentiment(self, agent_key: str, symbol: str) -> float:
        """How much an agent likes a symbol, -1 to 1. Zero if never traded."""
        for belief in self.beliefs_log:
            if (
                belief.agent_key == agent_key
                and belief.belief_type == STOCK_SENTIMENT
                and belief.symbol == symbol
            ):
                return belief.value
        return 0.0

    def nudge_sentiment(
        self, agent_key: str, symbol: str, delta: float, note: str | None = None
    ) -> Belief:
        return self.upsert_belief(
            agent_key,
            STOCK_SENTIMENT,
            symbol,
            self.sentiment(agent_key, symbol) + delta,
            note,
        )

    # ------------------------------------------------------------------
    # Reflections
    # ------------------------------------------------------------------

    def upsert_reflection(
        self,
        agent_key: str,
        *,
        portfolio_value: float | None = None,
        trades_made: int = 0,
        reflection: str | None = None,
        mood: str | None = None,
        strategy_adjustment: str | None = None,
        day: date | None = None,
    ) -> Reflection:
        """Write the reflection for a calendar date, replacing any earlier one that day."""
        day = day or datetime.now(timezone.utc).date()
        record = Reflection(
            agent_key=agent_key,
            date=day,
            portfolio_value=portfolio_value,
            trades_made=trades_made,
            reflection=reflection,
            mood=mood,
            strategy_adjustment=strategy_adjustment,
        )
        self.reflections_log = [
            r for r in self.reflections_log
            if not (r.agent_key == agent_key and r.date == day)
        ]
        self.reflections_log.append(record)
        self._save_reflections()
        return record

    def reflections(self, agent_key: str, limit: int = 7) -> list[Reflection]:
        records = [r for r in self.reflections_log if r.agent_key == agent_key]
        return sorted(records, key=lambda r: r.date, reverse=True)[:limit]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def clear(self, agent_key: str) -> None:
        """Forget everything about an agent. Used when its slot is respawned."""
        self.outcomes = [o for o in self.outcomes if o.agent_key != agent_key]
        self.observations_log = [o for o in self.observations_log if o.agent_key != agent_key]
        self.beliefs_log = [b for b in self.beliefs_log if b.agent_key != agent_key]
        self.reflections_log = [r for r in self.reflections_log if r.agent_key != agent_key]
        self._save_outcomes()
        self._save_observations()
        self._save_beliefs()
        self._save_reflections()
        logger.info(f"Cleared memory for {agent_key}")

    def summary(self, agent_key: str) -> MemorySummary:
        return MemorySummary(
            win_rate=self.win_rate(agent_key),
            best_symbols=self.best_symbols(agent_key, 3),
            worst_symbols=self.worst_symbols(agent_key, 3),
            recent_trades=self.trade_history(agent_key, limit=5),
            beliefs=self.beliefs(agent_key),
            reflections=self.reflections(agent_key, 3),
        )
