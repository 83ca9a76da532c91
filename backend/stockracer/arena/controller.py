"""Arena controller: roster, trading rounds, leaderboard and the elimination cycle.

State lives in explicit in-memory collections loaded from the arena tables on
construction and rewritten after every mutation. Trading rounds and
elimination cycles share an in-flight guard so a timer firing while one is
still running becomes a logged no-op.
"""

from __future__ import annotations

import logging
import math
import random
from datetime import date, datetime, timedelta
from typing import Callable

from stockracer.config import ArenaConfig
from stockracer.exceptions import QuoteUnavailable
from stockracer.ledger import Ledger, QuoteLookup
from stockracer.ledger.models import utc_now
from stockracer.market import Analysis, MarketDataSource, Quote, TRADEABLE_STOCKS, TopMovers
from stockracer.memory import MemoryStore
from stockracer.storage import ArenaTables
from stockracer.strategies import StrategyContext, StrategyExecutor, get_strategy

from .models import (
    Agent,
    AgentRoundSummary,
    AgentStatus,
    AgentTemplate,
    AgentView,
    Competition,
    CompetitionStatus,
    DailySummary,
    EliminatedRecord,
    EliminationResult,
    GraveyardEntry,
    LeaderboardEntry,
    RoundReport,
    SummaryRow,
)
from .templates import AGENT_TEMPLATES

logger = logging.getLogger(__name__)

DANGER_ZONE_ADJUSTMENT = "Need to be more aggressive - in danger zone!"


def quote_lookup(quotes: dict[str, Quote]) -> QuoteLookup:
    """Synchronous lookup over prefetched quotes for ledger valuation."""

    def lookup(symbol: str) -> float:
        quote = quotes.get(symbol)
        if quote is None:
            raise QuoteUnavailable(f"No quote for {symbol}")
        return quote.price

    return lookup


def mood_for(return_percent: float) -> str:
    if return_percent > 5:
        return "euphoric"
    if return_percent > 0:
        return "optimistic"
    if return_percent > -5:
        return "cautious"
    return "desperate"


class ArenaController:
    """Drives the competition over a ledger, a memory store and a market source."""

    def __init__(
        self,
        config: ArenaConfig,
        ledger: Ledger,
        memory: MemoryStore,
        market: MarketDataSource,
        tables: ArenaTables,
        rng: random.Random | None = None,
        universe: list[str] | None = None,
        templates: dict[str, AgentTemplate] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config
        self.ledger = ledger
        self.memory = memory
        self.market = market
        self.tables = tables
        self.rng = rng or random.Random(config.random_seed)
        self.universe = universe or TRADEABLE_STOCKS
        self.templates = templates or AGENT_TEMPLATES
        self.clock = clock
        self.executor = StrategyExecutor(ledger, memory)

        self.agents: dict[str, Agent] = {
            key: Agent.model_validate(data)
            for key, data in (tables.agents.load() or {}).items()
        }
        self.graveyard: list[GraveyardEntry] = [
            GraveyardEntry.model_validate(item) for item in tables.graveyard.load() or []
        ]
        self.summaries: list[DailySummary] = [
            DailySummary.model_validate(item) for item in tables.summaries.load() or []
        ]
        raw_competition = tables.competition.load()
        self.competition = (
            Competition.model_validate(raw_competition)
            if raw_competition
            else self._new_competition(round_number=1)
        )
        self._in_flight = False

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _save_agents(self) -> None:
        self.tables.agents.save(
            {key: agent.model_dump(mode="json") for key, agent in self.agents.items()}
        )

    def _save_competition(self) -> None:
        self.tables.competition.save(self.competition.model_dump(mode="json"))

    def _save_graveyard(self) -> None:
        self.tables.graveyard.save([e.model_dump(mode="json") for e in self.graveyard])

    def _save_summaries(self) -> None:
        self.tables.summaries.save([s.model_dump(mode="json") for s in self.summaries])

    def _new_competition(self, round_number: int, eliminated=None) -> Competition:
        start = self.clock()
        return Competition(
            round=round_number,
            start_date=start,
            end_date=start + timedelta(days=self.config.competition_days),
            eliminated=list(eliminated or []),
        )

    # ------------------------------------------------------------------
    # Roster
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Create any missing founding agent and make sure every agent has a portfolio."""
        for key, template in self.templates.items():
            if key not in self.agents:
                self.create_agent(key, template)
        for key in self.agents:
            self.ledger.initialize(key, self.config.starting_cash)
        self._save_competition()
        logger.info(f"Initialized {len(self.agents)} agents")

    def create_agent(self, key: str, template: AgentTemplate, generation: int = 1) -> Agent:
        agent = Agent.from_template(key, template, generation)
        self.agents[key] = agent
        self.ledger.initialize(key, self.config.starting_cash)
        self._save_agents()
        logger.info(f"Created agent: {agent.name} (Gen {generation})")
        return agent

    def active_agents(self) -> list[Agent]:
        return [a for a in self.agents.values() if a.is_active]

    def active_agent_count(self) -> int:
        return len(self.active_agents())

    def get_agent(self, key: str) -> AgentView | None:
        agent = self.agents.get(key)
        if agent is None:
            return None
        return AgentView(
            agent=agent,
            portfolio=self.ledger.get_portfolio(key),
            performance=self.ledger.performance(key),
        )

    def get_all_agents(self) -> list[AgentView]:
        return [self.get_agent(key) for key in self.agents]

    # ------------------------------------------------------------------
    # Trading
    # ------------------------------------------------------------------

    def trade_agent(
        self,
        agent: Agent,
        quotes: dict[str, Quote],
        analyses: dict[str, Analysis],
        movers: TopMovers,
    ) -> AgentRoundSummary:
        """Run one agent's strategy against a market snapshot and apply the plan."""
        portfolio = self.ledger.require_portfolio(agent.key)
        ctx = StrategyContext(
            agent=agent,
            portfolio=portfolio,
            quotes=quotes,
            analyses=analyses,
            movers=movers,
            memory=self.memory,
            rng=self.rng,
            universe=self.universe,
        )
        plan = get_strategy(agent.strategy).decide(ctx)
        outcome = self.executor.execute(agent.key, plan, analyses)
        return AgentRoundSummary(
            agent_key=agent.key,
            skipped=outcome.skipped,
            trades_made=outcome.trades_made,
            failures=[f"{r.side} {r.symbol}: {r.error}" for r in outcome.failures],
        )

    async def run_trading_round(self) -> RoundReport:
        if self._in_flight:
            logger.warning("Arena busy, skipping trading round")
            return RoundReport(skipped=True, finished_at=self.clock())

        self._in_flight = True
        try:
            report = RoundReport(started_at=self.clock())
            logger.info("Starting trading round...")

            quotes = await self.market.get_multiple_quotes(self.universe)
            analyses = await self.market.analyze_multiple(self.universe)
            movers = await self.market.get_top_movers()
            report.quotes = len(quotes)
            report.analyses = len(analyses)
            lookup = quote_lookup(quotes)

            for agent in self.active_agents():
                try:
                    summary = self.trade_agent(agent, quotes, analyses, movers)
                    summary.value = self.ledger.valuate(agent.key, lookup)
                    self.ledger.snapshot(agent.key, summary.value)
                except Exception as e:
                    logger.error(f"Trading failed for {agent.name}: {e}", exc_info=True)
                    summary = AgentRoundSummary(agent_key=agent.key, error=str(e))
                report.agents.append(summary)

            report.finished_at = self.clock()
            logger.info(
                f"Trading round complete: {report.trades_made} trades "
                f"across {len(report.agents)} agents"
            )
            return report
        finally:
            self._in_flight = False

    # ------------------------------------------------------------------
    # Leaderboard
    # ------------------------------------------------------------------

    async def _held_quotes(self, agents: list[Agent]) -> dict[str, Quote]:
        symbols: set[str] = set()
        for agent in agents:
            portfolio = self.ledger.get_portfolio(agent.key)
            if portfolio is not None:
                symbols.update(portfolio.positions)
        if not symbols:
            return {}
        return await self.market.get_multiple_quotes(sorted(symbols))

    async def get_leaderboard(self) -> list[LeaderboardEntry]:
        """Active agents ranked by current valuation; the bottom two are in danger."""
        agents = self.active_agents()
        lookup = quote_lookup(await self._held_quotes(agents))
        starting_cash = self.config.starting_cash

        entries = []
        for agent in agents:
            value = self.ledger.valuate(agent.key, lookup)
            entries.append(
                LeaderboardEntry(
                    key=agent.key,
                    name=agent.name,
                    avatar=agent.avatar,
                    color=agent.color,
                    personality=agent.personality,
                    strategy=agent.strategy,
                    current_value=value,
                    total_return=value - starting_cash,
                    total_return_percent=(value - starting_cash) / starting_cash * 100,
                    trades_count=self.ledger.trades_count(agent.key),
                    generation=agent.generation,
                )
            )

        entries.sort(key=lambda e: e.current_value, reverse=True)
        for index, entry in enumerate(entries):
            entry.rank = index + 1
            entry.in_danger = index >= len(entries) - self.config.eliminations_per_cycle
        return entries

    # ------------------------------------------------------------------
    # Elimination
    # ------------------------------------------------------------------

    async def run_elimination(self) -> EliminationResult:
        """Cull the bottom of the leaderboard and respawn them as the next generation."""
        if self._in_flight:
            logger.warning("Arena busy, skipping elimination")
            return EliminationResult()

        self._in_flight = True
        try:
            return await self._eliminate()
        finally:
            self._in_flight = False

    async def _eliminate(self) -> EliminationResult:
        logger.info("Running elimination round...")
        leaderboard = await self.get_leaderboard()

        if len(leaderboard) < self.config.min_active_for_elimination:
            logger.info("Not enough agents to eliminate")
            return EliminationResult()

        cut = self.config.eliminations_per_cycle
        if cut < 1 or len(leaderboard) - cut < 1:
            logger.info("Elimination would leave no survivors, skipping")
            return EliminationResult()

        losers, survivors = leaderboard[-cut:], leaderboard[:-cut]
        now = self.clock()
        eliminated = []

        for loser in losers:
            agent = self.agents[loser.key]
            self.graveyard.append(
                GraveyardEntry(
                    agent=agent.model_copy(update={"status": AgentStatus.ELIMINATED}),
                    final_value=loser.current_value,
                    final_return_percent=loser.total_return_percent,
                    eliminated_at=now,
                    eliminated_round=self.competition.round,
                    memory_summary=self.memory.summary(agent.key),
                )
            )

            self.memory.clear(agent.key)
            self.ledger.delete_portfolio(agent.key)
            del self.agents[agent.key]
            template = self.templates.get(agent.key) or AgentTemplate.model_validate(
                agent.model_dump(include=set(AgentTemplate.model_fields))
            )
            self.create_agent(agent.key, template, generation=agent.generation + 1)

            eliminated.append(
                EliminatedRecord(
                    key=agent.key,
                    name=agent.name,
                    generation=agent.generation,
                    final_value=loser.current_value,
                    final_return=loser.total_return_percent,
                )
            )
            logger.info(
                f"{agent.name} Gen {agent.generation} eliminated! "
                f"Return: {loser.total_return_percent:.2f}%"
            )

        for survivor in survivors:
            self.agents[survivor.key].kills += cut

        self.competition = self._new_competition(
            round_number=self.competition.round + 1,
            eliminated=[*self.competition.eliminated, *eliminated],
        )

        self._save_agents()
        self._save_graveyard()
        self._save_competition()
        return EliminationResult(eliminated=eliminated, new_round=self.competition.round)

    # ------------------------------------------------------------------
    # Competition & reporting
    # ------------------------------------------------------------------

    def get_competition_status(self) -> CompetitionStatus:
        remaining = (self.competition.end_date - self.clock()) / timedelta(days=1)
        return CompetitionStatus(
            **self.competition.model_dump(),
            days_remaining=max(0, math.ceil(remaining)),
        )

    def get_graveyard(self) -> list[GraveyardEntry]:
        """Eliminated agents, most recent first."""
        return sorted(self.graveyard, key=lambda e: e.eliminated_at, reverse=True)

    def get_daily_summaries(self) -> list[DailySummary]:
        return list(self.summaries)

    async def generate_daily_summary(self, day: date | None = None) -> DailySummary:
        """Record today's standings and have every ranked agent reflect on its day."""
        now = self.clock()
        day = day or now.date()
        leaderboard = await self.get_leaderboard()
        todays_trades = self.ledger.trades_on(day)

        summary = DailySummary(
            date=now,
            leaderboard=[
                SummaryRow(
                    rank=e.rank,
                    name=e.name,
                    value=round(e.current_value, 2),
                    return_percent=round(e.total_return_percent, 2),
                )
                for e in leaderboard
            ],
            top_performer=leaderboard[0] if leaderboard else None,
            worst_performer=leaderboard[-1] if leaderboard else None,
            total_trades_today=len(todays_trades),
            competition=self.get_competition_status(),
        )
        self.summaries.append(summary)
        self.summaries = self.summaries[-self.config.summaries_kept:]
        self._save_summaries()

        for entry in leaderboard:
            self.memory.upsert_reflection(
                entry.key,
                portfolio_value=entry.current_value,
                trades_made=sum(1 for t in todays_trades if t.agent_key == entry.key),
                reflection=(
                    f"Day ended at ${entry.current_value:.2f} "
                    f"({entry.total_return_percent:.1f}%). Rank #{entry.rank}."
                ),
                mood=mood_for(entry.total_return_percent),
                strategy_adjustment=DANGER_ZONE_ADJUSTMENT if entry.in_danger else None,
                day=day,
            )

        if leaderboard:
            logger.info(
                f"Daily summary generated. Leader: {leaderboard[0].name} "
                f"(${leaderboard[0].current_value:.2f}), "
                f"laggard: {leaderboard[-1].name} (${leaderboard[-1].current_value:.2f})"
            )
        return summary
