"""Unit tests for the arena controller: roster, rounds, leaderboard and eliminations."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from factories import build_analysis, build_quote
from stockracer.arena import (
    AGENT_TEMPLATES,
    AgentStatus,
    ArenaController,
    mood_for,
)
from stockracer.arena.controller import DANGER_ZONE_ADJUSTMENT
from stockracer.config import ArenaConfig
from stockracer.ledger import Ledger
from stockracer.memory import MemoryStore

UNIVERSE = ["AAPL", "KO", "NVDA", "GME"]


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def controller(arena_config, ledger, memory, market, tables):
    controller = ArenaController(arena_config, ledger, memory, market, tables, universe=UNIVERSE)
    controller.initialize()
    return controller


def _stage_standings(controller, market):
    """warren up 20%, elon down 20%, everyone else flat."""
    controller.ledger.buy("warren", "KO", 0.5, 10.0)
    controller.ledger.buy("elon", "GME", 1.0, 10.0)
    market.set_price("KO", 20.0)
    market.set_price("GME", 5.0)


# ----------------------------------------------------------------------
# Roster
# ----------------------------------------------------------------------


def test_initialize_creates_founding_agents(controller, ledger):
    assert set(controller.agents) == set(AGENT_TEMPLATES)
    assert controller.active_agent_count() == 7
    for key, agent in controller.agents.items():
        assert agent.generation == 1
        assert agent.status == AgentStatus.ACTIVE
        assert agent.name == AGENT_TEMPLATES[key].name
        assert ledger.get_portfolio(key).cash == 25.0


def test_initialize_is_idempotent(controller, ledger):
    ledger.buy("warren", "KO", 0.1, 10.0)

    controller.initialize()

    assert len(controller.agents) == 7
    assert "KO" in ledger.get_portfolio("warren").positions


def test_get_agent_view(controller):
    view = controller.get_agent("warren")

    assert view.agent.key == "warren"
    assert view.portfolio.cash == 25.0
    assert view.performance.total_return == 0.0
    assert controller.get_agent("ghost") is None
    assert len(controller.get_all_agents()) == 7


def test_state_survives_reload(controller, tables, arena_config, market):
    controller.agents["warren"].kills = 3
    controller._save_agents()

    reloaded = ArenaController(
        arena_config,
        Ledger(tables.portfolios, tables.trades),
        MemoryStore(tables.outcomes, tables.observations, tables.beliefs, tables.reflections),
        market,
        tables,
    )

    assert set(reloaded.agents) == set(AGENT_TEMPLATES)
    assert reloaded.agents["warren"].kills == 3
    assert reloaded.competition.start_date == controller.competition.start_date


# ----------------------------------------------------------------------
# Leaderboard
# ----------------------------------------------------------------------


def test_leaderboard_ranks_by_value_and_flags_danger(controller, market):
    _stage_standings(controller, market)

    board = asyncio.run(controller.get_leaderboard())

    assert [e.rank for e in board] == list(range(1, 8))
    assert board[0].key == "warren"
    assert board[0].current_value == pytest.approx(30.0)
    assert board[0].total_return_percent == pytest.approx(20.0)
    assert board[0].trades_count == 1
    assert board[-1].key == "elon"
    assert board[-1].total_return == pytest.approx(-5.0)
    assert [e.key for e in board if e.in_danger] == ["quant", "elon"]
    # Only held symbols are quoted
    assert market.quote_requests[-1] == ["GME", "KO"]


def test_leaderboard_values_unquoted_positions_at_cost(controller, market):
    controller.ledger.buy("elon", "GME", 1.0, 10.0)

    board = asyncio.run(controller.get_leaderboard())

    elon = next(e for e in board if e.key == "elon")
    assert elon.current_value == pytest.approx(25.0)


# ----------------------------------------------------------------------
# Trading rounds
# ----------------------------------------------------------------------


def test_trading_round_snapshots_every_active_agent(controller, market, ledger):
    for symbol, price in [("AAPL", 180.0), ("KO", 60.0), ("NVDA", 120.0), ("GME", 20.0)]:
        market.set_price(symbol, price)
        market.analyses[symbol] = build_analysis(symbol, price, daily_change=-1.5, rsi=38)

    report = asyncio.run(controller.run_trading_round())

    assert not report.skipped
    assert report.quotes == 4
    assert report.analyses == 4
    assert len(report.agents) == 7
    assert all(a.error is None for a in report.agents)
    assert report.finished_at is not None
    for key in controller.agents:
        history = ledger.get_portfolio(key).history
        assert len(history) == 2
        assert history[-1].value == pytest.approx(25.0)


def test_trading_round_isolates_agent_failures(controller, ledger):
    original = controller.trade_agent

    def flaky(agent, *args):
        if agent.key == "elon":
            raise RuntimeError("boom")
        return original(agent, *args)

    controller.trade_agent = flaky

    report = asyncio.run(controller.run_trading_round())

    errors = {a.agent_key: a.error for a in report.agents if a.error}
    assert errors == {"elon": "boom"}
    assert len(report.agents) == 7
    assert len(ledger.get_portfolio("elon").history) == 1
    assert len(ledger.get_portfolio("warren").history) == 2


def test_overlapping_runs_are_noops(controller, market):
    async def run():
        market.gate = asyncio.Event()
        first = asyncio.create_task(controller.run_trading_round())
        await asyncio.sleep(0)
        second = await controller.run_trading_round()
        elimination = await controller.run_elimination()
        market.gate.set()
        return await first, second, elimination

    first, second, elimination = asyncio.run(run())

    assert second.skipped
    assert second.agents == []
    assert elimination.eliminated == []
    assert elimination.new_round is None
    assert not first.skipped
    assert len(first.agents) == 7
    assert controller.competition.round == 1
    assert controller._in_flight is False


# ----------------------------------------------------------------------
# Elimination
# ----------------------------------------------------------------------


def test_elimination_culls_bottom_two_and_respawns(controller, market, ledger, memory):
    _stage_standings(controller, market)
    memory.record_outcome("elon", symbol="GME", action="SELL", pnl=-1.0, pnl_percent=-10.0)
    survivor_before = ledger.get_portfolio("warren").model_copy(deep=True)
    start = controller.competition.start_date

    result = asyncio.run(controller.run_elimination())

    assert [r.key for r in result.eliminated] == ["quant", "elon"]
    assert result.new_round == 2
    assert result.eliminated[1].final_return == pytest.approx(-20.0)

    elon = controller.agents["elon"]
    assert elon.generation == 2
    assert elon.is_active
    assert elon.kills == 0
    assert ledger.get_portfolio("elon").cash == 25.0
    assert ledger.get_portfolio("elon").positions == {}
    assert memory.trade_history("elon") == []

    warren = ledger.get_portfolio("warren")
    assert warren.cash == survivor_before.cash == 20.0
    assert warren.positions == survivor_before.positions
    assert warren.positions["KO"].shares == 0.5
    assert warren.positions["KO"].avg_cost == 10.0
    assert controller.agents["warren"].kills == 2
    assert controller.agents["cathy"].kills == 2

    graves = controller.get_graveyard()
    assert {g.agent.key for g in graves} == {"quant", "elon"}
    elon_grave = next(g for g in graves if g.agent.key == "elon")
    assert elon_grave.agent.status == AgentStatus.ELIMINATED
    assert elon_grave.agent.generation == 1
    assert elon_grave.eliminated_round == 1
    assert elon_grave.final_value == pytest.approx(20.0)
    assert elon_grave.memory_summary.win_rate.total == 1

    competition = controller.competition
    assert competition.round == 2
    assert competition.start_date >= start
    assert competition.end_date - competition.start_date == timedelta(days=14)
    assert [r.key for r in competition.eliminated] == ["quant", "elon"]


def test_elimination_needs_minimum_field(arena_config, ledger, memory, market, tables):
    templates = {key: AGENT_TEMPLATES[key] for key in ["warren", "elon"]}
    controller = ArenaController(
        arena_config, ledger, memory, market, tables, universe=UNIVERSE, templates=templates
    )
    controller.initialize()

    result = asyncio.run(controller.run_elimination())

    assert result.eliminated == []
    assert result.new_round is None
    assert controller.competition.round == 1
    assert controller.graveyard == []


@pytest.mark.parametrize(
    ("fields", "keys"),
    [
        ({"min_active_for_elimination": 2}, ["warren", "elon"]),
        ({"eliminations_per_cycle": 0}, ["warren", "elon", "cathy"]),
    ],
)
def test_elimination_never_leaves_zero_survivors(fields, keys, ledger, memory, market, tables):
    config = ArenaConfig.model_construct(**fields)
    templates = {key: AGENT_TEMPLATES[key] for key in keys}
    controller = ArenaController(
        config, ledger, memory, market, tables, universe=UNIVERSE, templates=templates
    )
    controller.initialize()

    result = asyncio.run(controller.run_elimination())

    assert result.eliminated == []
    assert set(controller.agents) == set(keys)
    assert all(agent.generation == 1 for agent in controller.agents.values())
    assert controller.graveyard == []


def test_respawn_without_template_reuses_profile(controller, market):
    _stage_standings(controller, market)
    controller.templates = {k: v for k, v in AGENT_TEMPLATES.items() if k != "elon"}

    asyncio.run(controller.run_elimination())

    elon = controller.agents["elon"]
    assert elon.generation == 2
    assert elon.name == "Elon"
    assert elon.preferred_symbols == AGENT_TEMPLATES["elon"].preferred_symbols


def test_graveyard_is_newest_first(controller, market):
    clock = FixedClock(datetime(2024, 1, 1, tzinfo=timezone.utc))
    controller.clock = clock
    _stage_standings(controller, market)
    asyncio.run(controller.run_elimination())
    clock.now += timedelta(days=14)
    asyncio.run(controller.run_elimination())

    rounds = [g.eliminated_round for g in controller.get_graveyard()]

    assert rounds == [2, 2, 1, 1]


# ----------------------------------------------------------------------
# Competition & summaries
# ----------------------------------------------------------------------


def test_days_remaining(ledger, memory, market, tables):
    clock = FixedClock(datetime(2024, 1, 1, 12, tzinfo=timezone.utc))
    controller = ArenaController(ArenaConfig(), ledger, memory, market, tables, clock=clock)

    assert controller.get_competition_status().days_remaining == 14
    clock.now += timedelta(days=13, hours=12)
    assert controller.get_competition_status().days_remaining == 1
    clock.now += timedelta(days=2)
    assert controller.get_competition_status().days_remaining == 0


@pytest.mark.parametrize(
    "pct, mood", [(6, "euphoric"), (0.5, "optimistic"), (0, "cautious"), (-5, "desperate")]
)
def test_mood_for(pct, mood):
    assert mood_for(pct) == mood


def test_daily_summary_writes_reflections(controller, market, memory):
    _stage_standings(controller, market)

    summary = asyncio.run(controller.generate_daily_summary())

    assert summary.top_performer.key == "warren"
    assert summary.worst_performer.key == "elon"
    assert summary.total_trades_today == 2
    assert [row.rank for row in summary.leaderboard] == list(range(1, 8))
    assert summary.leaderboard[0].value == 30.0
    assert summary.competition.round == 1

    warren = memory.reflections("warren")[0]
    assert warren.mood == "euphoric"
    assert warren.trades_made == 1
    assert warren.strategy_adjustment is None
    elon = memory.reflections("elon")[0]
    assert elon.mood == "desperate"
    assert elon.strategy_adjustment == DANGER_ZONE_ADJUSTMENT
    assert memory.reflections("cathy")[0].mood == "cautious"


def test_daily_summaries_are_capped(ledger, memory, market, tables):
    controller = ArenaController(ArenaConfig(summaries_kept=2), ledger, memory, market, tables)
    controller.initialize()

    for _ in range(3):
        asyncio.run(controller.generate_daily_summary())

    assert len(controller.get_daily_summaries()) == 2
    assert len(tables.summaries.load()) == 2
    # Re-running on the same day replaces each agent's reflection
    assert len(memory.reflections("warren")) == 1
