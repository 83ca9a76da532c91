"""Unit tests for per-agent memory."""

from datetime import date

import pytest

from stockracer.memory import GENERAL_SYMBOL, STOCK_SENTIMENT, MemoryStore, clamp_unit


def _outcome(memory, agent, symbol, pnl_percent):
    return memory.record_outcome(
        agent,
        symbol=symbol,
        action="SELL",
        entry_price=10.0,
        exit_price=10.0 * (1 + pnl_percent / 100),
        pnl=pnl_percent / 10,
        pnl_percent=pnl_percent,
        reason="test",
    )


def test_sentiment_defaults_to_zero(memory):
    assert memory.sentiment("warren", "KO") == 0.0


def test_upsert_belief_clamps_and_replaces(memory):
    memory.upsert_belief("warren", STOCK_SENTIMENT, "KO", 3.0)
    assert memory.sentiment("warren", "KO") == 1.0

    memory.upsert_belief("warren", STOCK_SENTIMENT, "KO", -0.4, note="meh")

    beliefs = memory.beliefs("warren", STOCK_SENTIMENT)
    assert len(beliefs) == 1
    assert beliefs[0].value == -0.4
    assert beliefs[0].note == "meh"


def test_belief_without_symbol_is_general(memory):
    belief = memory.upsert_belief("warren", "market_mood", None, 0.3)
    assert belief.symbol == GENERAL_SYMBOL


def test_nudge_sentiment_accumulates_within_bounds(memory):
    memory.nudge_sentiment("elon", "GME", -0.3)
    memory.nudge_sentiment("elon", "GME", -0.3)
    assert memory.sentiment("elon", "GME") == pytest.approx(-0.6)

    for _ in range(5):
        memory.nudge_sentiment("elon", "GME", -0.3)
    assert memory.sentiment("elon", "GME") == -1.0


def test_beliefs_are_scoped_per_agent(memory):
    memory.upsert_belief("warren", STOCK_SENTIMENT, "KO", 0.5)
    memory.upsert_belief("elon", STOCK_SENTIMENT, "KO", -0.5)

    assert memory.sentiment("warren", "KO") == 0.5
    assert memory.sentiment("elon", "KO") == -0.5


def test_clamp_unit():
    assert clamp_unit(1.5) == 1.0
    assert clamp_unit(-2) == -1.0
    assert clamp_unit(0.25) == 0.25


def test_outcome_ids_increment(memory):
    first = _outcome(memory, "warren", "KO", 5.0)
    second = _outcome(memory, "elon", "GME", -5.0)
    assert second.id == first.id + 1


def test_win_rate(memory):
    _outcome(memory, "warren", "KO", 10.0)
    _outcome(memory, "warren", "KO", -4.0)
    _outcome(memory, "warren", "PG", 2.0)

    stats = memory.win_rate("warren")

    assert stats.total == 3
    assert stats.wins == 2
    assert stats.losses == 1
    assert stats.win_rate == pytest.approx(200 / 3)
    assert stats.avg_return == pytest.approx(8.0 / 3)
    assert stats.avg_win == pytest.approx(6.0)
    assert stats.avg_loss == pytest.approx(-4.0)


def test_win_rate_empty(memory):
    stats = memory.win_rate("nobody")
    assert stats.total == 0
    assert stats.win_rate == 0.0
    assert stats.avg_return is None


def test_best_and_worst_need_two_outcomes(memory):
    _outcome(memory, "warren", "KO", 10.0)
    _outcome(memory, "warren", "KO", 6.0)
    _outcome(memory, "warren", "PG", -8.0)
    _outcome(memory, "warren", "PG", -2.0)
    _outcome(memory, "warren", "JNJ", 50.0)

    best = memory.best_symbols("warren")
    worst = memory.worst_symbols("warren")

    assert [s.symbol for s in best] == ["KO", "PG"]
    assert [s.symbol for s in worst] == ["PG", "KO"]
    assert best[0].avg_return == pytest.approx(8.0)
    assert worst[0].losses == 2


def test_trade_history_newest_first(memory):
    _outcome(memory, "warren", "KO", 1.0)
    _outcome(memory, "warren", "PG", 2.0)
    _outcome(memory, "warren", "KO", 3.0)

    assert [o.pnl_percent for o in memory.trade_history("warren")] == [3.0, 2.0, 1.0]
    assert [o.pnl_percent for o in memory.trade_history("warren", "KO")] == [3.0, 1.0]
    assert len(memory.trade_history("warren", limit=1)) == 1


def test_observation_confidence_defaults_and_clamps(memory):
    default = memory.add_observation("warren", observation="steady", symbol="KO")
    clamped = memory.add_observation("warren", observation="sure", confidence=4.0)

    assert default.confidence == 0.5
    assert clamped.confidence == 1.0
    assert [o.observation for o in memory.observations("warren")] == ["sure", "steady"]


def test_one_reflection_per_agent_per_day(memory):
    day = date(2024, 3, 4)
    memory.upsert_reflection("warren", portfolio_value=25.0, mood="cautious", day=day)
    memory.upsert_reflection("warren", portfolio_value=26.0, mood="optimistic", day=day)
    memory.upsert_reflection("warren", portfolio_value=24.0, day=date(2024, 3, 1))

    reflections = memory.reflections("warren")

    assert [r.date for r in reflections] == [day, date(2024, 3, 1)]
    assert reflections[0].mood == "optimistic"
    assert reflections[0].portfolio_value == 26.0


def test_clear_forgets_only_one_agent(memory):
    _outcome(memory, "warren", "KO", 1.0)
    memory.add_observation("warren", observation="x")
    memory.upsert_belief("warren", STOCK_SENTIMENT, "KO", 0.5)
    memory.upsert_reflection("warren", mood="cautious")
    _outcome(memory, "elon", "GME", 1.0)

    memory.clear("warren")

    assert memory.trade_history("warren") == []
    assert memory.observations("warren") == []
    assert memory.beliefs("warren") == []
    assert memory.reflections("warren") == []
    assert len(memory.trade_history("elon")) == 1


def test_summary(memory):
    for pct in [5.0, 7.0, -3.0, -1.0, 2.0, 4.0]:
        _outcome(memory, "warren", "KO" if pct > 0 else "PG", pct)
    memory.nudge_sentiment("warren", "KO", 0.2)
    memory.upsert_reflection("warren", mood="optimistic")

    summary = memory.summary("warren")

    assert summary.win_rate.total == 6
    assert summary.best_symbols[0].symbol == "KO"
    assert summary.worst_symbols[0].symbol == "PG"
    assert len(summary.recent_trades) == 5
    assert summary.recent_trades[0].pnl_percent == 4.0
    assert len(summary.beliefs) == 1
    assert len(summary.reflections) == 1


def test_memory_survives_reload(tables, memory):
    _outcome(memory, "warren", "KO", 1.0)
    memory.upsert_belief("warren", STOCK_SENTIMENT, "KO", 0.4)
    memory.upsert_reflection("warren", mood="cautious", day=date(2024, 3, 4))

    reloaded = MemoryStore(
        tables.outcomes, tables.observations, tables.beliefs, tables.reflections
    )

    assert len(reloaded.trade_history("warren")) == 1
    assert reloaded.sentiment("warren", "KO") == 0.4
    assert reloaded.reflections("warren")[0].date == date(2024, 3, 4)
