"""Unit tests for the seven trading personalities."""

import random

import pytest

from factories import ScriptedRandom, build_analysis, build_quote
from stockracer.arena import AGENT_TEMPLATES, Agent
from stockracer.market import TopMovers, Trend
from stockracer.memory import STOCK_SENTIMENT
from stockracer.strategies import (
    STRATEGY_CLASSES,
    StrategyContext,
    StrategyKind,
    get_strategy,
)
from stockracer.strategies.base import BAD_HISTORY_REASON


def make_ctx(ledger, memory, key, quotes=(), analyses=(), rng=None, universe=None, cash=25.0):
    agent = Agent.from_template(key, AGENT_TEMPLATES[key])
    ledger.initialize(key, cash)
    analyses = {a.symbol: a for a in analyses}
    return StrategyContext(
        agent=agent,
        portfolio=ledger.require_portfolio(key),
        quotes={q.symbol: q for q in quotes},
        analyses=analyses,
        movers=TopMovers(),
        memory=memory,
        rng=rng or ScriptedRandom(),
        universe=universe if universe is not None else list(analyses),
    )


def decide(ctx):
    return get_strategy(ctx.agent.strategy).decide(ctx)


def hold(ledger, key, symbol, shares=0.1, price=100.0):
    ledger.initialize(key, 25.0)
    ledger.buy(key, symbol, shares, price)


# ----------------------------------------------------------------------
# Shared behaviour
# ----------------------------------------------------------------------


def test_frequency_gate_skips_round(ledger, memory):
    ctx = make_ctx(ledger, memory, "warren", rng=ScriptedRandom([0.9]))

    plan = decide(ctx)

    assert plan.skipped
    assert plan.is_empty


def test_no_buy_without_cash(ledger, memory):
    ctx = make_ctx(
        ledger,
        memory,
        "gordon",
        quotes=[build_quote("NVDA", 50.0)],
        analyses=[build_analysis("NVDA", 50.0, daily_change=3, trend=Trend.BULLISH)],
        cash=1.0,
    )

    plan = decide(ctx)

    assert not plan.skipped
    assert plan.buy is None


def test_avoid_list_applies_to_universe_scanners(ledger, memory):
    ctx = make_ctx(
        ledger,
        memory,
        "paperhands",
        quotes=[build_quote("GME", 20.0)],
        analyses=[build_analysis("GME", 20.0)],
    )

    assert decide(ctx).buy is None


def test_bad_sentiment_dumps_losing_position(ledger, memory):
    hold(ledger, "diamond", "SPY")
    memory.upsert_belief("diamond", STOCK_SENTIMENT, "SPY", -0.6)
    ctx = make_ctx(ledger, memory, "diamond", quotes=[build_quote("SPY", 98.0)])

    plan = decide(ctx)

    assert [s.reason for s in plan.sells] == [BAD_HISTORY_REASON]
    assert plan.sells[0].shares == 0.1
    assert plan.sells[0].pnl_percent == pytest.approx(-2.0)


@pytest.mark.parametrize("price, sentiment", [(101.0, -0.6), (98.0, -0.4)])
def test_bad_sentiment_override_needs_loss_and_threshold(ledger, memory, price, sentiment):
    hold(ledger, "diamond", "SPY")
    memory.upsert_belief("diamond", STOCK_SENTIMENT, "SPY", sentiment)
    ctx = make_ctx(ledger, memory, "diamond", quotes=[build_quote("SPY", price)])

    assert decide(ctx).sells == []


def test_unquoted_positions_are_not_reviewed(ledger, memory):
    hold(ledger, "paperhands", "AAPL")
    ctx = make_ctx(ledger, memory, "paperhands")

    assert decide(ctx).sells == []


def test_buy_is_sized_on_cash_after_sells(ledger, memory):
    hold(ledger, "paperhands", "AAPL")
    ctx = make_ctx(
        ledger,
        memory,
        "paperhands",
        quotes=[build_quote("AAPL", 102.0)],
        analyses=[build_analysis("AAPL", 102.0)],
    )

    plan = decide(ctx)

    assert [s.reason for s in plan.sells] == ["Quick profit"]
    # 15.00 cash + 10.20 proceeds, 30% position
    assert plan.buy.symbol == "AAPL"
    assert plan.buy.shares == 0.0741
    assert plan.buy.price == 102.0


def test_registry_resolves_every_kind():
    for kind in StrategyKind:
        strategy = get_strategy(kind)
        assert isinstance(strategy, STRATEGY_CLASSES[kind])
        assert strategy.kind == kind
    assert get_strategy("hodl") is get_strategy(StrategyKind.HODL)
    assert {t.strategy for t in AGENT_TEMPLATES.values()} == set(StrategyKind)
    with pytest.raises(ValueError):
        get_strategy("astrology")


# ----------------------------------------------------------------------
# Value
# ----------------------------------------------------------------------


def _value_universe():
    quotes = [build_quote("KO", 50.0), build_quote("JNJ", 150.0)]
    analyses = [
        build_analysis("KO", 50.0, rsi=35, trend=Trend.BEARISH, daily_change=-1.5),
        build_analysis("JNJ", 150.0, rsi=60, trend=Trend.BULLISH, volatility=3.5),
    ]
    return quotes, analyses


def test_value_buys_oversold_dip(ledger, memory):
    quotes, analyses = _value_universe()
    ctx = make_ctx(ledger, memory, "warren", quotes=quotes, analyses=analyses)

    buy = decide(ctx).buy

    assert buy.symbol == "KO"
    assert buy.score == pytest.approx(85)
    assert buy.shares == 0.15
    assert buy.confidence == pytest.approx(0.85)
    assert buy.observation.startswith("Bought at $50.00")


def test_value_never_repeats_worst_symbols(ledger, memory):
    for _ in range(2):
        memory.record_outcome("warren", symbol="KO", action="SELL", pnl=-1.0, pnl_percent=-5.0)
    quotes, analyses = _value_universe()
    ctx = make_ctx(ledger, memory, "warren", quotes=quotes, analyses=analyses)

    assert decide(ctx).buy is None


@pytest.mark.parametrize(
    "price, reason",
    [(109.0, "Value target reached"), (92.0, "Value thesis broken"), (103.0, None)],
)
def test_value_exits(ledger, memory, price, reason):
    hold(ledger, "warren", "KO")
    ctx = make_ctx(ledger, memory, "warren", quotes=[build_quote("KO", price)])

    sells = decide(ctx).sells

    assert [s.reason for s in sells] == ([reason] if reason else [])


# ----------------------------------------------------------------------
# Meme
# ----------------------------------------------------------------------


def _meme_ctx(ledger, memory, rng):
    return make_ctx(
        ledger,
        memory,
        "elon",
        quotes=[build_quote("TSLA", 10.0), build_quote("GME", 10.0)],
        analyses=[
            build_analysis("TSLA", 10.0, volatility=4.0, daily_change=4.0),
            build_analysis("GME", 10.0, volatility=2.5, week_change=6.0),
        ],
        rng=rng,
    )


def test_meme_is_reproducible_with_seed(ledger, memory):
    first = decide(_meme_ctx(ledger, memory, random.Random(42)))
    second = decide(_meme_ctx(ledger, memory, random.Random(42)))

    assert first == second
    assert first.buy is not None
    # 30% to 80% of $25 at $10
    assert 0.75 <= first.buy.shares <= 2.0
    assert first.buy.confidence == 0.4


@pytest.mark.parametrize("draw, sells", [(0.9, ["Panic sell!"]), (0.1, [])])
def test_meme_panic_sell_is_a_coin_flip(ledger, memory, draw, sells):
    hold(ledger, "elon", "GME", shares=1.0, price=10.0)
    ctx = make_ctx(
        ledger, memory, "elon", quotes=[build_quote("GME", 9.0)], rng=ScriptedRandom([0.0, draw])
    )

    assert [s.reason for s in decide(ctx).sells] == sells


def test_meme_takes_tendies(ledger, memory):
    hold(ledger, "elon", "GME", shares=1.0, price=10.0)
    ctx = make_ctx(ledger, memory, "elon", quotes=[build_quote("GME", 11.5)])

    assert [s.reason for s in decide(ctx).sells] == ["Taking tendies"]


# ----------------------------------------------------------------------
# Growth
# ----------------------------------------------------------------------


def test_growth_buys_confirmed_uptrend(ledger, memory):
    ctx = make_ctx(
        ledger,
        memory,
        "cathy",
        quotes=[build_quote("NVDA", 100.0)],
        analyses=[
            build_analysis(
                "NVDA", 100.0, trend=Trend.BULLISH, above_month_avg=True, week_change=5.0
            )
        ],
    )

    buy = decide(ctx).buy

    assert buy.symbol == "NVDA"
    assert buy.score == pytest.approx(85)
    assert buy.shares == 0.0625
    assert buy.confidence == 0.7


def test_growth_overbought_overrides_stop_loss(ledger, memory):
    hold(ledger, "cathy", "NVDA")
    ctx = make_ctx(ledger, memory, "cathy", quotes=[build_quote("NVDA", 90.0)])
    ctx.analyses["NVDA"] = build_analysis("NVDA", 90.0, rsi=85, trend=Trend.BEARISH)

    sells = decide(ctx).sells

    assert [s.reason for s in sells] == ["Overbought - take profits"]


# ----------------------------------------------------------------------
# Momentum
# ----------------------------------------------------------------------


def test_momentum_chases_strongest_mover(ledger, memory):
    ctx = make_ctx(
        ledger,
        memory,
        "gordon",
        quotes=[build_quote("NVDA", 50.0), build_quote("XOM", 100.0)],
        analyses=[
            build_analysis("NVDA", 50.0, daily_change=3, week_change=4, trend=Trend.BULLISH, rsi=60),
            build_analysis("XOM", 100.0),
        ],
    )

    buy = decide(ctx).buy

    assert buy.symbol == "NVDA"
    assert buy.score == pytest.approx(77)
    assert buy.shares == 0.2
    assert buy.confidence == 0.6


def test_momentum_ignores_weak_tape(ledger, memory):
    ctx = make_ctx(ledger, memory, "gordon", analyses=[build_analysis("XOM", 100.0)])

    assert decide(ctx).buy is None


def test_momentum_sells_on_trend_reversal(ledger, memory):
    hold(ledger, "gordon", "XOM")
    ctx = make_ctx(
        ledger,
        memory,
        "gordon",
        quotes=[build_quote("XOM", 99.0)],
        analyses=[build_analysis("XOM", 99.0, trend=Trend.BEARISH)],
    )

    assert [s.reason for s in decide(ctx).sells] == ["Trend reversal"]


# ----------------------------------------------------------------------
# Hodl
# ----------------------------------------------------------------------


def test_hodl_buys_the_biggest_dip(ledger, memory):
    ctx = make_ctx(
        ledger,
        memory,
        "diamond",
        quotes=[build_quote("AAPL", 200.0), build_quote("SPY", 400.0)],
        analyses=[
            build_analysis("AAPL", 200.0, daily_change=-2.0, rsi=40),
            build_analysis("SPY", 400.0, daily_change=-0.5),
        ],
    )

    buy = decide(ctx).buy

    assert buy.symbol == "AAPL"
    assert buy.shares == 0.05
    assert buy.observation.startswith("Buying the dip")
    assert buy.confidence == 0.5


def test_hodl_steady_buy_when_no_dips(ledger, memory):
    ctx = make_ctx(
        ledger,
        memory,
        "diamond",
        quotes=[build_quote("SPY", 400.0), build_quote("QQQ", 300.0)],
        analyses=[
            build_analysis("SPY", 400.0, daily_change=0.5, week_change=1.0, volatility=1.0, rsi=45),
            build_analysis("QQQ", 300.0, daily_change=0.2, week_change=0.5, volatility=1.0, rsi=40),
        ],
    )

    buy = decide(ctx).buy

    assert buy.symbol == "QQQ"
    assert buy.shares == 0.025
    assert buy.observation.startswith("Steady buy")


def test_hodl_capitulates_only_on_deep_loss(ledger, memory):
    hold(ledger, "diamond", "SPY")
    ctx = make_ctx(ledger, memory, "diamond", quotes=[build_quote("SPY", 84.0)])

    assert [s.reason for s in decide(ctx).sells] == ["Even diamond hands have limits"]


# ----------------------------------------------------------------------
# Scalp
# ----------------------------------------------------------------------


@pytest.mark.parametrize(
    "price, reason", [(102.0, "Quick profit"), (98.0, "Quick stop-loss"), (101.0, None)]
)
def test_scalp_exit_band(ledger, memory, price, reason):
    hold(ledger, "paperhands", "AAPL")
    ctx = make_ctx(ledger, memory, "paperhands", quotes=[build_quote("AAPL", price)])

    assert [s.reason for s in decide(ctx).sells] == ([reason] if reason else [])


# ----------------------------------------------------------------------
# Technical
# ----------------------------------------------------------------------


def test_technical_buys_at_support_using_analysis_price(ledger, memory):
    ctx = make_ctx(
        ledger,
        memory,
        "quant",
        analyses=[
            build_analysis(
                "MSFT",
                100.0,
                support=99.0,
                rsi=35,
                trend=Trend.BULLISH,
                above_month_avg=True,
                signal=20,
            )
        ],
    )

    buy = decide(ctx).buy

    assert buy.symbol == "MSFT"
    assert buy.price == 100.0
    assert buy.score == pytest.approx(85)
    assert buy.shares == 0.0625
    assert buy.confidence == 0.9


def test_technical_stop_loss_wins_over_signal(ledger, memory):
    hold(ledger, "quant", "MSFT")
    ctx = make_ctx(
        ledger,
        memory,
        "quant",
        quotes=[build_quote("MSFT", 94.0)],
        analyses=[build_analysis("MSFT", 94.0, signal=-40, rsi=50)],
    )

    plan = decide(ctx)

    assert [s.reason for s in plan.sells] == ["Technical stop-loss"]
    assert plan.buy is None


def test_technical_takes_profit_when_overbought(ledger, memory):
    hold(ledger, "quant", "MSFT")
    ctx = make_ctx(
        ledger,
        memory,
        "quant",
        quotes=[build_quote("MSFT", 105.0)],
        analyses=[build_analysis("MSFT", 105.0, rsi=75)],
    )

    assert [s.reason for s in decide(ctx).sells] == ["RSI overbought signal"]
