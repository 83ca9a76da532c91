"""The seven founding personalities. Keys are stable across generations."""

from stockracer.strategies import StrategyKind

from .models import AgentTemplate

AGENT_TEMPLATES: dict[str, AgentTemplate] = {
    "warren": AgentTemplate(
        name="Warren",
        personality="Patient value investor",
        avatar="🧓",
        color="#2563eb",
        strategy=StrategyKind.VALUE,
        risk_tolerance=0.3,
        trade_frequency=0.3,
        preferred_symbols=["JNJ", "KO", "PG", "JPM", "BAC", "WMT", "XOM", "CVX"],
        avoid_symbols=["GME", "AMC", "RIVN", "LCID"],
    ),
    "elon": AgentTemplate(
        name="Elon",
        personality="Chaotic risk-taker, YOLO energy",
        avatar="🚀",
        color="#dc2626",
        strategy=StrategyKind.MEME,
        risk_tolerance=0.9,
        trade_frequency=0.85,
        preferred_symbols=["TSLA", "GME", "AMC", "PLTR", "NVDA"],
    ),
    "cathy": AgentTemplate(
        name="Cathy",
        personality="Innovation believer, disruption focused",
        avatar="🔮",
        color="#7c3aed",
        strategy=StrategyKind.GROWTH,
        risk_tolerance=0.7,
        trade_frequency=0.6,
        preferred_symbols=["TSLA", "SHOP", "NET", "PLTR", "NVDA", "CRM"],
        avoid_symbols=["XOM", "CVX", "KO"],
    ),
    "gordon": AgentTemplate(
        name="Gordon",
        personality="Greed is good, aggressive momentum",
        avatar="🦈",
        color="#059669",
        strategy=StrategyKind.MOMENTUM,
        risk_tolerance=0.8,
        trade_frequency=0.7,
    ),
    "diamond": AgentTemplate(
        name="Diamond",
        personality="Never sells, buys every dip",
        avatar="💎",
        color="#0ea5e9",
        strategy=StrategyKind.HODL,
        risk_tolerance=0.6,
        trade_frequency=0.2,
        preferred_symbols=["SPY", "QQQ", "AAPL", "MSFT", "GOOGL", "AMZN"],
    ),
    "paperhands": AgentTemplate(
        name="Paperhands",
        personality="Quick profits, tight stop-losses",
        avatar="📄",
        color="#f59e0b",
        strategy=StrategyKind.SCALP,
        risk_tolerance=0.2,
        trade_frequency=0.9,
        avoid_symbols=["GME", "AMC"],
    ),
    "quant": AgentTemplate(
        name="Quant",
        personality="Pure data, no emotions",
        avatar="🤖",
        color="#6366f1",
        strategy=StrategyKind.TECHNICAL,
        risk_tolerance=0.5,
        trade_frequency=0.6,
    ),
}
