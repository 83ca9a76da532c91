"""Rule-based trading personalities and the executor that applies their plans."""

from .base import (
    BAD_SENTIMENT_THRESHOLD,
    MIN_CASH_TO_BUY,
    SENTIMENT_LOSS_STEP,
    SENTIMENT_WIN_STEP,
    BuyIntent,
    SellIntent,
    Strategy,
    StrategyContext,
    TradePlan,
)
from .executor import AgentRoundResult, ExecutionResult, StrategyExecutor
from .kinds import StrategyKind
from .registry import STRATEGY_CLASSES, get_strategy

__all__ = [
    "BAD_SENTIMENT_THRESHOLD",
    "MIN_CASH_TO_BUY",
    "SENTIMENT_LOSS_STEP",
    "SENTIMENT_WIN_STEP",
    "AgentRoundResult",
    "BuyIntent",
    "ExecutionResult",
    "STRATEGY_CLASSES",
    "SellIntent",
    "Strategy",
    "StrategyContext",
    "StrategyExecutor",
    "StrategyKind",
    "TradePlan",
    "get_strategy",
]
