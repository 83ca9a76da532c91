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
from .store import MemoryStore, clamp_unit

__all__ = [
    "GENERAL_SYMBOL",
    "STOCK_SENTIMENT",
    "Belief",
    "MemorySummary",
    "MemoryStore",
    "Observation",
    "Reflection",
    "SymbolStats",
    "TradeOutcome",
    "WinRate",
    "clamp_unit",
]
