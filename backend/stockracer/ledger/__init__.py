from .engine import Ledger, QuoteLookup, generate_trade_id, round_shares
from .models import Performance, Portfolio, Position, Snapshot, Trade, TradeSide

__all__ = [
    "Ledger",
    "QuoteLookup",
    "generate_trade_id",
    "round_shares",
    "Performance",
    "Portfolio",
    "Position",
    "Snapshot",
    "Trade",
    "TradeSide",
]
