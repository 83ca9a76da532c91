from .analysis import analyze_bars, compute_rsi, compute_signal
from .client import YahooMarketData
from .hours import is_market_open, next_market_close, next_market_open
from .models import Analysis, Quote, TopMovers, Trend
from .source import MarketDataSource
from .universe import SECTORS, TRADEABLE_STOCKS

__all__ = [
    "Analysis",
    "MarketDataSource",
    "Quote",
    "SECTORS",
    "TRADEABLE_STOCKS",
    "TopMovers",
    "Trend",
    "YahooMarketData",
    "analyze_bars",
    "compute_rsi",
    "compute_signal",
    "is_market_open",
    "next_market_close",
    "next_market_open",
]
