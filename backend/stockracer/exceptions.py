"""Exception hierarchy shared by the ledger, market data and arena."""


class StockRacerError(Exception):
    """Base exception for StockRacer errors."""


# ============================================================================
# Ledger
# ============================================================================


class LedgerError(StockRacerError):
    """A trade or portfolio operation was rejected."""

    def __init__(self, message: str, agent_key: str | None = None):
        super().__init__(message)
        self.agent_key = agent_key


class InvalidQuantity(LedgerError):
    """Share count is not positive after rounding."""

    pass


class InvalidPrice(LedgerError):
    """Trade price is not a positive finite number."""

    pass


class InsufficientFunds(LedgerError):
    """Buy cost exceeds available cash."""

    pass


class InsufficientShares(LedgerError):
    """Sell quantity exceeds the held position."""

    pass


class PortfolioNotFound(LedgerError):
    """No portfolio exists for the agent key."""

    pass


# ============================================================================
# Market data
# ============================================================================


class MarketDataError(StockRacerError):
    """Base exception for market-data failures."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class QuoteUnavailable(MarketDataError):
    """No quote could be obtained for a symbol."""

    pass


class UpstreamRateLimited(MarketDataError):
    """Provider kept rate limiting after all retries."""

    pass


class UpstreamUnavailable(MarketDataError):
    """Provider errored or was unreachable after all retries."""

    pass
