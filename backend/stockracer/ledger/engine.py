"""Trading ledger: per-agent cash/positions plus the global trade log.

The ledger knows nothing about strategies. Agents are opaque keys. Every
mutation is validated before any state changes, so a rejected buy or sell
leaves the portfolio untouched, and every successful mutation rewrites the
portfolios table (and the trade log when a trade was appended).
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Callable
from uuid import uuid4

from stockracer.exceptions import (
    InsufficientFunds,
    InsufficientShares,
    InvalidPrice,
    InvalidQuantity,
    PortfolioNotFound,
)
from stockracer.storage import Table

from .models import Performance, Portfolio, Position, Snapshot, Trade, TradeSide, utc_now

logger = logging.getLogger(__name__)

SHARE_DECIMALS = 4
DEFAULT_HISTORY_LIMIT = 100
# Remaining share counts below this are treated as a closed position
_ZERO_SHARES = 1e-9

QuoteLookup = Callable[[str], float]


def round_shares(shares: float) -> float:
    """Round a share count to the supported fractional precision."""
    return round(shares, SHARE_DECIMALS)


def generate_trade_id() -> str:
    """Generate unique trade ID with trade_ prefix."""
    return f"trade_{uuid4().hex[:12]}"


def _check_price(price: float, agent_key: str) -> None:
    if not isinstance(price, (int, float)) or not math.isfinite(price) or price <= 0:
        raise InvalidPrice(f"Invalid price: {price}", agent_key=agent_key)


class Ledger:
    """Owns every agent's portfolio and the append-only trade log."""

    def __init__(
        self,
        portfolios_table: Table,
        trades_table: Table,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        self._portfolios_table = portfolios_table
        self._trades_table = trades_table
        self.history_limit = history_limit
        self.portfolios: dict[str, Portfolio] = self._load_portfolios()
        self.trades: list[Trade] = self._load_trades()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load_portfolios(self) -> dict[str, Portfolio]:
        raw = self._portfolios_table.load() or {}
        return {key: Portfolio.model_validate(data) for key, data in raw.items()}

    def _load_trades(self) -> list[Trade]:
        raw = self._trades_table.load() or []
        return [Trade.model_validate(item) for item in raw]

    def _save_portfolios(self) -> None:
        self._portfolios_table.save(
            {key: p.model_dump(mode="json") for key, p in self.portfolios.items()}
        )

    def _save_trades(self) -> None:
        self._trades_table.save([t.model_dump(mode="json") for t in self.trades])

    # ------------------------------------------------------------------
    # Portfolio lifecycle
    # ------------------------------------------------------------------

    def initialize(self, agent_key: str, starting_cash: float) -> Portfolio:
        """Create a portfolio if absent. Idempotent."""
        portfolio = self.portfolios.get(agent_key)
        if portfolio is not None:
            return portfolio

        portfolio = Portfolio(
            cash=starting_cash,
            starting_value=starting_cash,
            history=[Snapshot(value=starting_cash)],
        )
        self.portfolios[agent_key] = portfolio
        self._save_portfolios()
        logger.info(f"Initialized portfolio for {agent_key} with ${starting_cash:,.2f}")
        return portfolio

    def get_portfolio(self, agent_key: str) -> Portfolio | None:
        return self.portfolios.get(agent_key)

    def require_portfolio(self, agent_key: str) -> Portfolio:
        portfolio = self.portfolios.get(agent_key)
        if portfolio is None:
            raise PortfolioNotFound(f"Portfolio not found: {agent_key}", agent_key=agent_key)
        return portfolio

    def reset_portfolio(self, agent_key: str, starting_cash: float) -> Portfolio:
        """Replace a portfolio with a fresh one holding only starting cash."""
        self.portfolios[agent_key] = Portfolio(
            cash=starting_cash,
            starting_value=starting_cash,
            history=[Snapshot(value=starting_cash)],
        )
        self._save_portfolios()
        logger.info(f"Reset portfolio for {agent_key}")
        return self.portfolios[agent_key]

    def delete_portfolio(self, agent_key: str) -> None:
        if self.portfolios.pop(agent_key, None) is not None:
            self._save_portfolios()
            logger.info(f"Deleted portfolio for {agent_key}")

    # ------------------------------------------------------------------
    # Trading
    # ------------------------------------------------------------------

    def buy(self, agent_key: str, symbol: str, shares: float, price: float) -> Trade:
        """Buy fractional shares at price, merging into any existing position."""
        portfolio = self.require_portfolio(agent_key)

        shares = round_shares(shares)
        if shares <= 0:
            raise InvalidQuantity(f"Invalid share amount: {shares}", agent_key=agent_key)
        _check_price(price, agent_key)

        cost = shares * price
        if cost > portfolio.cash:
            raise InsufficientFunds(
                f"Insufficient funds: need ${cost:,.4f}, have ${portfolio.cash:,.4f}",
                agent_key=agent_key,
            )

        existing = portfolio.positions.get(symbol)
        if existing is None:
            position = Position(shares=shares, avg_cost=price)
        else:
            total_shares = existing.shares + shares
            total_cost = existing.shares * existing.avg_cost + cost
            position = Position(
                shares=total_shares,
                avg_cost=total_cost / total_shares,
                opened_at=existing.opened_at,
            )

        trade = Trade(
            id=generate_trade_id(),
            agent_key=agent_key,
            side=TradeSide.BUY,
            symbol=symbol,
            shares=shares,
            price=price,
            total=cost,
        )

        portfolio.cash -= cost
        portfolio.positions[symbol] = position
        self.trades.append(trade)

        self._save_portfolios()
        self._save_trades()
        logger.debug(f"{agent_key} BUY {shares} {symbol} @ ${price:.2f}")
        return trade

    def sell(self, agent_key: str, symbol: str, shares: float, price: float) -> Trade:
        """Sell shares at price; the trade carries realized P&L against avg cost."""
        portfolio = self.require_portfolio(agent_key)

        if shares <= 0:
            raise InvalidQuantity(f"Invalid share amount: {shares}", agent_key=agent_key)
        _check_price(price, agent_key)

        position = portfolio.positions.get(symbol)
        if position is None or position.shares < shares:
            held = position.shares if position else 0
            raise InsufficientShares(
                f"Insufficient shares of {symbol}: want {shares}, hold {held}",
                agent_key=agent_key,
            )

        proceeds = shares * price
        pnl = proceeds - shares * position.avg_cost
        remaining = position.shares - shares

        trade = Trade(
            id=generate_trade_id(),
            agent_key=agent_key,
            side=TradeSide.SELL,
            symbol=symbol,
            shares=shares,
            price=price,
            total=proceeds,
            pnl=pnl,
        )

        portfolio.cash += proceeds
        if remaining <= _ZERO_SHARES:
            del portfolio.positions[symbol]
        else:
            position.shares = remaining
        self.trades.append(trade)

        self._save_portfolios()
        self._save_trades()
        logger.debug(f"{agent_key} SELL {shares} {symbol} @ ${price:.2f} pnl=${pnl:.2f}")
        return trade

    # ------------------------------------------------------------------
    # Valuation & performance
    # ------------------------------------------------------------------

    def valuate(self, agent_key: str, quote_lookup: QuoteLookup) -> float:
        """Cash plus positions marked to quote; avg cost stands in for missing quotes."""
        portfolio = self.portfolios.get(agent_key)
        if portfolio is None:
            return 0.0

        total = portfolio.cash
        for symbol, position in portfolio.positions.items():
            try:
                price = quote_lookup(symbol)
                if price is None or not math.isfinite(price) or price <= 0:
                    raise ValueError(f"unusable price {price!r}")
            except Exception as e:
                logger.debug(f"Valuing {symbol} at avg cost for {agent_key}: {e}")
                price = position.avg_cost
            total += position.shares * price
        return total

    def snapshot(self, agent_key: str, value: float) -> None:
        """Append a value snapshot, keeping only the most recent entries."""
        portfolio = self.portfolios.get(agent_key)
        if portfolio is None:
            return

        portfolio.history.append(Snapshot(value=value))
        if len(portfolio.history) > self.history_limit:
            portfolio.history = portfolio.history[-self.history_limit:]
        self._save_portfolios()

    def performance(self, agent_key: str) -> Performance | None:
        portfolio = self.portfolios.get(agent_key)
        if portfolio is None:
            return None

        start_value = portfolio.starting_value
        history = portfolio.history
        current_value = history[-1].value if history else start_value

        period_returns = []
        for prev, curr in zip(history, history[1:]):
            if prev.value:
                period_returns.append((curr.value - prev.value) / prev.value * 100)

        return Performance(
            start_value=start_value,
            current_value=current_value,
            total_return=current_value - start_value,
            total_return_percent=(
                (current_value - start_value) / start_value * 100 if start_value else 0.0
            ),
            period_returns=period_returns,
            trades_count=self.trades_count(agent_key),
        )

    # ------------------------------------------------------------------
    # Trade log queries
    # ------------------------------------------------------------------

    def trades_count(self, agent_key: str) -> int:
        return sum(1 for t in self.trades if t.agent_key == agent_key)

    def get_trade_history(self, agent_key: str, limit: int = 50) -> list[Trade]:
        """Most recent trades for one agent, newest first."""
        trades = [t for t in self.trades if t.agent_key == agent_key]
        return sorted(reversed(trades), key=lambda t: t.timestamp, reverse=True)[:limit]

    def get_all_trades(self, limit: int = 50) -> list[Trade]:
        """Most recent trades across all agents, newest first."""
        return sorted(reversed(self.trades), key=lambda t: t.timestamp, reverse=True)[:limit]

    def trades_on(self, day: date | None = None) -> list[Trade]:
        """Trades executed on a UTC calendar day (default today)."""
        day = day or utc_now().date()
        return [t for t in self.trades if t.timestamp.date() == day]
