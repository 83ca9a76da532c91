"""Collaborator contract the arena needs from a market-data provider."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .models import Analysis, Quote, TopMovers


@runtime_checkable
class MarketDataSource(Protocol):
    async def get_quote(self, symbol: str) -> Quote: ...

    async def get_multiple_quotes(self, symbols: list[str]) -> dict[str, Quote]: ...

    async def analyze_multiple(self, symbols: list[str]) -> dict[str, Analysis]: ...

    async def get_top_movers(self) -> TopMovers: ...

    def is_market_open(self) -> bool: ...
