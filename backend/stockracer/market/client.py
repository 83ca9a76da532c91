from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable

import httpx

from stockracer.config import MarketConfig
from stockracer.exceptions import (
    MarketDataError,
    QuoteUnavailable,
    UpstreamRateLimited,
    UpstreamUnavailable,
)

from .analysis import analyze_bars
from .hours import is_market_open
from .models import Analysis, Quote, TopMovers
from .universe import TRADEABLE_STOCKS

logger = logging.getLogger(__name__)


class YahooMarketData:
    """Async Yahoo chart client with request throttling and TTL caches."""

    def __init__(
        self,
        config: MarketConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        universe: list[str] | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config or MarketConfig()
        self.universe = universe or TRADEABLE_STOCKS
        self._transport = transport
        self._clock = clock
        self._sleep = sleep
        self._client: httpx.AsyncClient | None = None
        self._last_request = 0.0
        self._quotes: dict[str, tuple[float, Quote]] = {}
        self._analyses: dict[str, tuple[float, Analysis]] = {}

    async def __aenter__(self) -> YahooMarketData:
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout_seconds,
            headers={
                "User-Agent": self.config.user_agent,
                "Accept": "application/json",
            },
            transport=self._transport,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Closed YahooMarketData")

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "YahooMarketData must be used as async context manager"
            )
        return self._client

    async def _throttle(self) -> None:
        interval = self.config.min_request_interval_ms / 1000
        elapsed = self._clock() - self._last_request
        if interval > 0 and elapsed < interval:
            await self._sleep(interval - elapsed)
        self._last_request = self._clock()

    async def _chart(self, symbol: str, range_: str) -> dict[str, Any]:
        """Fetch one chart result, retrying rate limits, 5xx and timeouts."""
        retry_count = 0
        last_error: Exception | None = None
        last_status: int | None = None

        while retry_count < self.config.max_retries:
            try:
                await self._throttle()
                response = await self.client.get(
                    f"/{symbol}", params={"interval": "1d", "range": range_}
                )

                if response.status_code == 404:
                    raise QuoteUnavailable(f"Unknown symbol: {symbol}", status_code=404)
                elif response.status_code == 429:
                    last_status = 429
                    wait_time = 2 ** retry_count
                    logger.warning(f"Rate limited on {symbol}, waiting {wait_time}s...")
                    await self._sleep(wait_time)
                    retry_count += 1
                    continue
                elif response.status_code >= 500:
                    last_status = response.status_code
                    wait_time = 2 ** retry_count
                    logger.warning(
                        f"Server error {response.status_code} on {symbol}, "
                        f"retrying in {wait_time}s..."
                    )
                    await self._sleep(wait_time)
                    retry_count += 1
                    continue
                elif response.status_code >= 400:
                    raise QuoteUnavailable(
                        f"Chart request for {symbol} failed: {response.status_code}",
                        status_code=response.status_code,
                    )

                try:
                    results = (response.json().get("chart") or {}).get("result") or []
                except (ValueError, AttributeError) as e:
                    raise QuoteUnavailable(f"Malformed chart response for {symbol}") from e
                if not results or not isinstance(results[0], dict):
                    raise QuoteUnavailable(f"No chart data for {symbol}")
                return results[0]

            except httpx.TimeoutException as e:
                last_error = e
                last_status = None
                retry_count += 1
                if retry_count < self.config.max_retries:
                    logger.warning(f"Timeout on {symbol}, retrying ({retry_count})...")
                    await self._sleep(2)

            except httpx.RequestError as e:
                last_error = e
                logger.error(f"Network error fetching {symbol}: {e}")
                break

        if last_status == 429:
            raise UpstreamRateLimited(
                f"Rate limited fetching {symbol} after {retry_count} retries",
                status_code=429,
            )
        raise UpstreamUnavailable(
            f"Request for {symbol} failed after {retry_count} retries: "
            f"{last_error or last_status}",
            status_code=last_status,
        )

    def _fresh(self, cache: dict[str, tuple[float, Any]], key: str, ttl: float) -> Any:
        entry = cache.get(key)
        if entry and self._clock() - entry[0] < ttl:
            return entry[1]
        return None

    # ------------------------------------------------------------------
    # Quotes
    # ------------------------------------------------------------------

    async def get_quote(self, symbol: str) -> Quote:
        cached = self._fresh(self._quotes, symbol, self.config.quote_cache_seconds)
        if cached is not None:
            return cached

        result = await self._chart(symbol, "1d")
        try:
            quote = Quote.from_chart(symbol, result)
        except (ValueError, TypeError, AttributeError, IndexError, KeyError) as e:
            raise QuoteUnavailable(str(e)) from e
        self._quotes[symbol] = (self._clock(), quote)
        return quote

    async def get_multiple_quotes(self, symbols: list[str]) -> dict[str, Quote]:
        """Quotes for every symbol that resolves; stale cache covers failures."""
        quotes: dict[str, Quote] = {}
        for symbol in symbols:
            try:
                quotes[symbol] = await self.get_quote(symbol)
            except MarketDataError as e:
                stale = self._quotes.get(symbol)
                if stale:
                    logger.debug(f"Using stale quote for {symbol}: {e}")
                    quotes[symbol] = stale[1]
                else:
                    logger.debug(f"No quote for {symbol}: {e}")
        return quotes

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def analyze(self, symbol: str) -> Analysis | None:
        cached = self._fresh(self._analyses, symbol, self.config.analysis_cache_seconds)
        if cached is not None:
            return cached

        result = await self._chart(symbol, "1mo")
        try:
            bars = ((result.get("indicators") or {}).get("quote") or [{}])[0] or {}
            analysis = analyze_bars(
                symbol, bars.get("close"), bars.get("high"), bars.get("low")
            )
        except (AttributeError, IndexError, KeyError, TypeError) as e:
            raise QuoteUnavailable(f"Malformed chart bars for {symbol}") from e
        if analysis is not None:
            self._analyses[symbol] = (self._clock(), analysis)
        return analysis

    async def analyze_multiple(self, symbols: list[str]) -> dict[str, Analysis]:
        analyses: dict[str, Analysis] = {}
        for symbol in symbols:
            try:
                analysis = await self.analyze(symbol)
            except MarketDataError as e:
                logger.debug(f"No analysis for {symbol}: {e}")
                continue
            if analysis is not None:
                analyses[symbol] = analysis
        return analyses

    # ------------------------------------------------------------------
    # Movers & hours
    # ------------------------------------------------------------------

    async def get_top_movers(self) -> TopMovers:
        """Biggest movers among cached universe quotes."""
        cached = [self._quotes[s][1] for s in self.universe if s in self._quotes]
        ranked = sorted(cached, key=lambda q: abs(q.change_percent), reverse=True)
        limit = self.config.movers_limit
        return TopMovers(
            gainers=[q for q in ranked if q.change_percent > 0][:limit],
            losers=[q for q in ranked if q.change_percent < 0][:limit],
        )

    def is_market_open(self) -> bool:
        return is_market_open()

    def cached_count(self) -> int:
        return sum(1 for s in self.universe if s in self._quotes)
