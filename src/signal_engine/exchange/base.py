"""Feed interfaces consumed by generators and the signal service."""

from __future__ import annotations

from typing import Protocol

from signal_engine.models import HistoricalData, NewsItem, PriceQuote


class PriceFeed(Protocol):
    """Current prices and candle history, one call per symbol."""

    async def get_current_price(self, symbol: str) -> PriceQuote: ...

    async def get_historical_candles(
        self,
        symbol: str,
        interval: str,
        count: int,
    ) -> HistoricalData: ...


class NewsFeed(Protocol):
    async def get_recent_news(self, symbol: str) -> list[NewsItem]: ...
