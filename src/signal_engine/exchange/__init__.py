"""Market data feeds."""

from signal_engine.exchange.base import NewsFeed, PriceFeed
from signal_engine.exchange.binance import BinanceClient

__all__ = ["BinanceClient", "NewsFeed", "PriceFeed"]
