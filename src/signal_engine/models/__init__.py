"""Pydantic domain models."""

from signal_engine.models.market import HistoricalData, MarketData, NewsItem, PriceQuote
from signal_engine.models.signal import (
    Direction,
    MetadataValue,
    SignalGeneratorResult,
    SignalStatus,
    SignalStrength,
    SignalType,
    TradingSignal,
    compute_risk_reward,
    rank_key,
)

__all__ = [
    "Direction",
    "HistoricalData",
    "MarketData",
    "MetadataValue",
    "NewsItem",
    "PriceQuote",
    "SignalGeneratorResult",
    "SignalStatus",
    "SignalStrength",
    "SignalType",
    "TradingSignal",
    "compute_risk_reward",
    "rank_key",
]
