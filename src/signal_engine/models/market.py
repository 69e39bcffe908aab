"""Market data models — price snapshots, candle history, news."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator


class HistoricalData(BaseModel):
    """Parallel OHLCV sequences ordered oldest to newest."""

    timestamps: list[datetime] = Field(default_factory=list)
    opens: list[Decimal] = Field(default_factory=list)
    highs: list[Decimal] = Field(default_factory=list)
    lows: list[Decimal] = Field(default_factory=list)
    closes: list[Decimal] = Field(default_factory=list)
    volumes: list[Decimal] = Field(default_factory=list)

    @model_validator(mode="after")
    def _equal_lengths(self) -> HistoricalData:
        lengths = {
            len(self.timestamps),
            len(self.opens),
            len(self.highs),
            len(self.lows),
            len(self.closes),
            len(self.volumes),
        }
        if len(lengths) > 1:
            raise ValueError("historical sequences must all have the same length")
        return self

    def __len__(self) -> int:
        return len(self.closes)


class NewsItem(BaseModel):
    """A news headline related to one or more instruments."""

    title: str
    source: str
    url: str
    published_at: datetime
    summary: str | None = None
    related_symbols: list[str] = Field(default_factory=list)
    sentiment: float | None = None


class PriceQuote(BaseModel):
    """Current price of one instrument as reported by the feed."""

    symbol: str
    price: Decimal
    change: Decimal | None = None
    change_percent: Decimal | None = None


class MarketData(BaseModel):
    """Current snapshot of one instrument, passed to signal generators.

    ``historical_data`` is optional; generators fetch it on demand when absent.
    """

    symbol: str
    price: Decimal
    change: Decimal | None = None
    change_percent: Decimal | None = None
    volume: Decimal | None = None
    high: Decimal | None = None
    low: Decimal | None = None
    open: Decimal | None = None
    is_crypto: bool = True
    historical_data: HistoricalData | None = None
    news: list[NewsItem] = Field(default_factory=list)
