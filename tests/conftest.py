"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import BigInteger, Integer, JSON, create_engine
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import sessionmaker

from signal_engine.db.base import Base
from signal_engine.models import (
    HistoricalData,
    NewsItem,
    PriceQuote,
    SignalStrength,
    SignalType,
    TradingSignal,
    compute_risk_reward,
)

# Import table modules so Base.metadata is populated
import signal_engine.db.tables  # noqa: F401

START = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_history(closes, start: datetime = START) -> HistoricalData:
    """Daily candles where open/high/low hug each close."""
    closes = [Decimal(str(c)) for c in closes]
    return HistoricalData(
        timestamps=[start + timedelta(days=i) for i in range(len(closes))],
        opens=list(closes),
        highs=[c + 1 for c in closes],
        lows=[c - 1 for c in closes],
        closes=closes,
        volumes=[Decimal(1000)] * len(closes),
    )


class FakeFeed:
    """In-process PriceFeed: fixed prices and candle histories per symbol.

    Symbols listed in *failing* raise on every call. Call counts are kept so
    tests can assert on fetches.
    """

    def __init__(self, prices=None, histories=None, failing=()):
        self.prices = {s: Decimal(str(p)) for s, p in (prices or {}).items()}
        self.histories = dict(histories or {})
        self.failing = set(failing)
        self.price_calls = 0
        self.history_calls = 0
        self.closed = False

    async def get_current_price(self, symbol: str) -> PriceQuote:
        self.price_calls += 1
        if symbol in self.failing:
            raise ConnectionError(f"feed down for {symbol}")
        return PriceQuote(symbol=symbol, price=self.prices[symbol])

    async def get_historical_candles(self, symbol: str, interval: str, count: int) -> HistoricalData:
        self.history_calls += 1
        if symbol in self.failing:
            raise ConnectionError(f"feed down for {symbol}")
        return self.histories[symbol]

    async def close(self) -> None:
        self.closed = True


class FakeNewsFeed:
    def __init__(self, items=None):
        self.items = list(items or [])
        self.calls = 0

    async def get_recent_news(self, symbol: str) -> list[NewsItem]:
        self.calls += 1
        return list(self.items)


@pytest.fixture
def session_factory():
    """In-memory SQLite sessionmaker with all tables created.

    Patches JSONB→JSON and BigInteger→Integer for SQLite compatibility.
    """
    engine = create_engine("sqlite:///:memory:")

    # SQLite doesn't support schemas, JSONB, or BigInteger autoincrement
    for table in Base.metadata.tables.values():
        table.schema = None
        for col in table.columns:
            if isinstance(col.type, JSONB):
                col.type = JSON()
            if isinstance(col.type, BigInteger):
                col.type = Integer()

    Base.metadata.create_all(engine)

    yield sessionmaker(engine, expire_on_commit=False)
    engine.dispose()


def make_signal(
    symbol: str = "BTCUSDT",
    direction: str = "BUY",
    *,
    type: SignalType = SignalType.TECHNICAL,
    strength: SignalStrength = SignalStrength.MODERATE,
    price: str = "100",
    stop_loss: str | None = None,
    target_price: str | None = None,
    success_rate: float = 0.6,
    reason: str = "test signal",
    timestamp: datetime = START,
    expiry_days: int = 7,
    **overrides,
) -> TradingSignal:
    """Valid signal with 5% stop and 10% target on the right sides of *price*."""
    entry = Decimal(price)
    if direction == "BUY":
        stop = Decimal(stop_loss) if stop_loss else entry * Decimal("0.95")
        target = Decimal(target_price) if target_price else entry * Decimal("1.10")
    else:
        stop = Decimal(stop_loss) if stop_loss else entry * Decimal("1.05")
        target = Decimal(target_price) if target_price else entry * Decimal("0.90")
    return TradingSignal(
        symbol=symbol,
        type=type,
        signal=direction,
        reason=reason,
        strength=strength,
        timestamp=timestamp,
        price=entry,
        entry_price=entry,
        stop_loss=stop,
        target_price=target,
        success_rate=success_rate,
        expiry=timestamp + timedelta(days=expiry_days),
        risk_reward=compute_risk_reward(direction, entry, stop, target),
        **overrides,
    )
