"""Signal generator abstract base class and shared helpers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Sequence

from signal_engine.models import (
    Direction,
    MarketData,
    MetadataValue,
    SignalGeneratorResult,
    SignalStrength,
    SignalType,
    TradingSignal,
    compute_risk_reward,
)

if TYPE_CHECKING:
    from signal_engine.exchange.base import PriceFeed

DEFAULT_SUCCESS_RATE = 0.5


class SignalGenerator(ABC):
    """Base class for all signal generators.

    Subclasses set ``type`` and implement generate_signals(). Instantiate with
    the price feed (used to fetch history on demand) and keyword params from
    config to override defaults.
    """

    type: SignalType
    uses_news: bool = False

    def __init__(self, feed: PriceFeed | None = None, **params: Any) -> None:
        self.feed = feed
        self.params = params

    @abstractmethod
    async def generate_signals(
        self,
        market_data: MarketData,
        options: dict[str, Any] | None = None,
    ) -> SignalGeneratorResult:
        """Produce candidate signals for one instrument.

        Must not raise: on failure, log and return an empty result.
        """
        ...

    def create_signal(
        self,
        *,
        symbol: str,
        direction: Direction,
        reason: str,
        strength: SignalStrength,
        price: Decimal,
        stop_loss: Decimal,
        target_price: Decimal,
        success_rate: float,
        expiry_days: int,
        timeframe: str = "1d",
        metadata: dict[str, MetadataValue] | None = None,
        now: datetime | None = None,
    ) -> TradingSignal:
        """Build an active signal entered at *price*."""
        now = now or datetime.now(timezone.utc)
        return TradingSignal(
            symbol=symbol,
            type=self.type,
            signal=direction,
            reason=reason,
            strength=strength,
            timestamp=now,
            price=price,
            entry_price=price,
            stop_loss=stop_loss,
            target_price=target_price,
            success_rate=min(max(success_rate, 0.0), 1.0),
            timeframe=timeframe,
            expiry=now + timedelta(days=expiry_days),
            risk_reward=compute_risk_reward(direction, price, stop_loss, target_price),
            metadata=metadata or {},
        )


def backtest_success_rate(
    prices: Sequence[Decimal],
    direction: Direction,
    lookback: int = 20,
    horizon: int = 10,
    threshold: Decimal = Decimal("0.03"),
) -> float:
    """Share of recent entries where price moved *threshold* in our favour.

    Every one of the last *lookback* points that still has *horizon* bars
    after it is a hypothetical entry. BUY succeeds when the highest price in
    the next *horizon* bars is at least ``entry * (1 + threshold)``, SELL when
    the lowest is at most ``entry * (1 - threshold)``. Returns 0.5 with fewer
    than ``lookback + horizon`` prices.
    """
    if lookback <= 0 or len(prices) < lookback + horizon:
        return DEFAULT_SUCCESS_RATE

    window = prices[-(lookback + horizon):]
    successes = 0
    for i in range(lookback):
        entry = window[i]
        future = window[i + 1:i + 1 + horizon]
        if direction == "BUY":
            if max(future) >= entry * (1 + threshold):
                successes += 1
        elif min(future) <= entry * (1 - threshold):
            successes += 1
    return successes / lookback
