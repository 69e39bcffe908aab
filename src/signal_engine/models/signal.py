"""Trading signal model — emitted by generators, merged by the aggregator."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, Field, model_validator

Direction = Literal["BUY", "SELL"]
MetadataValue = Union[str, int, float, bool, None]


class SignalType(str, Enum):
    """Strategy family that produced a signal."""

    TECHNICAL = "TECHNICAL"
    FUNDAMENTAL = "FUNDAMENTAL"
    NEWS = "NEWS"
    CORRELATION = "CORRELATION"
    SENTIMENT = "SENTIMENT"
    VOLUME = "VOLUME"
    PATTERN = "PATTERN"


class SignalStrength(str, Enum):
    WEAK = "WEAK"
    MODERATE = "MODERATE"
    STRONG = "STRONG"

    @property
    def rank(self) -> int:
        return _STRENGTH_RANK[self]


_STRENGTH_RANK = {
    SignalStrength.WEAK: 1,
    SignalStrength.MODERATE: 2,
    SignalStrength.STRONG: 3,
}


class SignalStatus(str, Enum):
    """Lifecycle state. ``active`` is initial, the rest are terminal."""

    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self is not SignalStatus.ACTIVE


class TradingSignal(BaseModel):
    """An actionable BUY/SELL recommendation with full trade parameters."""

    id: str | None = None
    symbol: str
    type: SignalType
    signal: Direction
    reason: str
    strength: SignalStrength
    timestamp: datetime
    price: Decimal
    entry_price: Decimal
    stop_loss: Decimal
    target_price: Decimal
    success_rate: float = Field(ge=0.0, le=1.0)
    timeframe: str = "1d"
    expiry: datetime
    risk_reward: str
    status: SignalStatus = SignalStatus.ACTIVE
    related_asset: str | None = None
    metadata: dict[str, MetadataValue] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_trade_geometry(self) -> TradingSignal:
        if self.signal == "BUY":
            ok = self.stop_loss < self.entry_price < self.target_price
        else:
            ok = self.target_price < self.entry_price < self.stop_loss
        if not ok:
            raise ValueError(
                f"{self.signal} signal for {self.symbol} has invalid levels: "
                f"stop={self.stop_loss} entry={self.entry_price} target={self.target_price}"
            )
        return self

    @property
    def dedup_key(self) -> tuple[str, str, str, datetime]:
        """Identity used to tell raw candidates apart before persistence."""
        return (self.symbol, self.type.value, self.signal, self.timestamp)


class SignalGeneratorResult(BaseModel):
    """Everything one generator produced for one market-data input."""

    signals: list[TradingSignal] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


def compute_risk_reward(
    direction: Direction,
    entry: Decimal,
    stop_loss: Decimal,
    target: Decimal,
) -> str:
    """Reward distance over risk distance, two decimals.

    Raises ValueError when either distance is not strictly positive.
    """
    if direction == "BUY":
        reward, risk = target - entry, entry - stop_loss
    else:
        reward, risk = entry - target, stop_loss - entry
    if reward <= 0 or risk <= 0:
        raise ValueError(f"non-positive reward/risk for {direction}: {reward}/{risk}")
    return f"{reward / risk:.2f}"


def rank_key(signal: TradingSignal) -> tuple[int, float]:
    """Sort key: strength first, then success rate (use with reverse=True)."""
    return (signal.strength.rank, signal.success_rate)
