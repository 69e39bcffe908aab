"""Technical indicators — pure functions on price series.

Series are ordered oldest to newest. Functions that produce a series return an
empty list when the input is shorter than the lookback; functions that produce
a single value return None.
"""

from __future__ import annotations

from decimal import Decimal
from statistics import mean
from typing import Literal, NamedTuple, Sequence

Trend = Literal["up", "down", "sideways"]
LevelKind = Literal["support", "resistance"]

_ZERO = Decimal(0)
_HUNDRED = Decimal(100)


class MACD(NamedTuple):
    macd_line: list[Decimal]
    signal_line: list[Decimal]
    histogram: list[Decimal]


class BollingerBands(NamedTuple):
    upper: list[Decimal]
    middle: list[Decimal]
    lower: list[Decimal]


class StochRSI(NamedTuple):
    k: Decimal
    d: Decimal


def sma(prices: Sequence[Decimal], period: int) -> list[Decimal]:
    """Simple moving average, one value per complete window.

    Output length is ``len(prices) - period + 1``, or empty if the series is
    shorter than *period*.
    """
    if period <= 0 or len(prices) < period:
        return []
    window_sum = sum(prices[:period], _ZERO)
    values = [window_sum / period]
    for i in range(period, len(prices)):
        window_sum += prices[i] - prices[i - period]
        values.append(window_sum / period)
    return values


def ema(prices: Sequence[Decimal], period: int) -> list[Decimal]:
    """Exponential moving average seeded with the first SMA(period) value."""
    if period <= 0 or len(prices) < period:
        return []
    k = Decimal(2) / (period + 1)
    values = [sum(prices[:period], _ZERO) / period]
    for price in prices[period:]:
        values.append(price * k + values[-1] * (1 - k))
    return values


def rsi_series(prices: Sequence[Decimal], period: int = 14) -> list[Decimal]:
    """Relative Strength Index for every bar after the seed window.

    Uses Wilder's smoothing. A zero average loss saturates to 100.
    """
    if len(prices) < period + 1:
        return []

    deltas = [prices[i] - prices[i - 1] for i in range(1, len(prices))]
    gains = [d if d > 0 else _ZERO for d in deltas]
    losses = [-d if d < 0 else _ZERO for d in deltas]

    # Seed with simple average of first *period* changes
    avg_gain = Decimal(mean(gains[:period]))
    avg_loss = Decimal(mean(losses[:period]))
    values = [_rsi_from_averages(avg_gain, avg_loss)]

    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period
        values.append(_rsi_from_averages(avg_gain, avg_loss))
    return values


def _rsi_from_averages(avg_gain: Decimal, avg_loss: Decimal) -> Decimal:
    if avg_loss == 0:
        return _HUNDRED
    rs = avg_gain / avg_loss
    return _HUNDRED - _HUNDRED / (1 + rs)


def rsi(closes: Sequence[Decimal], period: int = 14) -> Decimal | None:
    """Latest RSI value in [0, 100], or None with fewer than ``period + 1`` points."""
    values = rsi_series(closes, period)
    return values[-1] if values else None


def stoch_rsi(
    prices: Sequence[Decimal],
    period: int = 14,
    smooth: int = 3,
) -> StochRSI | None:
    """Stochastic RSI: where the latest RSI sits within its recent range.

    %K scales the last RSI to [0, 100] against the previous *period* RSI
    values; %D is the mean of the last *smooth* %K values. A flat RSI window
    reads 50. None until ``2 * period + smooth - 1`` prices are available.
    """
    values = rsi_series(prices, period)
    if len(values) < period + smooth - 1:
        return None

    ks = []
    for end in range(len(values) - smooth + 1, len(values) + 1):
        window = values[end - period:end]
        low, high = min(window), max(window)
        if high == low:
            ks.append(Decimal(50))
        else:
            ks.append((window[-1] - low) / (high - low) * _HUNDRED)
    return StochRSI(k=ks[-1], d=sum(ks, _ZERO) / smooth)


def macd(
    prices: Sequence[Decimal],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MACD:
    """MACD line, signal line and histogram.

    The MACD line spans the slow EMA; the histogram is aligned with the
    signal line (both end on the latest bar).
    """
    if len(prices) < max(fast, slow) + signal:
        return MACD([], [], [])

    fast_ema = ema(prices, fast)
    slow_ema = ema(prices, slow)
    # Both end on the latest bar; trim the longer one from the front
    offset = len(fast_ema) - len(slow_ema)
    if offset >= 0:
        macd_line = [f - s for f, s in zip(fast_ema[offset:], slow_ema)]
    else:
        macd_line = [f - s for f, s in zip(fast_ema, slow_ema[-offset:])]

    signal_line = ema(macd_line, signal)
    tail = macd_line[len(macd_line) - len(signal_line):]
    histogram = [m - s for m, s in zip(tail, signal_line)]
    return MACD(macd_line, signal_line, histogram)


def bollinger_bands(
    closes: Sequence[Decimal],
    period: int = 20,
    num_std: int | float = 2,
) -> BollingerBands:
    """Bollinger Bands (SMA +/- num_std * population stdev) for every window."""
    middle = sma(closes, period)
    if not middle:
        return BollingerBands([], [], [])

    multiplier = Decimal(str(num_std))
    upper: list[Decimal] = []
    lower: list[Decimal] = []
    for i, mid in enumerate(middle):
        window = closes[i:i + period]
        variance = sum(((p - mid) ** 2 for p in window), _ZERO) / period
        offset = variance.sqrt() * multiplier
        upper.append(mid + offset)
        lower.append(mid - offset)
    return BollingerBands(upper, middle, lower)


def atr(
    highs: Sequence[Decimal],
    lows: Sequence[Decimal],
    closes: Sequence[Decimal],
    period: int = 14,
) -> Decimal | None:
    """Average True Range over the last *period* bars.

    Returns None with fewer than ``period + 1`` bars.
    """
    n = min(len(highs), len(lows), len(closes))
    if n < period + 1:
        return None

    true_ranges = []
    for i in range(1, n):
        prev_close = closes[i - 1]
        true_ranges.append(max(
            highs[i] - lows[i],
            abs(highs[i] - prev_close),
            abs(lows[i] - prev_close),
        ))
    return sum(true_ranges[-period:], _ZERO) / period


def key_levels(
    prices: Sequence[Decimal],
    extremes: Sequence[Decimal],
    kind: LevelKind,
    *,
    span: int = 5,
    tolerance: Decimal = Decimal("0.01"),
) -> list[Decimal]:
    """Support or resistance levels from local extremes.

    A point qualifies when it is at or beyond the *span* points on each side
    (lows for support, highs for resistance). Levels within *tolerance* of an
    already found level are dropped. Support is sorted ascending, resistance
    descending. Fewer than 20 points yields no levels.
    """
    if len(prices) < 20 or len(extremes) < 20:
        return []

    levels: list[Decimal] = []
    for i in range(span, len(extremes) - span):
        current = extremes[i]
        before = extremes[i - span:i]
        after = extremes[i + 1:i + 1 + span]
        if kind == "support":
            is_extreme = current <= min(before) and current <= min(after)
        else:
            is_extreme = current >= max(before) and current >= max(after)
        if not is_extreme or current == 0:
            continue
        if any(abs(level - current) / current < tolerance for level in levels):
            continue
        levels.append(current)

    return sorted(levels, reverse=(kind == "resistance"))


def _local_extremes(values: Sequence[Decimal]) -> tuple[list[int], list[int]]:
    """Indices of strict local highs and lows (two neighbours each side)."""
    highs: list[int] = []
    lows: list[int] = []
    for i in range(2, len(values) - 2):
        neighbours = (values[i - 2], values[i - 1], values[i + 1], values[i + 2])
        if all(values[i] > n for n in neighbours):
            highs.append(i)
        elif all(values[i] < n for n in neighbours):
            lows.append(i)
    return highs, lows


def divergence(
    prices: Sequence[Decimal],
    indicator: Sequence[Decimal],
) -> Literal["bullish", "bearish"] | None:
    """Compare the last two price extremes against the indicator.

    Bullish: price makes a lower low while the indicator makes a higher low.
    Bearish: price makes a higher high while the indicator makes a lower high.
    Inputs must be aligned and at least 10 points long.
    """
    if len(prices) < 10 or len(prices) != len(indicator):
        return None

    highs, lows = _local_extremes(prices)

    if len(lows) >= 2:
        prev, last = lows[-2], lows[-1]
        if prices[last] < prices[prev] and indicator[last] > indicator[prev]:
            return "bullish"

    if len(highs) >= 2:
        prev, last = highs[-2], highs[-1]
        if prices[last] > prices[prev] and indicator[last] < indicator[prev]:
            return "bearish"

    return None


def detect_trend(prices: Sequence[Decimal], deadband: Decimal = Decimal("0.005")) -> Trend:
    """Short-window trend from the slope of a 5-period SMA (+/- 0.5% deadband)."""
    sma5 = sma(prices, 5)
    if len(sma5) < 2 or sma5[-2] == 0:
        return "sideways"
    slope = (sma5[-1] - sma5[-2]) / sma5[-2]
    if slope > deadband:
        return "up"
    if slope < -deadband:
        return "down"
    return "sideways"
