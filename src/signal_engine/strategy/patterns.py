"""Candlestick pattern detection on the most recent bars."""

from __future__ import annotations

from decimal import Decimal
from typing import NamedTuple, Sequence

from signal_engine.strategy.indicators import detect_trend

# Bars of closing history used to decide the preceding trend
TREND_WINDOW = 10


class CandlestickPattern(NamedTuple):
    pattern: str
    strength: float
    bullish: bool


def detect_candlestick_patterns(
    opens: Sequence[Decimal],
    highs: Sequence[Decimal],
    lows: Sequence[Decimal],
    closes: Sequence[Decimal],
) -> list[CandlestickPattern]:
    """Rule-based detectors for the last one to three candles.

    Recognises Doji (top/bottom), Hammer, Hanging Man, Shooting Star,
    Bullish/Bearish Engulfing and Harami, and Morning/Evening Star. Needs at
    least three bars.
    """
    if min(len(opens), len(highs), len(lows), len(closes)) < 3:
        return []

    patterns: list[CandlestickPattern] = []
    trend = detect_trend(closes[-TREND_WINDOW:])

    last_open, last_close = opens[-1], closes[-1]
    last_high, last_low = highs[-1], lows[-1]
    body = abs(last_close - last_open)
    total_range = last_high - last_low

    # Doji: almost no body relative to the range
    if total_range > 0 and body / total_range < Decimal("0.1"):
        if trend == "up":
            patterns.append(CandlestickPattern("Doji Top", 0.7, False))
        elif trend == "down":
            patterns.append(CandlestickPattern("Doji Bottom", 0.7, True))

    # Hammer / hanging man: long lower shadow, short upper shadow
    lower_shadow = min(last_open, last_close) - last_low
    upper_shadow = last_high - max(last_open, last_close)
    if body > 0 and lower_shadow >= body * 2 and upper_shadow < body * Decimal("0.5"):
        if last_close > last_open and trend == "down":
            patterns.append(CandlestickPattern("Hammer", 0.8, True))
        elif last_close < last_open and trend == "up":
            patterns.append(CandlestickPattern("Hanging Man", 0.75, False))

    # Shooting star: long upper shadow at the top of an uptrend
    if body > 0 and upper_shadow > body * 2 and lower_shadow < body and trend == "up":
        patterns.append(CandlestickPattern("Shooting Star", 0.8, False))

    prev_open, prev_close = opens[-2], closes[-2]
    if (
        prev_close < prev_open
        and last_close > last_open
        and last_open <= prev_close
        and last_close >= prev_open
    ):
        patterns.append(CandlestickPattern("Bullish Engulfing", 0.85, True))
    if (
        prev_close > prev_open
        and last_close < last_open
        and last_open >= prev_close
        and last_close <= prev_open
    ):
        patterns.append(CandlestickPattern("Bearish Engulfing", 0.85, False))

    # Harami: the last body sits inside the previous, opposite-coloured body
    if (
        prev_close < prev_open
        and last_close > last_open
        and last_open > prev_close
        and last_close < prev_open
    ):
        patterns.append(CandlestickPattern("Bullish Harami", 0.6, True))
    if (
        prev_close > prev_open
        and last_close < last_open
        and last_open < prev_close
        and last_close > prev_open
    ):
        patterns.append(CandlestickPattern("Bearish Harami", 0.6, False))

    first_open, first_close = opens[-3], closes[-3]
    middle_open, middle_close = opens[-2], closes[-2]
    first_body = abs(first_close - first_open)
    middle_small = abs(middle_close - middle_open) < first_body * Decimal("0.3")
    first_midpoint = (first_open + first_close) / 2

    if (
        first_close < first_open
        and middle_small
        and max(middle_open, middle_close) < first_close
        and last_close > last_open
        and last_close > first_midpoint
    ):
        patterns.append(CandlestickPattern("Morning Star", 0.9, True))
    if (
        first_close > first_open
        and middle_small
        and min(middle_open, middle_close) > first_close
        and last_close < last_open
        and last_close < first_midpoint
    ):
        patterns.append(CandlestickPattern("Evening Star", 0.9, False))

    return patterns
