"""Technical analysis generator — moving-average crosses and RSI extremes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable

import structlog

from signal_engine.models import (
    Direction,
    HistoricalData,
    MarketData,
    MetadataValue,
    SignalGeneratorResult,
    SignalStrength,
    SignalType,
    TradingSignal,
)
from signal_engine.strategy import SignalGenerator, backtest_success_rate, register
from signal_engine.strategy.indicators import (
    atr,
    bollinger_bands,
    detect_trend,
    divergence,
    key_levels,
    macd,
    rsi_series,
    sma,
    stoch_rsi,
)
from signal_engine.strategy.patterns import detect_candlestick_patterns

log = structlog.get_logger("technical_generator")

_PCT = Decimal("0.01")


@dataclass
class _Context:
    """Indicator values shared by every rule for one evaluation."""

    symbol: str
    price: Decimal
    closes: list[Decimal]
    sma8: list[Decimal]
    sma20: list[Decimal]
    sma50: list[Decimal]
    sma200: list[Decimal]
    rsi: list[Decimal]
    now: datetime


def _crossed(fast: list[Decimal], slow: list[Decimal]) -> Direction | None:
    """Direction of a cross between the last two bars, both series end-aligned."""
    if len(fast) < 2 or len(slow) < 2:
        return None
    if fast[-2] <= slow[-2] and fast[-1] > slow[-1]:
        return "BUY"
    if fast[-2] >= slow[-2] and fast[-1] < slow[-1]:
        return "SELL"
    return None


def _fmt(value: Decimal | None) -> str | None:
    return None if value is None else str(round(value, 4))


def _last(values: list[Decimal]) -> Decimal | None:
    return values[-1] if values else None


@register
class TechnicalSignalGenerator(SignalGenerator):
    """Reference generator built on the indicator library.

    Rules are tried in order and the first one that fires wins:

    1. Golden/Death cross (SMA50 vs SMA200) → STRONG, -5%/+15%, 30 days
    2. Short-term cross (SMA8 vs SMA20)     → MODERATE, -3%/+6%, 14 days
    3. RSI below oversold / above overbought → MODERATE, -3%/+5%, 7 days
    """

    type = SignalType.TECHNICAL

    def __init__(self, feed=None, **params: Any) -> None:
        super().__init__(feed, **params)
        self.history_interval = str(self.params.get("history_interval", "1d"))
        self.history_periods = int(self.params.get("history_periods", 250))
        self.min_periods = int(self.params.get("min_periods", 20))
        self.lookback = int(self.params.get("lookback", 20))
        self.rsi_period = int(self.params.get("rsi_period", 14))
        self.oversold = Decimal(str(self.params.get("oversold", 30)))
        self.overbought = Decimal(str(self.params.get("overbought", 70)))
        self.rules: list[Callable[[_Context], TradingSignal | None]] = [
            self._moving_average_cross,
            self._short_term_cross,
            self._rsi_extremes,
        ]

    async def generate_signals(
        self,
        market_data: MarketData,
        options: dict[str, Any] | None = None,
    ) -> SignalGeneratorResult:
        symbol = market_data.symbol
        try:
            history = market_data.historical_data
            if history is None:
                history = await self._fetch_history(symbol)
            if history is None or len(history) < self.min_periods:
                log.warning(
                    "insufficient_history",
                    symbol=symbol,
                    periods=0 if history is None else len(history),
                    required=self.min_periods,
                )
                return SignalGeneratorResult()
            if market_data.price <= 0:
                log.warning("missing_price", symbol=symbol)
                return SignalGeneratorResult()

            closes = list(history.closes)
            ctx = _Context(
                symbol=symbol,
                price=market_data.price,
                closes=closes,
                sma8=sma(closes, 8),
                sma20=sma(closes, 20),
                sma50=sma(closes, 50),
                sma200=sma(closes, 200),
                rsi=rsi_series(closes, self.rsi_period),
                now=datetime.now(timezone.utc),
            )

            signals: list[TradingSignal] = []
            for rule in self.rules:
                signal = rule(ctx)
                if signal is not None:
                    signals.append(signal)
                    break

            return SignalGeneratorResult(
                signals=signals,
                metadata=self._indicator_snapshot(ctx, history),
            )
        except Exception:
            log.exception("technical_generation_failed", symbol=symbol)
            return SignalGeneratorResult()

    async def _fetch_history(self, symbol: str) -> HistoricalData | None:
        if self.feed is None:
            return None
        try:
            return await self.feed.get_historical_candles(
                symbol, self.history_interval, self.history_periods,
            )
        except Exception:
            log.exception("history_fetch_failed", symbol=symbol)
            return None

    # ── Rules ────────────────────────────────────────────────

    def _moving_average_cross(self, ctx: _Context) -> TradingSignal | None:
        direction = _crossed(ctx.sma50, ctx.sma200)
        if direction is None:
            return None
        if direction == "BUY":
            reason = "Golden Cross (SMA50 crossed above SMA200)"
        else:
            reason = "Death Cross (SMA50 crossed below SMA200)"
        return self._build(
            ctx,
            direction,
            reason,
            SignalStrength.STRONG,
            stop_pct=5,
            target_pct=15,
            discount=1.0,
            expiry_days=30,
            metadata={"indicator": "moving_average_cross"},
        )

    def _short_term_cross(self, ctx: _Context) -> TradingSignal | None:
        direction = _crossed(ctx.sma8, ctx.sma20)
        if direction is None:
            return None
        side = "above" if direction == "BUY" else "below"
        return self._build(
            ctx,
            direction,
            f"Short-term moving average cross (SMA8 crossed {side} SMA20)",
            SignalStrength.MODERATE,
            stop_pct=3,
            target_pct=6,
            discount=0.9,
            expiry_days=14,
            metadata={"indicator": "short_term_ma_cross"},
        )

    def _rsi_extremes(self, ctx: _Context) -> TradingSignal | None:
        if not ctx.rsi:
            return None
        value = ctx.rsi[-1]
        if value < self.oversold:
            direction: Direction = "BUY"
            reason = f"RSI oversold ({value:.2f})"
            indicator = "rsi_oversold"
        elif value > self.overbought:
            direction = "SELL"
            reason = f"RSI overbought ({value:.2f})"
            indicator = "rsi_overbought"
        else:
            return None
        return self._build(
            ctx,
            direction,
            reason,
            SignalStrength.MODERATE,
            stop_pct=3,
            target_pct=5,
            discount=0.85,
            expiry_days=7,
            metadata={"indicator": indicator, "rsi": _fmt(value)},
        )

    def _build(
        self,
        ctx: _Context,
        direction: Direction,
        reason: str,
        strength: SignalStrength,
        *,
        stop_pct: int,
        target_pct: int,
        discount: float,
        expiry_days: int,
        metadata: dict[str, MetadataValue],
    ) -> TradingSignal:
        stop_offset = stop_pct * _PCT
        target_offset = target_pct * _PCT
        if direction == "BUY":
            stop_loss = ctx.price * (1 - stop_offset)
            target = ctx.price * (1 + target_offset)
        else:
            stop_loss = ctx.price * (1 + stop_offset)
            target = ctx.price * (1 - target_offset)

        success_rate = backtest_success_rate(ctx.closes, direction, lookback=self.lookback)
        return self.create_signal(
            symbol=ctx.symbol,
            direction=direction,
            reason=reason,
            strength=strength,
            price=ctx.price,
            stop_loss=stop_loss,
            target_price=target,
            success_rate=success_rate * discount,
            expiry_days=expiry_days,
            metadata=metadata,
            now=ctx.now,
        )

    # ── Result metadata ─────────────────────────────────────

    def _indicator_snapshot(
        self,
        ctx: _Context,
        history: HistoricalData,
    ) -> dict[str, MetadataValue]:
        closes = ctx.closes
        macd_result = macd(closes)
        stoch = stoch_rsi(closes, self.rsi_period)
        bands = bollinger_bands(closes, 20, 2)
        supports = key_levels(closes, list(history.lows), "support")
        resistances = key_levels(closes, list(history.highs), "resistance")
        nearest_support = max((s for s in supports if s < ctx.price), default=None)
        nearest_resistance = min((r for r in resistances if r > ctx.price), default=None)
        patterns = detect_candlestick_patterns(
            history.opens[-20:], history.highs[-20:], history.lows[-20:], closes[-20:],
        )
        # RSI is shorter than closes by rsi_period; compare the aligned tail
        rsi_div = None
        if len(ctx.rsi) >= 10:
            rsi_div = divergence(closes[-10:], ctx.rsi[-10:])

        return {
            "sma8": _fmt(_last(ctx.sma8)),
            "sma20": _fmt(_last(ctx.sma20)),
            "sma50": _fmt(_last(ctx.sma50)),
            "sma200": _fmt(_last(ctx.sma200)),
            "rsi": _fmt(_last(ctx.rsi)),
            "stoch_rsi_k": _fmt(stoch.k if stoch else None),
            "stoch_rsi_d": _fmt(stoch.d if stoch else None),
            "macd": _fmt(_last(macd_result.macd_line)),
            "macd_signal": _fmt(_last(macd_result.signal_line)),
            "macd_histogram": _fmt(_last(macd_result.histogram)),
            "bb_upper": _fmt(_last(bands.upper)),
            "bb_middle": _fmt(_last(bands.middle)),
            "bb_lower": _fmt(_last(bands.lower)),
            "atr": _fmt(atr(history.highs, history.lows, closes, 14)),
            "trend": detect_trend(closes),
            "patterns": ",".join(p.pattern for p in patterns),
            "supports": ",".join(str(round(s, 4)) for s in supports),
            "resistances": ",".join(str(round(r, 4)) for r in resistances),
            "nearest_support": _fmt(nearest_support),
            "nearest_resistance": _fmt(nearest_resistance),
            "rsi_divergence": rsi_div,
        }
