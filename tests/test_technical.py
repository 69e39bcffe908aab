"""Tests for the technical analysis generator."""

from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from signal_engine.models import MarketData, SignalStrength, SignalType
from signal_engine.strategy.generators.technical import TechnicalSignalGenerator

from conftest import FakeFeed, make_history


def run(gen, market_data):
    return asyncio.run(gen.generate_signals(market_data))


def market(closes, price=None, symbol="BTCUSDT", attach=True):
    history = make_history(closes)
    return MarketData(
        symbol=symbol,
        price=Decimal(str(price if price is not None else closes[-1])),
        historical_data=history if attach else None,
    )


class TestMovingAverageCross:
    def test_golden_cross(self):
        result = run(TechnicalSignalGenerator(), market([100] * 200 + [101], price=100))
        [signal] = result.signals
        assert signal.signal == "BUY"
        assert signal.strength is SignalStrength.STRONG
        assert signal.type is SignalType.TECHNICAL
        assert signal.stop_loss == Decimal("95")
        assert signal.target_price == Decimal("115")
        assert signal.risk_reward == "3.00"
        assert signal.metadata["indicator"] == "moving_average_cross"
        assert "Golden Cross" in signal.reason
        assert (signal.expiry - signal.timestamp).days == 30

    def test_death_cross(self):
        result = run(TechnicalSignalGenerator(), market([100] * 200 + [99], price=100))
        [signal] = result.signals
        assert signal.signal == "SELL"
        assert signal.strength is SignalStrength.STRONG
        assert signal.stop_loss == Decimal("105")
        assert signal.target_price == Decimal("85")
        assert signal.risk_reward == "3.00"
        assert "Death Cross" in signal.reason

    def test_cross_outranks_short_term_rule(self):
        # SMA8/SMA20 also crosses on this bar; only the first rule fires
        result = run(TechnicalSignalGenerator(), market([100] * 200 + [101], price=100))
        assert len(result.signals) == 1
        assert result.signals[0].metadata["indicator"] == "moving_average_cross"


class TestShortTermCross:
    def test_bullish_cross(self):
        result = run(TechnicalSignalGenerator(), market([100] * 29 + [101], price=100))
        [signal] = result.signals
        assert signal.signal == "BUY"
        assert signal.strength is SignalStrength.MODERATE
        assert signal.stop_loss == Decimal("97")
        assert signal.target_price == Decimal("106")
        assert signal.risk_reward == "2.00"
        assert signal.metadata["indicator"] == "short_term_ma_cross"
        assert (signal.expiry - signal.timestamp).days == 14

    def test_bearish_cross(self):
        result = run(TechnicalSignalGenerator(), market([100] * 29 + [99], price=100))
        [signal] = result.signals
        assert signal.signal == "SELL"
        assert signal.stop_loss == Decimal("103")
        assert signal.target_price == Decimal("94")

    def test_success_rate_discounted(self):
        # Flat history never moves 3%, so the back-test rate is zero
        result = run(TechnicalSignalGenerator(), market([100] * 29 + [101], price=100))
        assert result.signals[0].success_rate == 0.0


class TestRSIExtremes:
    def test_oversold_buy(self):
        closes = list(range(200, 170, -1))
        result = run(TechnicalSignalGenerator(), market(closes))
        [signal] = result.signals
        assert signal.signal == "BUY"
        assert signal.strength is SignalStrength.MODERATE
        assert signal.risk_reward == "1.67"
        assert signal.metadata["indicator"] == "rsi_oversold"
        assert signal.metadata["rsi"] == "0.0000"
        assert (signal.expiry - signal.timestamp).days == 7

    def test_overbought_sell(self):
        closes = list(range(100, 130))
        result = run(TechnicalSignalGenerator(), market(closes))
        [signal] = result.signals
        assert signal.signal == "SELL"
        assert signal.metadata["indicator"] == "rsi_overbought"
        assert signal.stop_loss > signal.entry_price > signal.target_price

    def test_custom_thresholds(self):
        closes = list(range(200, 170, -1))
        gen = TechnicalSignalGenerator(oversold=-1, overbought=101)
        assert run(gen, market(closes)).signals == []

    def test_backtest_success_rate_applied(self):
        # Steady 1/bar decline on ~190 never reaches a 3% gain
        closes = list(range(200, 170, -1))
        result = run(TechnicalSignalGenerator(), market(closes))
        assert result.signals[0].success_rate == 0.0


class TestNoSignal:
    def test_insufficient_history(self):
        result = run(TechnicalSignalGenerator(), market([100] * 10))
        assert result.signals == []
        assert result.metadata == {}

    def test_non_positive_price(self):
        result = run(TechnicalSignalGenerator(), market([100] * 200 + [101], price=0))
        assert result.signals == []

    def test_flat_market_has_metadata_only(self):
        # RSI of a flat series saturates at 100; raise the bar so it stays quiet
        gen = TechnicalSignalGenerator(overbought=101)
        result = run(gen, market([100] * 60))
        assert result.signals == []
        assert result.metadata["sma20"] == "100.0000"
        assert result.metadata["trend"] == "sideways"
        assert result.metadata["sma200"] is None
        # Flat RSI sits mid-range
        assert result.metadata["stoch_rsi_k"] == "50.0000"
        assert result.metadata["stoch_rsi_d"] == "50.0000"


class TestHistoryFetch:
    def test_fetches_from_feed_when_absent(self):
        feed = FakeFeed(histories={"BTCUSDT": make_history([100] * 29 + [101])})
        gen = TechnicalSignalGenerator(feed=feed)
        result = run(gen, market([100] * 29 + [101], price=100, attach=False))
        assert feed.history_calls == 1
        assert len(result.signals) == 1

    def test_uses_attached_history(self):
        feed = FakeFeed()
        gen = TechnicalSignalGenerator(feed=feed)
        run(gen, market([100] * 29 + [101], price=100))
        assert feed.history_calls == 0

    def test_feed_failure_yields_empty_result(self):
        feed = FakeFeed(failing={"BTCUSDT"})
        gen = TechnicalSignalGenerator(feed=feed)
        result = run(gen, market([100] * 30, attach=False))
        assert result.signals == []

    def test_no_feed_and_no_history(self):
        result = run(TechnicalSignalGenerator(), market([100] * 30, attach=False))
        assert result.signals == []


class TestNeverRaises:
    def test_broken_history_is_logged_not_raised(self):
        class Exploding:
            closes = property(lambda self: 1 / 0)

            def __len__(self):
                return 300

        md = MarketData.model_construct(symbol="BTCUSDT", price=Decimal(100), historical_data=Exploding())
        result = run(TechnicalSignalGenerator(), md)
        assert result.signals == []


class TestSignalGeometry:
    @pytest.mark.parametrize("closes,price", [
        ([100] * 200 + [101], 100),
        ([100] * 200 + [99], 100),
        ([100] * 29 + [101], 100),
        (list(range(200, 170, -1)), 171),
        (list(range(100, 130)), 129),
    ])
    def test_levels_consistent_with_direction(self, closes, price):
        [signal] = run(TechnicalSignalGenerator(), market(closes, price=price)).signals
        if signal.signal == "BUY":
            assert signal.stop_loss < signal.entry_price < signal.target_price
        else:
            assert signal.target_price < signal.entry_price < signal.stop_loss
        assert 0.0 <= signal.success_rate <= 1.0
        assert signal.expiry > signal.timestamp
