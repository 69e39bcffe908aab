"""Signal generator framework."""

from signal_engine.strategy.base import SignalGenerator, backtest_success_rate
from signal_engine.strategy.registry import GENERATOR_REGISTRY, register

__all__ = ["GENERATOR_REGISTRY", "SignalGenerator", "backtest_success_rate", "register"]
