"""Import all table modules so Base.metadata knows about them."""

from signal_engine.db.tables.signals import TradingSignalRow

__all__ = ["TradingSignalRow"]
