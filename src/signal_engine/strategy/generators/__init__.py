"""Import all generator modules to trigger @register decorators."""

from signal_engine.strategy.generators import technical  # noqa: F401
