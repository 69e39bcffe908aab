"""Generator registry — decorated classes are auto-registered by signal type."""

from __future__ import annotations

from typing import TYPE_CHECKING

from signal_engine.errors import ConfigurationError
from signal_engine.models import SignalType

if TYPE_CHECKING:
    from signal_engine.strategy.base import SignalGenerator

GENERATOR_REGISTRY: dict[SignalType, type[SignalGenerator]] = {}


def register(cls: type[SignalGenerator]) -> type[SignalGenerator]:
    """Class decorator that adds a generator to the global registry."""
    signal_type = getattr(cls, "type", None)
    if not isinstance(signal_type, SignalType):
        raise ConfigurationError(f"Generator class {cls.__name__} must define a SignalType 'type'")
    if signal_type in GENERATOR_REGISTRY:
        raise ConfigurationError(f"Duplicate generator type: {signal_type.value!r}")
    GENERATOR_REGISTRY[signal_type] = cls
    return cls
