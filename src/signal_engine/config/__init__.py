"""Configuration system."""

from signal_engine.config.loader import load_config
from signal_engine.config.schema import (
    AggregatorConfig,
    AppConfig,
    CacheConfig,
    GeneratorConfig,
)

__all__ = ["AggregatorConfig", "AppConfig", "CacheConfig", "GeneratorConfig", "load_config"]
