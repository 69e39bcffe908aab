"""Exceptions that propagate to callers."""


class ConfigurationError(ValueError):
    """Invalid service setup: unknown generator type, nothing enabled, bad registration."""
