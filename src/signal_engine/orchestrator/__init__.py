"""Signal orchestration — aggregation, caching, persistence and the lifecycle service."""

from signal_engine.orchestrator.aggregator import SignalAggregator
from signal_engine.orchestrator.cache import SignalCache
from signal_engine.orchestrator.persistence import (
    InMemorySignalStore,
    SignalStore,
    SqlSignalStore,
)
from signal_engine.orchestrator.service import (
    MIN_DASHBOARD_SIGNALS,
    SignalService,
    backfill_signals,
    evaluate_status,
)

__all__ = [
    "MIN_DASHBOARD_SIGNALS",
    "InMemorySignalStore",
    "SignalAggregator",
    "SignalCache",
    "SignalService",
    "SignalStore",
    "SqlSignalStore",
    "backfill_signals",
    "evaluate_status",
]
