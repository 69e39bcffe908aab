"""Orchestrator runner — async loop that refreshes and monitors signals."""

from __future__ import annotations

import asyncio
import time

import structlog

from signal_engine.config.loader import load_config
from signal_engine.config.schema import AppConfig
from signal_engine.db.engine import create_session_factory
from signal_engine.exchange.binance import BinanceClient
from signal_engine.logging.setup import setup_logging
from signal_engine.orchestrator.persistence import (
    InMemorySignalStore,
    SignalStore,
    SqlSignalStore,
)
from signal_engine.orchestrator.service import SignalService

log = structlog.get_logger("orchestrator")

TICK_INTERVAL_S = 5


def build_store(config: AppConfig, in_memory: bool = False) -> SignalStore:
    """SQL store for the configured database, or a process-local one."""
    if in_memory:
        log.info("store_in_memory")
        return InMemorySignalStore()
    _, session_factory = create_session_factory(config.database.url)
    return SqlSignalStore(session_factory)


def _due(key: str, interval_s: float, last_run: dict[str, float]) -> bool:
    """Check if enough time has elapsed since the last run of *key*."""
    now = time.monotonic()
    if now - last_run.get(key, float("-inf")) < interval_s:
        return False
    last_run[key] = now
    return True


async def run_loop(config: AppConfig, in_memory: bool = False) -> None:
    """Seed the active set, then refresh and monitor on their intervals."""
    feed = BinanceClient(base_url=config.exchange.base_url, timeout_s=config.exchange.timeout_s)
    service = SignalService(config, feed, build_store(config, in_memory))

    log.info(
        "orchestrator_started",
        generators=[t.value for t in service.generators],
        symbols=config.symbols,
    )

    last_run: dict[str, float] = {}
    try:
        if await service.seed_active_signals():
            # Seeding already ran a full refresh
            last_run["refresh"] = time.monotonic()
        while True:
            try:
                if _due("refresh", config.monitor.refresh_interval_s, last_run):
                    await service.fetch_trading_signals(force_refresh=True)
                if _due("monitor", config.monitor.monitor_interval_s, last_run):
                    replacements = await service.monitor_and_replace_signals()
                    for signal in replacements:
                        log.info(
                            "signal_emitted",
                            signal_id=signal.id,
                            symbol=signal.symbol,
                            direction=signal.signal,
                            strength=signal.strength.value,
                            success_rate=signal.success_rate,
                        )
            except Exception:
                log.exception("tick_error")

            await asyncio.sleep(TICK_INTERVAL_S)
    finally:
        await service.close()


def main(config_path: str | None = None, in_memory: bool = False) -> None:
    """Entry point — load config, set up logging, run the async loop."""
    config = load_config(config_path)
    setup_logging(level=config.logging.level, log_format=config.logging.format)
    asyncio.run(run_loop(config, in_memory=in_memory))
