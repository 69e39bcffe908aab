"""Signal lifecycle service — refresh, cache, monitor and replace signals."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from decimal import Decimal

import structlog

from signal_engine.config.schema import AppConfig
from signal_engine.errors import ConfigurationError
from signal_engine.exchange.base import NewsFeed, PriceFeed
from signal_engine.models import (
    MarketData,
    NewsItem,
    SignalGeneratorResult,
    SignalStatus,
    SignalType,
    TradingSignal,
    rank_key,
)
from signal_engine.orchestrator.aggregator import SignalAggregator
from signal_engine.orchestrator.cache import SignalCache
from signal_engine.orchestrator.persistence import SignalStore
from signal_engine.strategy import GENERATOR_REGISTRY, SignalGenerator

# Ensure all generator modules are imported so @register fires
import signal_engine.strategy.generators  # noqa: F401

log = structlog.get_logger("signal_service")

# The dashboard always shows at least this many signals when candidates exist
MIN_DASHBOARD_SIGNALS = 7

_REPLACEABLE = (SignalStatus.COMPLETED, SignalStatus.CANCELLED)


def evaluate_status(signal: TradingSignal, price: Decimal, now: datetime) -> SignalStatus:
    """Status *signal* should have at *price* and *now*.

    Target and stop are checked first; an untouched active signal past its
    expiry becomes expired. Terminal statuses are returned unchanged.
    """
    if signal.status.is_terminal:
        return signal.status

    status = SignalStatus.ACTIVE
    if signal.signal == "BUY":
        if price >= signal.target_price:
            status = SignalStatus.COMPLETED
        elif price <= signal.stop_loss:
            status = SignalStatus.CANCELLED
    else:
        if price <= signal.target_price:
            status = SignalStatus.COMPLETED
        elif price >= signal.stop_loss:
            status = SignalStatus.CANCELLED

    if status is SignalStatus.ACTIVE and now > signal.expiry:
        status = SignalStatus.EXPIRED
    return status


def backfill_signals(
    aggregated: list[TradingSignal],
    pool: Iterable[TradingSignal],
    floor: int = MIN_DASHBOARD_SIGNALS,
) -> list[TradingSignal]:
    """Top up *aggregated* with the best unused raw candidates up to *floor*.

    Candidates are ranked by strength, then success rate, and deduplicated by
    symbol, type, direction and timestamp. Never adds more than the pool has.
    """
    if len(aggregated) >= floor:
        return list(aggregated)

    used = {s.dedup_key for s in aggregated}
    remaining: list[TradingSignal] = []
    for signal in pool:
        if signal.dedup_key in used:
            continue
        used.add(signal.dedup_key)
        remaining.append(signal)

    remaining.sort(key=rank_key, reverse=True)
    return list(aggregated) + remaining[:floor - len(aggregated)]


class SignalService:
    """Owns the generator registry, the aggregator and the signal cache.

    Construct one per process and hand it to whoever needs signals; there is
    no module-level instance. Only configuration problems raise; everything
    else is logged and degrades to cached or partial results.
    """

    def __init__(
        self,
        config: AppConfig,
        feed: PriceFeed,
        store: SignalStore,
        *,
        news_feed: NewsFeed | None = None,
        generators: Iterable[SignalGenerator] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config
        self.feed = feed
        self.store = store
        self.news_feed = news_feed
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._generators: dict[SignalType, SignalGenerator] = {}
        self._options: dict[SignalType, dict] = {}
        self._replaced_ids: set[str] = set()

        self._load_configured_generators()
        for generator in generators or ():
            self.register_generator(generator)
        if not self._generators:
            raise ConfigurationError("No signal generators enabled")

        self.aggregator = SignalAggregator(config.aggregator)
        self.cache = SignalCache(
            ttl_seconds=config.cache.duration_s,
            enabled=config.cache.enabled,
        )

    def _load_configured_generators(self) -> None:
        for name, gen_conf in self.config.generators.items():
            try:
                signal_type = SignalType(name.upper())
            except ValueError:
                raise ConfigurationError(f"Unknown generator type: {name!r}") from None
            self._options[signal_type] = dict(gen_conf.options)
            if not gen_conf.enabled:
                log.info("generator_disabled", generator=signal_type.value)
                continue
            cls = GENERATOR_REGISTRY.get(signal_type)
            if cls is None:
                raise ConfigurationError(f"No generator implementation for {signal_type.value!r}")
            self._generators[signal_type] = cls(feed=self.feed, **gen_conf.options)
            log.info("generator_loaded", generator=signal_type.value, options=gen_conf.options)

    @property
    def generators(self) -> dict[SignalType, SignalGenerator]:
        return dict(self._generators)

    def register_generator(self, generator: SignalGenerator) -> None:
        """Add or replace the generator for its signal type."""
        if not isinstance(getattr(generator, "type", None), SignalType):
            raise ConfigurationError(
                f"Generator {type(generator).__name__} has no valid SignalType"
            )
        self._generators[generator.type] = generator
        log.info("generator_registered", generator=generator.type.value)

    # ── Refresh ──────────────────────────────────────────────

    async def fetch_trading_signals(self, force_refresh: bool = False) -> list[TradingSignal]:
        """Return current signals, from cache when fresh.

        Never raises. If no market data can be fetched, or the cycle fails,
        the previous cache contents are returned (even when stale).
        """
        try:
            if not force_refresh:
                cached = self.cache.get()
                if cached is not None:
                    return cached

            observed = self.cache.generation
            signals = await self._build_signals()
            if signals is None:
                return self.cache.entries
            if not self.cache.commit(signals, observed):
                log.warning("stale_refresh_discarded", observed_generation=observed)
            return signals
        except Exception:
            log.exception("signal_refresh_failed")
            return self.cache.entries

    async def _build_signals(self) -> list[TradingSignal] | None:
        """One uncached cycle: fetch, generate, aggregate, backfill.

        Returns None when no symbol yielded market data.
        """
        market_data = await self.fetch_market_data(self.config.symbols)
        if not market_data:
            log.warning("market_data_unavailable", symbols=len(self.config.symbols))
            return None

        results, candidates = await self._run_generators(market_data)
        aggregated = self.aggregator.aggregate(results)
        signals = backfill_signals(aggregated, candidates)
        if len(signals) > len(aggregated):
            log.info(
                "signals_backfilled",
                aggregated=len(aggregated),
                added=len(signals) - len(aggregated),
            )
        log.info(
            "signals_refreshed",
            symbols=len(market_data),
            candidates=len(candidates),
            signals=len(signals),
        )
        return signals

    async def fetch_market_data(self, symbols: Iterable[str]) -> list[MarketData]:
        """Fetch MarketData for every symbol concurrently, dropping failures."""
        fetched = await asyncio.gather(*(self._fetch_one(s) for s in symbols))
        return [md for md in fetched if md is not None]

    async def _fetch_one(self, symbol: str) -> MarketData | None:
        market = self.config.market
        try:
            quote = await self.feed.get_current_price(symbol)
            history = await self.feed.get_historical_candles(
                symbol, market.history_interval, market.history_periods,
            )
        except Exception:
            log.exception("market_data_fetch_failed", symbol=symbol)
            return None

        change = quote.change
        change_percent = quote.change_percent
        volume = high = low = open_ = None
        if len(history) >= 2:
            last_close, prev_close = history.closes[-1], history.closes[-2]
            change = last_close - prev_close
            if prev_close != 0:
                change_percent = change / prev_close * 100
        if len(history) >= 1:
            volume = history.volumes[-1]
            high = history.highs[-1]
            low = history.lows[-1]
            open_ = history.opens[-1]

        return MarketData(
            symbol=symbol,
            price=quote.price,
            change=change,
            change_percent=change_percent,
            volume=volume,
            high=high,
            low=low,
            open=open_,
            historical_data=history if market.attach_history else None,
            news=await self._fetch_news(symbol),
        )

    async def _fetch_news(self, symbol: str) -> list[NewsItem]:
        if self.news_feed is None or not any(g.uses_news for g in self._generators.values()):
            return []
        try:
            return await self.news_feed.get_recent_news(symbol)
        except Exception:
            log.exception("news_fetch_failed", symbol=symbol)
            return []

    async def _run_generators(
        self,
        market_data: list[MarketData],
    ) -> tuple[dict[SignalType, SignalGeneratorResult], list[TradingSignal]]:
        """Run every generator on every symbol; join before returning.

        Returns the results grouped by generator type and the flat list of all
        raw candidates.
        """
        per_symbol = await asyncio.gather(*(self._generate_for(md) for md in market_data))

        grouped: dict[SignalType, SignalGeneratorResult] = {
            t: SignalGeneratorResult() for t in self._generators
        }
        candidates: list[TradingSignal] = []
        for md, results in zip(market_data, per_symbol):
            for signal_type, result in results:
                grouped[signal_type].signals.extend(result.signals)
                if result.metadata:
                    grouped[signal_type].metadata[md.symbol] = result.metadata
                candidates.extend(result.signals)
        return grouped, candidates

    async def _generate_for(
        self,
        market_data: MarketData,
    ) -> list[tuple[SignalType, SignalGeneratorResult]]:
        results = []
        for signal_type, generator in self._generators.items():
            try:
                result = await generator.generate_signals(
                    market_data, self._options.get(signal_type),
                )
            except Exception:
                log.exception(
                    "generator_failed",
                    generator=signal_type.value,
                    symbol=market_data.symbol,
                )
                continue
            results.append((signal_type, result))
        return results

    # ── Status monitoring ────────────────────────────────────

    async def update_signal_status(self, signal: TradingSignal) -> TradingSignal:
        """Re-evaluate *signal* against the current price.

        Terminal signals are returned untouched. A change is persisted (best
        effort) and patched into the cache.
        """
        if signal.status.is_terminal:
            return signal

        try:
            quote = await self.feed.get_current_price(signal.symbol)
        except Exception:
            log.exception("price_fetch_failed", symbol=signal.symbol, signal_id=signal.id)
            return signal
        if quote.price <= 0:
            log.warning("missing_price", symbol=signal.symbol, signal_id=signal.id)
            return signal

        status = evaluate_status(signal, quote.price, self._clock())
        if status is signal.status:
            return signal

        updated = signal.model_copy(update={"status": status})
        if signal.id is not None:
            await self._persist_status(updated)
        self.cache.patch_status(signal, status)
        log.info(
            "signal_status_changed",
            signal_id=signal.id,
            symbol=signal.symbol,
            direction=signal.signal,
            status=status.value,
            price=str(quote.price),
        )
        return updated

    async def _persist_status(self, signal: TradingSignal) -> None:
        try:
            await asyncio.to_thread(self.store.update_signal_status, signal.id, signal.status)
        except Exception:
            log.exception("signal_status_persist_failed", signal_id=signal.id)

    async def _load_active(self) -> list[TradingSignal] | None:
        """Active signals from the store, or None if the load failed."""
        try:
            return await asyncio.to_thread(self.store.load_active_signals)
        except Exception:
            log.exception("active_signals_load_failed")
            return None

    async def _update_each(self, active: list[TradingSignal]) -> list[TradingSignal]:
        if not active:
            return []
        return list(await asyncio.gather(*(self.update_signal_status(s) for s in active)))

    async def update_all_signals_status(self) -> list[TradingSignal]:
        """Re-evaluate every persisted active signal."""
        return await self._update_each(await self._load_active() or [])

    async def monitor_and_replace_signals(self) -> list[TradingSignal]:
        """Replace every signal that just hit its target or stop, one for one.

        Returns only the newly created replacements. A signal is replaced at
        most once, so calling this again without new completions is a no-op.
        """
        try:
            active = await self._load_active()
            if active is None:
                return []
            # A replaced id only matters while the store still reports it active
            self._replaced_ids &= {s.id for s in active}
            updated = await self._update_each(active)
            finished = [
                s for s in updated
                if s.status in _REPLACEABLE and s.id not in self._replaced_ids
            ]
            if not finished:
                log.info("no_signals_to_replace")
                return []

            for signal in finished:
                log.info(
                    "signal_finished",
                    signal_id=signal.id,
                    symbol=signal.symbol,
                    direction=signal.signal,
                    status=signal.status.value,
                )
                if signal.id is not None:
                    self._replaced_ids.add(signal.id)

            symbols = sorted({s.symbol for s in finished})
            market_data = await self.fetch_market_data(symbols)
            results, _ = await self._run_generators(market_data)
            pool = self.aggregator.aggregate(results)
            best = sorted(pool, key=rank_key, reverse=True)[:len(finished)]

            replacements = []
            for signal in best:
                fresh = signal.model_copy(update={"id": None, "status": SignalStatus.ACTIVE})
                replacements.append(await self.save_signal(fresh))

            self.cache.replace(removed=finished, added=replacements)
            log.info(
                "signals_replaced",
                finished=len(finished),
                replacements=len(replacements),
            )
            return replacements
        except Exception:
            log.exception("signal_monitor_failed")
            return []

    # ── Persistence ──────────────────────────────────────────

    async def save_signal(self, signal: TradingSignal) -> TradingSignal:
        """Persist *signal*; on failure log and return it without an id."""
        try:
            saved = await asyncio.to_thread(self.store.save_signal, signal)
        except Exception:
            log.exception("signal_save_failed", symbol=signal.symbol, direction=signal.signal)
            return signal
        log.info("signal_saved", signal_id=saved.id, symbol=saved.symbol, direction=saved.signal)
        return saved

    async def seed_active_signals(self) -> list[TradingSignal]:
        """Persist a fresh signal set when the store has no active signals."""
        active = await self._load_active()
        if active is None:
            return []
        if active:
            log.info("active_signals_present", count=len(active))
            return []

        observed = self.cache.generation
        try:
            signals = await self._build_signals()
        except Exception:
            log.exception("signal_refresh_failed")
            return []
        if not signals:
            return []
        saved = [await self.save_signal(s) for s in signals]
        if not self.cache.commit(saved, observed):
            log.warning("stale_seed_discarded", observed_generation=observed)
        log.info("active_signals_seeded", count=len(saved))
        return saved

    async def close(self) -> None:
        """Release the price and news feeds' connections."""
        for feed in (self.feed, self.news_feed):
            close = getattr(feed, "close", None)
            if close is not None:
                await close()
