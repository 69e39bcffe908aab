"""Signal aggregator — collapse candidates into one signal per symbol and direction."""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Iterable, Mapping
from decimal import Decimal

import structlog

from signal_engine.config.schema import AggregatorConfig
from signal_engine.models import (
    Direction,
    SignalGeneratorResult,
    SignalType,
    TradingSignal,
    compute_risk_reward,
)

log = structlog.get_logger("aggregator")

MAX_COMBINED_REASONS = 3


def _strongest_key(signal: TradingSignal) -> tuple:
    # Strength, then recency; the rest only makes ties deterministic
    return (
        signal.strength.rank,
        signal.timestamp,
        signal.success_rate,
        signal.type.value,
        signal.reason,
    )


class SignalAggregator:
    """Group candidates by symbol and direction and resolve conflicts.

    Policies:
        strongest: highest strength, most recent on ties
        weighted:  best ``type_weight * strength_weight * success_rate``
                   supplies the base; stop, target and success rate become
                   score-weighted averages
        majority:  keep the most frequent generator type, then strongest
    """

    def __init__(self, config: AggregatorConfig) -> None:
        self.config = config

    def aggregate(
        self,
        results: Mapping[SignalType, SignalGeneratorResult],
    ) -> list[TradingSignal]:
        """Return at most one BUY and one SELL signal per symbol."""
        candidates = [s for result in results.values() for s in result.signals]
        if not candidates:
            return []

        by_symbol: dict[str, list[TradingSignal]] = defaultdict(list)
        for signal in candidates:
            by_symbol[signal.symbol].append(signal)

        aggregated: list[TradingSignal] = []
        for symbol in sorted(by_symbol):
            for direction in ("BUY", "SELL"):
                subset = [s for s in by_symbol[symbol] if s.signal == direction]
                if not subset or len(subset) < self.config.min_signals_required:
                    continue
                aggregated.append(self.resolve(subset, direction))

        log.debug("signals_aggregated", candidates=len(candidates), aggregated=len(aggregated))
        return aggregated

    def resolve(self, signals: list[TradingSignal], direction: Direction) -> TradingSignal:
        """Collapse same-direction candidates with the configured policy."""
        if len(signals) == 1:
            return signals[0]

        policy = self.config.conflict_resolution
        if policy == "strongest":
            return self._strongest(signals)
        if policy == "weighted":
            return self._weighted(signals, direction)
        return self._majority(signals)

    def _strongest(self, signals: Iterable[TradingSignal]) -> TradingSignal:
        return max(signals, key=_strongest_key)

    def _score(self, signal: TradingSignal) -> float:
        type_weight = self.config.type_weights.get(signal.type, 1.0)
        strength_weight = self.config.strength_weights.get(signal.strength, 1.0)
        return type_weight * strength_weight * signal.success_rate

    def _weighted(self, signals: list[TradingSignal], direction: Direction) -> TradingSignal:
        scored = sorted(
            ((self._score(s), s) for s in signals),
            key=lambda pair: (pair[0], _strongest_key(pair[1])),
            reverse=True,
        )
        total = sum(score for score, _ in scored)
        base = scored[0][1]
        if total <= 0:
            # Every candidate has a zero score; nothing to weight by
            return self._strongest(signals)

        weights = [(Decimal(str(score)), s) for score, s in scored]
        total_weight = sum((w for w, _ in weights), Decimal(0))
        stop_loss = sum((s.stop_loss * w for w, s in weights), Decimal(0)) / total_weight
        target = sum((s.target_price * w for w, s in weights), Decimal(0)) / total_weight
        success_rate = sum(score * s.success_rate for score, s in scored) / total

        reasons: list[str] = []
        for _, s in scored:
            if s.reason not in reasons:
                reasons.append(s.reason)
        reasons = reasons[:MAX_COMBINED_REASONS]

        try:
            risk_reward = compute_risk_reward(direction, base.entry_price, stop_loss, target)
        except ValueError:
            # Candidates entered at different prices can average past the base entry
            log.warning(
                "weighted_merge_rejected",
                symbol=base.symbol,
                direction=direction,
                stop_loss=str(stop_loss),
                target_price=str(target),
            )
            return base

        return base.model_copy(update={
            "reason": f"Combined signal: {' + '.join(reasons)}",
            "stop_loss": stop_loss,
            "target_price": target,
            "success_rate": min(max(success_rate, 0.0), 1.0),
            "risk_reward": risk_reward,
            "metadata": {
                **base.metadata,
                "aggregation_method": "weighted",
                "aggregation_count": len(signals),
                "aggregation_types": ",".join(sorted({s.type.value for s in signals})),
            },
        })

    def _majority(self, signals: list[TradingSignal]) -> TradingSignal:
        counts = Counter(s.type for s in signals)
        # Ties go to the heavier type, then alphabetical for determinism
        majority_type = max(
            counts,
            key=lambda t: (counts[t], self.config.type_weights.get(t, 1.0), t.value),
        )
        return self._strongest(s for s in signals if s.type == majority_type)
