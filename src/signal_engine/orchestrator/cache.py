"""Single-slot signal cache with a generation counter guarding commits."""

from __future__ import annotations

import time
from collections.abc import Iterable

from signal_engine.models import SignalStatus, TradingSignal


class SignalCache:
    """The last refresh result, its generation and its expiry.

    A refresh reads ``generation`` before it starts and passes it back to
    commit(); the commit is refused if another refresh committed meanwhile.
    Status patches and replacements edit entries in place and keep the
    generation and expiry unchanged.
    """

    def __init__(self, ttl_seconds: float = 300.0, enabled: bool = True) -> None:
        self._ttl = ttl_seconds
        self.enabled = enabled
        self._entries: list[TradingSignal] = []
        self._generation = 0
        self._expires_at = 0.0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def entries(self) -> list[TradingSignal]:
        """Current contents, stale or not."""
        return list(self._entries)

    def get(self) -> list[TradingSignal] | None:
        """Return cached signals, or ``None`` if disabled, empty or expired."""
        if not self.enabled or not self._entries:
            return None
        if time.monotonic() >= self._expires_at:
            return None
        return list(self._entries)

    def commit(self, signals: list[TradingSignal], observed_generation: int) -> bool:
        """Replace the contents if *observed_generation* is still current."""
        if observed_generation != self._generation:
            return False
        self._generation += 1
        self._entries = list(signals)
        self._expires_at = time.monotonic() + self._ttl
        return True

    def patch_status(self, signal: TradingSignal, status: SignalStatus) -> bool:
        """Set *status* on the cached copy of *signal*; False if not cached."""
        for i, cached in enumerate(self._entries):
            if _same_signal(cached, signal):
                self._entries[i] = cached.model_copy(update={"status": status})
                return True
        return False

    def replace(
        self,
        removed: Iterable[TradingSignal],
        added: Iterable[TradingSignal],
    ) -> None:
        """Drop *removed* and terminal entries, then append *added*."""
        removed = list(removed)
        self._entries = [
            s for s in self._entries
            if s.status is SignalStatus.ACTIVE
            and not any(_same_signal(s, r) for r in removed)
        ]
        self._entries.extend(added)

    def invalidate(self) -> None:
        """Expire the contents without dropping them."""
        self._expires_at = 0.0


def _same_signal(a: TradingSignal, b: TradingSignal) -> bool:
    if a.id is not None or b.id is not None:
        return a.id == b.id
    return a.dedup_key == b.dedup_key
