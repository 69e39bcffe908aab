"""Signal persistence — the store interface and its SQL and in-memory backends."""

from __future__ import annotations

import itertools
from datetime import datetime, timezone
from decimal import Decimal
from typing import Protocol

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from signal_engine.db.tables.signals import TradingSignalRow
from signal_engine.models import SignalStatus, TradingSignal


class SignalStore(Protocol):
    """Durable record of emitted signals."""

    def save_signal(self, signal: TradingSignal) -> TradingSignal:
        """Insert *signal* and return it with its new id."""
        ...

    def update_signal_status(self, signal_id: str, status: SignalStatus) -> None: ...

    def load_active_signals(self) -> list[TradingSignal]: ...


def _aware(ts: datetime) -> datetime:
    # SQLite drops tzinfo; every stored timestamp is UTC
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def _row_to_signal(row: TradingSignalRow) -> TradingSignal:
    return TradingSignal(
        id=str(row.id),
        symbol=row.symbol,
        type=row.type,
        signal=row.direction,
        reason=row.reason,
        strength=row.strength,
        timestamp=_aware(row.created_at),
        price=Decimal(str(row.price)),
        entry_price=Decimal(str(row.entry_price)),
        stop_loss=Decimal(str(row.stop_loss)),
        target_price=Decimal(str(row.target_price)),
        success_rate=float(row.success_rate),
        timeframe=row.timeframe,
        expiry=_aware(row.expiry),
        risk_reward=row.risk_reward,
        status=row.status,
        related_asset=row.related_asset,
        metadata=row.metadata_ or {},
    )


class SqlSignalStore:
    """Signals in the ``trading_signals.signals`` table."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def save_signal(self, signal: TradingSignal) -> TradingSignal:
        row = TradingSignalRow(
            created_at=signal.timestamp,
            symbol=signal.symbol,
            type=signal.type.value,
            direction=signal.signal,
            reason=signal.reason,
            strength=signal.strength.value,
            price=signal.price,
            entry_price=signal.entry_price,
            stop_loss=signal.stop_loss,
            target_price=signal.target_price,
            success_rate=Decimal(str(signal.success_rate)),
            timeframe=signal.timeframe,
            expiry=signal.expiry,
            risk_reward=signal.risk_reward,
            status=signal.status.value,
            related_asset=signal.related_asset,
            metadata_=dict(signal.metadata),
        )
        with self._session_factory() as session:
            session.add(row)
            session.commit()
            session.refresh(row)
            return signal.model_copy(update={"id": str(row.id)})

    def update_signal_status(self, signal_id: str, status: SignalStatus) -> None:
        with self._session_factory() as session:
            session.execute(
                update(TradingSignalRow)
                .where(TradingSignalRow.id == int(signal_id))
                .values(status=status.value)
            )
            session.commit()

    def load_active_signals(self) -> list[TradingSignal]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(TradingSignalRow)
                .where(TradingSignalRow.status == SignalStatus.ACTIVE.value)
                .order_by(TradingSignalRow.id)
            ).all()
            return [_row_to_signal(r) for r in rows]


class InMemorySignalStore:
    """Process-local store for development runs and tests."""

    def __init__(self) -> None:
        self._signals: dict[str, TradingSignal] = {}
        self._ids = itertools.count(1)

    def save_signal(self, signal: TradingSignal) -> TradingSignal:
        saved = signal.model_copy(update={"id": str(next(self._ids))})
        self._signals[saved.id] = saved
        return saved

    def update_signal_status(self, signal_id: str, status: SignalStatus) -> None:
        current = self._signals.get(signal_id)
        if current is None:
            raise KeyError(f"unknown signal id {signal_id!r}")
        self._signals[signal_id] = current.model_copy(update={"status": status})

    def load_active_signals(self) -> list[TradingSignal]:
        return [s for s in self._signals.values() if s.status is SignalStatus.ACTIVE]

    def all_signals(self) -> list[TradingSignal]:
        return list(self._signals.values())
