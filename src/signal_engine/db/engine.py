"""Database engine and session factory."""

from __future__ import annotations

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker


def _ensure_psycopg_driver(url: str) -> str:
    """Rewrite postgresql:// to postgresql+psycopg:// for psycopg v3."""
    if url.startswith("postgresql://"):
        return "postgresql+psycopg://" + url[len("postgresql://"):]
    return url


def create_session_factory(url: str, **kwargs) -> tuple[Engine, sessionmaker[Session]]:
    """Create an engine for *url* and a session factory bound to it.

    Extra keyword arguments go to ``create_engine``.
    """
    engine = create_engine(_ensure_psycopg_driver(url), **kwargs)
    return engine, sessionmaker(bind=engine, expire_on_commit=False)
