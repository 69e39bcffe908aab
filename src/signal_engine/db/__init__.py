"""Database layer — engine, session factory, ORM base."""

from signal_engine.db.base import Base
from signal_engine.db.engine import create_session_factory

__all__ = ["Base", "create_session_factory"]
