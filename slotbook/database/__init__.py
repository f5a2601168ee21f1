"""
Database engine, session factory, and metadata shared across the application.
"""

from __future__ import annotations

import logging

from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeMeta, declarative_base

from .engines import build_engine, get_engine
from .sessions import SessionLocal, get_db, get_db_session, init_session_factories

logger = logging.getLogger(__name__)

Base: DeclarativeMeta = declarative_base()


def init_db(engine: Engine | None = None) -> None:
    """Create every table registered on ``Base`` (no-op for existing tables)."""
    # Register models on the metadata before create_all
    from slotbook import models  # noqa: F401

    target = engine or get_engine()
    Base.metadata.create_all(bind=target)
    logger.info("Database tables ensured on %s", target.url.render_as_string(hide_password=True))


__all__ = [
    "Base",
    "SessionLocal",
    "build_engine",
    "get_db",
    "get_db_session",
    "get_engine",
    "init_db",
    "init_session_factories",
]
