"""Database engine factory."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool

from slotbook.core.config import settings

logger = logging.getLogger(__name__)


def _is_sqlite(url: str) -> bool:
    return url.lower().startswith("sqlite")


def _install_sqlite_events(engine: Engine) -> None:
    """
    Make every SQLite transaction a serialized writer.

    pysqlite defers BEGIN until the first DML statement, which lets two
    transactions read and then race for the write lock. Emitting
    ``BEGIN IMMEDIATE`` takes the reserved lock up front so concurrent
    writers queue on the busy timeout instead.
    """

    @event.listens_for(engine, "connect")  # type: ignore[untyped-decorator]
    def _on_connect(dbapi_connection: Any, _connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")  # type: ignore[untyped-decorator]
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def _add_pool_events(engine: Engine, pool_name: str) -> None:
    @event.listens_for(engine, "connect")  # type: ignore[untyped-decorator]
    def _on_connect(_dbapi_connection: Any, _connection_record: Any) -> None:
        logger.debug("[%s] Database connection established", pool_name)

    @event.listens_for(engine, "invalidate")  # type: ignore[untyped-decorator]
    def _on_invalidate(_dbapi_connection: Any, _connection_record: Any, exception: Any) -> None:
        logger.warning(
            "[%s] Connection invalidated: %s",
            pool_name,
            str(exception) if exception else "unknown",
        )


def build_engine(db_url: str, *, pool_name: str = "API") -> Engine:
    """Create an engine for ``db_url`` with dialect-appropriate tuning."""
    if _is_sqlite(db_url):
        engine = create_engine(
            db_url,
            future=True,
            connect_args={
                "check_same_thread": False,
                "timeout": settings.sqlite_busy_timeout_seconds,
            },
        )
        _install_sqlite_events(engine)
    else:
        engine = create_engine(
            db_url,
            poolclass=QueuePool,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_pre_ping=True,
            pool_use_lifo=True,
            future=True,
            connect_args={"options": f"-c statement_timeout={settings.db_statement_timeout_ms}"},
        )
    _add_pool_events(engine, pool_name)
    return engine


_engine: Engine | None = None


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = build_engine(settings.get_database_url())
    return _engine


__all__ = ["build_engine", "get_engine"]
