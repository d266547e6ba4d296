"""Database engine/session initialization and the transaction primitive."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache
from typing import Any

import structlog
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from preset_vault.config import get_settings
from preset_vault.db.models import Base

logger = structlog.get_logger()


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (":memory:" in url or url.rstrip("/").endswith("sqlite:"))


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    # SQLite ignores ON DELETE CASCADE unless asked per connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Wrapper around a SQLAlchemy engine with session and transaction helpers."""

    def __init__(self, url: str, echo: bool = False) -> None:
        kwargs: dict[str, Any] = {"echo": echo}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if _is_memory_sqlite(url):
                # One shared connection, otherwise every session sees an empty database.
                kwargs["poolclass"] = StaticPool
        self._engine = create_engine(url, **kwargs)
        if url.startswith("sqlite"):
            event.listen(self._engine, "connect", _enable_sqlite_foreign_keys)
        self._sessions = sessionmaker(self._engine, expire_on_commit=False, autoflush=False)

    @property
    def engine(self) -> Engine:
        """Access the raw SQLAlchemy engine."""
        return self._engine

    def create_schema(self) -> None:
        """Create all tables that don't exist yet."""
        Base.metadata.create_all(self._engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Session for reads. Nothing is committed."""
        with self._sessions() as session:
            yield session

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """All-or-nothing unit of work: commits on success, rolls back on any exception."""
        with self._sessions() as session:
            with session.begin():
                yield session

    def dispose(self) -> None:
        self._engine.dispose()


@lru_cache
def get_database() -> Database:
    """Get cached database instance."""
    settings = get_settings()
    db = Database(settings.database_url, echo=settings.database_echo)
    logger.info("database.connected", dialect=db.engine.dialect.name)
    return db
