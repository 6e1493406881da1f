"""Database engine and session management."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import MetaData, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base shared by every dashboard table."""

    metadata = MetaData(naming_convention=naming_convention)


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


class DatabaseManager:
    """Owns the SQLAlchemy engine and hands out sessions.

    SQLite connections enable foreign key enforcement so ``ON DELETE`` rules
    declared on the models behave as they do on other databases.
    """

    def __init__(self, database_url: str, *, echo: bool = False) -> None:
        if not database_url:
            raise ValueError("A database URL is required to initialise the database.")

        self.database_url = database_url
        engine_kwargs: dict[str, Any] = {"echo": echo}
        if database_url.startswith("sqlite"):
            # TestClient and uvicorn's thread pool share connections across threads.
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                # An in-memory database only lives as long as its single connection.
                engine_kwargs["poolclass"] = StaticPool

        self._engine = create_engine(database_url, **engine_kwargs)
        if self._engine.dialect.name == "sqlite":
            event.listen(self._engine, "connect", _enable_sqlite_foreign_keys)

        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        logger.info("Initialised database engine for %s", self._engine.url)

    @property
    def engine(self) -> Engine:
        return self._engine

    def create_all(self) -> None:
        """Create every table that does not exist yet."""

        # Importing the models registers their tables on ``Base.metadata``.
        from . import models  # noqa: F401

        try:
            Base.metadata.create_all(self._engine)
        except Exception:
            logger.exception("Error creating tables.")
            raise
        logger.info("Database tables created (or verified existing).")

    def drop_all(self) -> None:
        from . import models  # noqa: F401

        Base.metadata.drop_all(self._engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a session committed on success and rolled back on error."""

        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self._engine.dispose()


__all__ = ["Base", "DatabaseManager", "naming_convention"]
