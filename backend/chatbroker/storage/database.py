"""
Database connection management.

Owns the async SQLAlchemy engine and session factory, the per-operation
transaction scope used by every store, and schema bootstrap (create tables,
then add columns introduced after the first release to older databases).
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from sqlalchemy import event, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from ..core.errors import PersistenceError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored in every datetime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


# Columns added to ``messages`` after the first schema version
_MESSAGE_COLUMN_UPGRADES = (
    ("content_type", "content_type VARCHAR(20) DEFAULT 'text'"),
    ("image_metadata", "image_metadata TEXT"),
)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _upgrade_messages_table(sync_conn) -> None:
    existing = {column["name"] for column in inspect(sync_conn).get_columns("messages")}
    for name, ddl in _MESSAGE_COLUMN_UPGRADES:
        if name not in existing:
            sync_conn.execute(text(f"ALTER TABLE messages ADD COLUMN {ddl}"))
            logger.info(f"Schema updated: added messages.{name}")


class Database:
    """
    Async database handle shared by all stores.

    Args:
        url: SQLAlchemy async URL (e.g. ``sqlite+aiosqlite:///./chatbroker.db``)
        echo: Log emitted SQL
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        engine_kwargs = {}
        if url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in url:
                # One shared connection, otherwise every checkout sees an empty database
                engine_kwargs["poolclass"] = StaticPool

        self.engine: AsyncEngine = create_async_engine(url, echo=echo, **engine_kwargs)
        if url.startswith("sqlite"):
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self.session_factory = async_sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """
        Open a session with a transaction that commits on success and rolls
        back on any exception.

        Raises:
            PersistenceError: If the database rejects a statement or the commit
        """
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as e:
            reason = getattr(e, "orig", None) or e
            logger.error(
                f"Database operation failed: {reason}",
                extra={"extra_fields": {"error_type": type(e).__name__}}
            )
            raise PersistenceError(f"Database operation failed: {reason}") from e

    async def init_schema(self) -> None:
        """Create missing tables and upgrade older ``messages`` tables."""
        # Register models on Base.metadata
        from . import orm  # noqa: F401

        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
                await conn.run_sync(_upgrade_messages_table)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Schema initialization failed: {e}") from e
        logger.info("Database schema ready", extra={"extra_fields": {"url": self.url}})

    async def close(self) -> None:
        await self.engine.dispose()
        logger.info("Database connection closed.")


# Global database instance
_database: Optional[Database] = None


def init_database(url: str, echo: bool = False) -> Database:
    """
    Initialize the global database instance.

    Args:
        url: SQLAlchemy async database URL
        echo: Log emitted SQL

    Returns:
        Database: The new global instance
    """
    global _database
    _database = Database(url, echo=echo)
    return _database


def get_database() -> Database:
    """
    Get the global database instance.

    Raises:
        RuntimeError: If the database has not been initialized
    """
    if _database is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _database
