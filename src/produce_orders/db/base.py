"""Database configuration and setup."""

from typing import Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


async def init_db(engine: AsyncEngine) -> None:
    """Create tables that do not exist yet."""
    # Make sure every model is registered on the metadata
    from produce_orders.db import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def get_engine(
    database_url: str,
    isolation_level: Optional[str] = None,
    echo: bool = False,
) -> AsyncEngine:
    """Create async engine."""
    options = {"echo": echo, "future": True}

    is_sqlite = database_url.startswith("sqlite")
    if is_sqlite:
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_pre_ping"] = True

    if isolation_level:
        options["isolation_level"] = isolation_level

    engine = create_async_engine(database_url, **options)
    if is_sqlite:
        _begin_immediate(engine)
    return engine


def _begin_immediate(engine: AsyncEngine) -> None:
    """
    Make every SQLite transaction take the database write lock at BEGIN.

    SQLite has no row locks, so this is what serializes concurrent stock
    checks. The driver's own deferred BEGIN is switched off.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def get_session_factory(engine: AsyncEngine):
    """Create async session factory."""
    return sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        future=True,
    )
