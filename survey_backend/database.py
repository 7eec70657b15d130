"""Database connection and session management."""
import logging
from pathlib import Path

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from survey_backend.config import Settings

logger = logging.getLogger(__name__)


def _prepare_sqlite_file(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    database = make_url(database_url).database
    if not database or database == ":memory:":
        return
    Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def _enable_sqlite_transactional_ddl(engine: AsyncEngine) -> None:
    """Let SQLAlchemy own BEGIN so CREATE/DROP/RENAME roll back with the transaction.

    The sqlite3 driver otherwise runs DDL outside of any transaction.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(
    database_url: str,
    *,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
) -> AsyncEngine:
    """Create an async engine for the given URL.

    File-backed SQLite databases get their directory created up front; a
    failure here is fatal for startup.
    """
    is_sqlite = make_url(database_url).drivername.startswith("sqlite")
    kwargs = {"echo": echo, "future": True, "pool_pre_ping": True}

    if is_sqlite:
        _prepare_sqlite_file(database_url)
    else:
        kwargs.update(
            pool_recycle=3600,  # Recycle connections every hour
            pool_size=max(1, pool_size),
            max_overflow=max(0, max_overflow),
        )

    try:
        engine = create_async_engine(database_url, **kwargs)
    except Exception as e:
        logger.error(f"Failed to create database engine: {e}")
        raise

    if is_sqlite:
        _enable_sqlite_transactional_ddl(engine)

    logger.debug("Database engine created successfully")
    return engine


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


def engine_from_settings(settings: Settings) -> AsyncEngine:
    return build_engine(
        settings.database_url,
        echo=settings.environment == "development",
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )


# Base class for models
Base = declarative_base()


# Dependency for FastAPI
async def get_db(request: Request):
    """FastAPI dependency to get a session from the application's own engine."""
    async with request.app.state.sessionmaker() as session:
        try:
            yield session
        finally:
            await session.close()
