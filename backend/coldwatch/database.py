"""Async SQLAlchemy setup for the compliance store."""

from pathlib import Path

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from coldwatch.config import DATABASE_PATH


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def get_database_url() -> str:
    """SQLite URL for DATABASE_PATH, creating the data directory if needed."""
    db_path = Path(DATABASE_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite+aiosqlite:///{db_path.resolve()}"


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """Create an async engine with foreign keys enforced on every SQLite connection."""
    engine = create_async_engine(url, echo=False, **kwargs)

    # SQLite ships with foreign key checks off
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Rows stay readable after commit; the sweep commits once per sensor
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(get_database_url())
async_session = build_sessionmaker(engine)


async def get_db() -> AsyncSession:
    """FastAPI dependency yielding one session per request."""
    async with async_session() as session:
        yield session


def get_session() -> AsyncSession:
    """Session for scripts and scheduled jobs; use as `async with get_session() as session`."""
    return async_session()
