"""
Epic Notes — Database Session Management
=========================================

What:  Async SQLAlchemy engine, session factory, and lifecycle helpers.
Why:   Centralizes all database connection logic used by SqlNoteStore.
How:   Creates an async engine with connection pooling and a session factory;
       SqlNoteStore opens one session per store operation.
When:  Engine is created at module import; sessions are created per call.

Only used when NOTE_STORE=sql. The in-memory store never touches it, but the
engine object is cheap to build (no connection is opened until first use).

Connection Pooling Strategy:
    pool_size=20:     Persistent connections for normal load
    max_overflow=10:  Temporary connections for traffic spikes (total max = 30)
    pool_pre_ping:    Validates connections before use (catches stale connections)
    pool_recycle=3600: Recycles connections every hour

    SQLite (tests, local runs) uses a single-connection static pool instead;
    the queue-pool options above are rejected by the sqlite dialect.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from epicnotes.config import settings


def build_engine(database_url: str) -> AsyncEngine:
    """Create an async engine with pool options suited to the URL's dialect."""
    if database_url.startswith("sqlite"):
        return create_async_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=settings.log_level == "DEBUG",
        )
    return create_async_engine(
        database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,
        echo=settings.log_level == "DEBUG",
    )


# ── Engine Configuration ──────────────────────────────────────────────────
engine = build_engine(settings.database_url)

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: records are converted to pydantic after commit
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Registers every model with one metadata object, which Alembic reads for
    --autogenerate and `create_all_tables` uses for local/test databases.
    """
    pass


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def create_all_tables(target: Optional[AsyncEngine] = None) -> None:
    """
    What:  Creates all tables that do not exist yet.
    When:  Startup with NOTE_STORE=sql against SQLite, and in tests.
    Why:   Production schemas are managed by Alembic; this is the shortcut
           for throwaway databases.
    """
    # Models must be imported so their tables are registered on Base.metadata
    from epicnotes.models import note, user  # noqa: F401

    async with (target or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
