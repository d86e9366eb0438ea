"""
NoteX Backend — Database Engine and Session Management
=======================================================

What:  Async SQLAlchemy engine factory, schema bootstrap, and the FastAPI
       session dependency.
How:   The engine is NOT created at import time: its credentials live in
       Secret Manager, so the configuration loader calls create_db_engine()
       once the secrets are known. Sessions are created per request from the
       session factory stored on the loader's Runtime.

Connection Pooling:
    pool_size / max_overflow come from Settings (small by default, one pool
    per function instance). pool_pre_ping catches stale connections after a
    database restart. Plain TCP: asyncpg is told ssl=False.
"""

from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import URL
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from notex.config import RuntimeConfig, Settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


# ── Engine Configuration ──────────────────────────────────────────────────
def create_db_engine(config: RuntimeConfig, settings: Settings) -> AsyncEngine:
    """
    Build the async engine (and its connection pool) for PostgreSQL.

    Args:
        config:   Credentials, host, port and database name.
        settings: Pool sizing and log level.
    """
    url = URL.create(
        "postgresql+asyncpg",
        username=config.db_user,
        password=config.db_password,
        host=config.db_host,
        port=config.db_port,
        database=config.db_name,
    )
    return create_async_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
        pool_recycle=3600,
        connect_args={"ssl": False},
        echo=settings.log_level == "DEBUG",
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: created notes are read after the commit
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    """
    Create the notes table if it does not exist yet.

    create_all checks for the table first, so this is a no-op on every
    load after the first one against a given database.
    """
    # Registers the Note table on Base.metadata
    from notex.models.note import Note  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    The readiness middleware has already run the loader, so the app's
    loader holds a ready Runtime. Writes are committed by the
    store itself before the handler builds its response; this dependency
    only rolls back on error and returns the connection to the pool.

    Example usage in a route:
        @router.get("/notes")
        async def list_notes(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    session_factory = request.app.state.loader.runtime.session_factory
    async with session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
