"""
database.py — SQLAlchemy 2.0 async engine and session factory.

This module owns ALL database connection infrastructure.
Nothing else in the codebase creates engines or sessions directly.

The engine is NOT a module-level global: a Database object is constructed
explicitly (main.create_app / lifespan, or a test fixture), stored on
app.state.database, and disposed when the application stops.

Usage in routes (via dependency injection):
    from jibunshi.database import get_db
    async def my_route(db: AsyncSession = Depends(get_db)): ...

Usage in background tasks (direct call — caller manages its own scope):
    async with app.state.database.session() as session: ...
"""
from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from typing import Any

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


# ---------------------------------------------------------------------------
# Declarative base — ALL ORM models inherit from this
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """
    SQLAlchemy declarative base.
    All ORM models in jibunshi/models/ inherit from Base.
    Defined here (not in models/) to prevent circular imports in alembic/env.py.
    """
    pass


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless the pragma is set per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def ensure_sqlite_parent_dir(url: str) -> None:
    """Create the directory holding a file-backed SQLite database."""
    path = make_url(url).database
    if path and path != ":memory:":
        parent = os.path.dirname(os.path.abspath(path))
        os.makedirs(parent, exist_ok=True)


# ---------------------------------------------------------------------------
# Database — one per application lifetime
# ---------------------------------------------------------------------------
class Database:
    """
    Owns the async engine and the session factory for one database URL.

    Works against both backends:
      - sqlite+aiosqlite   embedded single-writer store (foreign keys enabled)
      - postgresql+asyncpg pooled managed server
    """

    def __init__(self, url: str, *, echo: bool = False, **engine_kwargs: Any) -> None:
        self.url = url
        self.is_sqlite = url.startswith("sqlite")

        if not self.is_sqlite:
            engine_kwargs.setdefault("pool_size", 5)         # Core connection pool size
            engine_kwargs.setdefault("max_overflow", 10)     # Extra connections under peak load
            engine_kwargs.setdefault("pool_pre_ping", True)  # Discard stale connections before use
        else:
            ensure_sqlite_parent_dir(url)

        self.engine: AsyncEngine = create_async_engine(url, echo=echo, **engine_kwargs)
        if self.is_sqlite:
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,   # Keep objects usable after commit without re-querying
        )

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def create_all(self) -> None:
        """Create every table from Base.metadata (tests and first-run dev setups)."""
        import jibunshi.models  # noqa: F401  registers all ORM classes on Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


# ---------------------------------------------------------------------------
# FastAPI dependency — yields session, commits or rolls back
# ---------------------------------------------------------------------------
async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields an AsyncSession per request.

    Automatically commits on success or rolls back on exception.
    Always closes the session after the request (via async context manager).

    Usage:
        async def route(db: AsyncSession = Depends(get_db)):
            ...
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
