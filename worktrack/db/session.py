"""
db/session.py
-------------
Async SQLAlchemy engine and session factory.

Design decisions:
  - AsyncEngine with asyncpg driver for non-blocking I/O.
  - Connection pool sized for typical SaaS workloads:
      pool_size=10, max_overflow=20 → max 30 concurrent DB connections.
    SQLite URLs (tests, local development) keep the dialect's own pool.
  - pool_pre_ping=True: validates connections before checkout to handle
    stale connections after DB restarts or idle timeouts.
  - expire_on_commit=False: rows stay readable after the per-call commit
    that SqlRecordStore performs.
"""

from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from worktrack.core.config import settings
from worktrack.models import Base


def engine_options(url: str) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": settings.DEBUG}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=10,
            max_overflow=20,
            pool_pre_ping=True,
            pool_recycle=3600,  # Recycle connections every hour
        )
    return options


def build_engine(url: str) -> AsyncEngine:
    return create_async_engine(url, **engine_options(url))


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


# ── Engine ────────────────────────────────────────────────────────────────────
engine = build_engine(settings.DATABASE_URL)

# ── Session Factory ───────────────────────────────────────────────────────────
AsyncSessionLocal = build_sessionmaker(engine)


async def create_all_tables(bind: AsyncEngine = engine) -> None:
    """Create every WorkTrack table. Use Alembic for production migrations."""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
