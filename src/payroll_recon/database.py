"""Database connection, session management and per-run locks."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from payroll_recon.config import get_settings

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


def get_engine(database_url: str | None = None) -> AsyncEngine:
    """Create async database engine."""
    settings = get_settings()
    url = database_url or settings.database_url
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False)
    return create_async_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


# Global engine and session factory
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_db() -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Initialize database engine and session factory."""
    global _engine, _session_factory
    if _engine is None:
        _engine = get_engine()
        _session_factory = async_sessionmaker(
            _engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _engine, _session_factory


async def dispose_db() -> None:
    """Dispose the global engine, if one was created."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None



# Locks held by this process when the database has no advisory locks
_local_locks: set[str] = set()
_local_guard = threading.Lock()


def _is_postgres(session: AsyncSession) -> bool:
    return session.get_bind().dialect.name == "postgresql"


async def acquire_run_lock(session: AsyncSession, payroll_run_id: str) -> bool:
    """Acquire the calculation lock for a payroll run.

    On PostgreSQL this is a transaction-scoped advisory lock, released by the
    commit or rollback that ends the calculation. Elsewhere the lock is held
    in-process until release_run_lock is called.

    Returns True if lock acquired, False if already held.
    """
    if _is_postgres(session):
        result = await session.execute(
            text("SELECT pg_try_advisory_xact_lock(hashtext(:payroll_run_id))"),
            {"payroll_run_id": payroll_run_id},
        )
        return bool(result.scalar())

    with _local_guard:
        if payroll_run_id in _local_locks:
            return False
        _local_locks.add(payroll_run_id)
        return True


async def release_run_lock(session: AsyncSession, payroll_run_id: str) -> None:
    """Release the calculation lock for a payroll run."""
    if _is_postgres(session):
        # Released with the transaction
        return

    with _local_guard:
        _local_locks.discard(payroll_run_id)
