"""Pytest fixtures for payroll reconciliation tests."""

from __future__ import annotations

from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from factories import (
    INTERNAL_WORK_CLIENT_ID,
    PERIOD_END,
    PERIOD_START,
    TIME_OFF_CLIENT_ID,
    create_worker,
    log_internal,
    weekdays,
)
from payroll_recon.api.app import create_app
from payroll_recon.api.dependencies import get_db_session
from payroll_recon.models import Base, WorkBucketAssignment, Worker
from payroll_recon.services import PayrollRunService, RunDetails

# In-memory SQLite shared by every session of one test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine():
    """Create test database engine with the schema in place."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def buckets(session: AsyncSession) -> None:
    """Configure the time-off and internal-work buckets."""
    session.add_all(
        [
            WorkBucketAssignment(role="time_off", client_id=TIME_OFF_CLIENT_ID),
            WorkBucketAssignment(role="internal_work", client_id=INTERNAL_WORK_CLIENT_ID),
        ]
    )
    await session.commit()


@pytest_asyncio.fixture
async def service(session: AsyncSession) -> PayrollRunService:
    return PayrollRunService(session)


@pytest_asyncio.fixture
async def hourly_worker(session: AsyncSession, buckets) -> Worker:
    """Hourly worker at $50 with 160 approved and 10 submitted hours."""
    worker = await create_worker(session, "Alice", "Anders", "hourly", Decimal("50.00"))
    for day in weekdays():
        log_internal(session, worker, day, Decimal("8"))
    log_internal(session, worker, PERIOD_END, Decimal("10"), approval_status="submitted")
    await session.commit()
    return worker


@pytest_asyncio.fixture
async def draft_run(service: PayrollRunService) -> RunDetails:
    return await service.create_run("regular", PERIOD_START, PERIOD_END, created_by="tests")


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client bound to the test database."""
    app = create_app()

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
