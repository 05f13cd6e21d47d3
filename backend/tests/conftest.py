"""Shared fixtures: in-memory SQLite database, API client and seeded collaborators."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from leave_ledger.db import get_session
from leave_ledger.main import app
from leave_ledger.models import SQLModel
from leave_ledger.services.employee import InMemoryEmployeeDirectory, set_employee_directory
from leave_ledger.services.leave_request import InMemoryLeaveRequestSource, set_leave_request_source

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator

    from sqlalchemy.ext.asyncio import AsyncEngine

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """A fresh in-memory database per test with all tables created."""
    _engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    await _engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Yield a database session bound to the test database."""
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def employee_directory() -> Iterator[InMemoryEmployeeDirectory]:
    """Install an empty in-memory employee directory for the test."""
    directory = InMemoryEmployeeDirectory()
    set_employee_directory(directory)
    yield directory
    set_employee_directory(InMemoryEmployeeDirectory())


@pytest.fixture
def leave_request_source() -> Iterator[InMemoryLeaveRequestSource]:
    """Install an empty in-memory leave-request source for the test."""
    source = InMemoryLeaveRequestSource()
    set_leave_request_source(source)
    yield source
    set_leave_request_source(InMemoryLeaveRequestSource())


@pytest.fixture
async def async_client(
    db_session: AsyncSession,
    employee_directory: InMemoryEmployeeDirectory,
    leave_request_source: InMemoryLeaveRequestSource,
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with the database session dependency overridden."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
