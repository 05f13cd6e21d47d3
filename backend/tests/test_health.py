from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from leave_ledger.db import get_session
from leave_ledger.exceptions import StoreReadError
from leave_ledger.main import app
from leave_ledger.models.enums import RecordKind
from leave_ledger.services.snapshot_store import InMemoryRecordStore, SnapshotStore, StoredRecord, get_snapshot_store

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class _UnreadableRecordStore(InMemoryRecordStore):
    async def list_all(self, kind: RecordKind, *, month_key: str | None = None) -> list[StoredRecord]:
        raise StoreReadError("store offline")


async def test_health_ok(async_client: AsyncClient) -> None:
    response = await async_client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["store"] == "ok"
    assert data["version"] == "0.1.0"
    assert data["monthly_accrual"] == 1.5
    assert set(data.keys()) == {"status", "version", "environment", "store", "monthly_accrual"}


async def test_health_reports_stored_monthly_accrual(async_client: AsyncClient) -> None:
    await async_client.post("/ledger/2025-05/save", json={"monthly_accrual": 2.25})
    data = (await async_client.get("/health")).json()
    assert data["monthly_accrual"] == 2.25


async def test_health_degraded_when_store_unreadable(async_client: AsyncClient) -> None:
    app.dependency_overrides[get_snapshot_store] = lambda: SnapshotStore(_UnreadableRecordStore())
    try:
        response = await async_client.get("/health")
    finally:
        del app.dependency_overrides[get_snapshot_store]
    data = response.json()
    assert response.status_code == 200
    assert data["status"] == "degraded"
    assert data["store"] == "unavailable"


async def test_health_degraded_on_db_failure() -> None:
    """GET /health returns degraded status when the database is unreachable."""
    mock_session = AsyncMock(spec=AsyncSession)
    mock_session.execute.side_effect = ConnectionError("DB unreachable")

    async def _broken_session() -> AsyncIterator[AsyncSession]:
        yield mock_session

    app.dependency_overrides[get_session] = _broken_session
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["store"] == "unavailable"
    finally:
        app.dependency_overrides.clear()
