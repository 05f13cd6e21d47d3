"""Persistence boundary for quotas, ledger configuration and balance snapshots.

All three live in one record store as rows of different ``kind``.
``RecordStore`` is the raw tag-based contract (list by kind, upsert by key);
``SnapshotStore`` is the typed repository the rest of the code talks to, so
nothing outside this module knows about kinds, keys or payload layout.
"""

# ruff: noqa: TC003
from __future__ import annotations

import logging
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Annotated, Any, Protocol, runtime_checkable

from fastapi import Depends
from pydantic import BaseModel, Field
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col

from leave_ledger.db import SessionDep
from leave_ledger.exceptions import StoreReadError, StoreWriteError
from leave_ledger.models.enums import RecordKind
from leave_ledger.models.record import LedgerStoreRecord
from leave_ledger.schemas.ledger import LedgerRow
from leave_ledger.services.identity import compact_id

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_ledger.schemas.period import PeriodKey

logger = logging.getLogger(__name__)

MONTHLY_ACCRUAL_KEY = "monthly_accrual"

_AMOUNT_FIELDS = ("opening", "allocated", "used", "adjusted", "closing", "carry_forward")


class StoredRecord(BaseModel):
    """A raw store row, independent of the backing technology."""

    kind: RecordKind
    record_key: str
    employee_id: str | None = None
    month_key: str | None = None
    policy_code: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)


@runtime_checkable
class RecordStore(Protocol):
    """Tag-based key/value contract of the backing store."""

    async def list_all(self, kind: RecordKind, *, month_key: str | None = None) -> list[StoredRecord]:
        """All records of ``kind``, optionally limited to one month. Raises StoreReadError."""
        ...

    async def get_record(self, kind: RecordKind, record_key: str) -> StoredRecord | None:
        """A single record, or None. Raises StoreReadError."""
        ...

    async def upsert(self, record: StoredRecord) -> None:
        """Insert or replace the record with the same (kind, key). Raises StoreWriteError."""
        ...

    async def delete(self, kind: RecordKind, record_key: str) -> None:
        """Remove a record; missing keys are ignored. Raises StoreWriteError."""
        ...


# ---------------------------------------------------------------------------
# Row <-> record mapping
# ---------------------------------------------------------------------------


def snapshot_key(employee_id: str, month_key: str, policy_code: str) -> str:
    """Composite snapshot identity: employee + month + policy."""
    return f"{compact_id(employee_id)}|{month_key}|{policy_code}"


def row_to_record(row: LedgerRow) -> StoredRecord:
    payload: dict[str, Any] = {
        "employee_id": row.employee_id,
        "employee_name": row.employee_name,
        "department": row.department,
        "policy_code": row.policy_code,
        "month_key": row.month_key,
        "is_manual_override": row.is_manual_override,
        "is_locked": row.is_locked,
        "calculated_on": datetime.now(UTC).isoformat(),
    }
    # Strings keep Decimal precision through the JSON column.
    payload.update({name: str(getattr(row, name)) for name in _AMOUNT_FIELDS})
    return StoredRecord(
        kind=RecordKind.SNAPSHOT,
        record_key=snapshot_key(row.employee_id, row.month_key, row.policy_code),
        employee_id=row.employee_id,
        month_key=row.month_key,
        policy_code=row.policy_code,
        payload=payload,
    )


def record_to_row(record: StoredRecord) -> LedgerRow:
    payload = record.payload
    amounts = {name: Decimal(str(payload.get(name) or "0")) for name in _AMOUNT_FIELDS}
    return LedgerRow(
        employee_id=str(payload.get("employee_id") or record.employee_id or ""),
        employee_name=str(payload.get("employee_name") or ""),
        department=str(payload.get("department") or "-"),
        month_key=str(payload.get("month_key") or record.month_key),
        policy_code=str(payload.get("policy_code") or record.policy_code),
        is_manual_override=bool(payload.get("is_manual_override", False)),
        is_locked=bool(payload.get("is_locked", False)),
        **amounts,
    )


# ---------------------------------------------------------------------------
# Typed repository
# ---------------------------------------------------------------------------


class SnapshotStore:
    """Typed access to snapshots, quotas and ledger configuration."""

    def __init__(self, records: RecordStore) -> None:
        self.records = records

    # -- snapshots -----------------------------------------------------------

    async def get(self, employee_id: str, period: PeriodKey, policy_code: str) -> LedgerRow | None:
        record = await self.records.get_record(
            RecordKind.SNAPSHOT, snapshot_key(employee_id, period.month_key, policy_code)
        )
        return record_to_row(record) if record is not None else None

    async def put(self, row: LedgerRow) -> None:
        await self.records.upsert(row_to_record(row))

    async def list_for_period(self, period: PeriodKey) -> list[LedgerRow]:
        records = await self.records.list_all(RecordKind.SNAPSHOT, month_key=period.month_key)
        return [record_to_row(r) for r in records]

    async def list_snapshots(self) -> list[LedgerRow]:
        return [record_to_row(r) for r in await self.records.list_all(RecordKind.SNAPSHOT)]

    # -- configuration -------------------------------------------------------

    async def list_config(self) -> dict[str, str]:
        records = await self.records.list_all(RecordKind.CONFIG)
        return {r.record_key: str(r.payload.get("value", "")) for r in records}

    async def get_monthly_accrual(self) -> Decimal | None:
        value = (await self.list_config()).get(MONTHLY_ACCRUAL_KEY)
        return Decimal(value) if value else None

    async def put_monthly_accrual(self, value: Decimal) -> None:
        await self.records.upsert(
            StoredRecord(kind=RecordKind.CONFIG, record_key=MONTHLY_ACCRUAL_KEY, payload={"value": str(value)})
        )

    # -- quotas --------------------------------------------------------------

    async def list_quotas(self) -> dict[str, Decimal]:
        records = await self.records.list_all(RecordKind.QUOTA)
        return {r.record_key: Decimal(str(r.payload.get("days") or "0")) for r in records}

    async def replace_quotas(self, quotas: dict[str, Decimal]) -> None:
        """Make the stored quota rows exactly ``quotas``."""
        existing = await self.records.list_all(RecordKind.QUOTA)
        for record in existing:
            if record.record_key not in quotas:
                await self.records.delete(RecordKind.QUOTA, record.record_key)
        for leave_type, days in quotas.items():
            await self.records.upsert(
                StoredRecord(
                    kind=RecordKind.QUOTA,
                    record_key=leave_type,
                    payload={"leave_type": leave_type, "days": str(days)},
                )
            )


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


class InMemoryRecordStore:
    """Dict-backed record store for development and tests."""

    def __init__(self) -> None:
        self._records: dict[tuple[RecordKind, str], StoredRecord] = {}

    def seed(self, record: StoredRecord) -> None:
        """Seed a record for testing."""
        self._records[(record.kind, record.record_key)] = record

    async def list_all(self, kind: RecordKind, *, month_key: str | None = None) -> list[StoredRecord]:
        return [
            r.model_copy(deep=True)
            for (k, _), r in sorted(self._records.items())
            if k == kind and (month_key is None or r.month_key == month_key)
        ]

    async def get_record(self, kind: RecordKind, record_key: str) -> StoredRecord | None:
        record = self._records.get((kind, record_key))
        return record.model_copy(deep=True) if record is not None else None

    async def upsert(self, record: StoredRecord) -> None:
        self._records[(record.kind, record.record_key)] = record.model_copy(deep=True)

    async def delete(self, kind: RecordKind, record_key: str) -> None:
        self._records.pop((kind, record_key), None)


# ---------------------------------------------------------------------------
# SQL backend
# ---------------------------------------------------------------------------


def _to_stored(record: LedgerStoreRecord) -> StoredRecord:
    return StoredRecord(
        kind=RecordKind(record.kind),
        record_key=record.record_key,
        employee_id=record.employee_id,
        month_key=record.month_key,
        policy_code=record.policy_code,
        payload=dict(record.payload_json or {}),
    )


class SqlRecordStore:
    """Record store backed by the ``ledger_store_record`` table.

    Every write commits on its own, so each record is atomic but a sequence of
    writes is not.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_all(self, kind: RecordKind, *, month_key: str | None = None) -> list[StoredRecord]:
        filters = [col(LedgerStoreRecord.kind) == kind.value]
        if month_key is not None:
            filters.append(col(LedgerStoreRecord.month_key) == month_key)
        try:
            result = await self.session.execute(
                select(LedgerStoreRecord).where(*filters).order_by(col(LedgerStoreRecord.record_key))
            )
        except SQLAlchemyError as exc:
            logger.exception("Failed to list %s records", kind.value)
            raise StoreReadError(f"Could not read {kind.value.lower()} records") from exc
        return [_to_stored(r) for r in result.scalars().all()]

    async def get_record(self, kind: RecordKind, record_key: str) -> StoredRecord | None:
        try:
            result = await self.session.execute(
                select(LedgerStoreRecord).where(
                    col(LedgerStoreRecord.kind) == kind.value,
                    col(LedgerStoreRecord.record_key) == record_key,
                )
            )
        except SQLAlchemyError as exc:
            logger.exception("Failed to read %s record %s", kind.value, record_key)
            raise StoreReadError(f"Could not read {kind.value.lower()} record {record_key}") from exc
        record = result.scalar_one_or_none()
        return _to_stored(record) if record is not None else None

    async def _get_record_for_update(self, kind: RecordKind, record_key: str) -> LedgerStoreRecord | None:
        result = await self.session.execute(
            select(LedgerStoreRecord)
            .where(
                col(LedgerStoreRecord.kind) == kind.value,
                col(LedgerStoreRecord.record_key) == record_key,
            )
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def upsert(self, record: StoredRecord) -> None:
        try:
            existing = await self._get_record_for_update(record.kind, record.record_key)
            if existing is None:
                self.session.add(
                    LedgerStoreRecord(
                        kind=record.kind.value,
                        record_key=record.record_key,
                        employee_id=record.employee_id,
                        month_key=record.month_key,
                        policy_code=record.policy_code,
                        payload_json=dict(record.payload),
                    )
                )
            else:
                existing.employee_id = record.employee_id
                existing.month_key = record.month_key
                existing.policy_code = record.policy_code
                existing.payload_json = dict(record.payload)
                existing.version += 1
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("Failed to write %s record %s", record.kind.value, record.record_key)
            raise StoreWriteError(f"Could not write {record.kind.value.lower()} record {record.record_key}") from exc

    async def delete(self, kind: RecordKind, record_key: str) -> None:
        try:
            await self.session.execute(
                delete(LedgerStoreRecord).where(
                    col(LedgerStoreRecord.kind) == kind.value,
                    col(LedgerStoreRecord.record_key) == record_key,
                )
            )
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("Failed to delete %s record %s", kind.value, record_key)
            raise StoreWriteError(f"Could not delete {kind.value.lower()} record {record_key}") from exc


def get_snapshot_store(session: SessionDep) -> SnapshotStore:
    """FastAPI dependency for the SQL-backed snapshot store."""
    return SnapshotStore(SqlRecordStore(session))


SnapshotStoreDep = Annotated[SnapshotStore, Depends(get_snapshot_store)]
