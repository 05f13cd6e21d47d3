from __future__ import annotations

from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from leave_ledger.models.base import UpdatedAtMixin, UUIDBase


class LedgerStoreRecord(UUIDBase, UpdatedAtMixin, table=True):
    """One row of the shared ledger store.

    Quota definitions, ledger configuration and monthly balance snapshots all
    live here, told apart by ``kind``. ``record_key`` is unique per kind, which
    is what makes writes upserts.
    """

    __tablename__ = "ledger_store_record"
    __table_args__ = (
        sa.UniqueConstraint("kind", "record_key", name="uq_ledger_store_kind_key"),
        sa.Index("ix_ledger_store_kind_month", "kind", "month_key"),
    )

    kind: str = Field(max_length=20, index=True)
    record_key: str = Field(max_length=255)
    employee_id: str | None = Field(default=None, max_length=255)
    month_key: str | None = Field(default=None, max_length=7)
    policy_code: str | None = Field(default=None, max_length=100)
    payload_json: dict[str, Any] = Field(default_factory=dict, sa_type=sa.JSON)
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
