from sqlmodel import SQLModel

from leave_ledger.models.base import UpdatedAtMixin, UUIDBase
from leave_ledger.models.enums import LedgerAmountField, LeaveStatus, RecordKind
from leave_ledger.models.record import LedgerStoreRecord

__all__ = [
    "LeaveStatus",
    "LedgerAmountField",
    "LedgerStoreRecord",
    "RecordKind",
    "SQLModel",
    "UUIDBase",
    "UpdatedAtMixin",
]
