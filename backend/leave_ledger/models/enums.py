from __future__ import annotations

import enum


class LeaveStatus(enum.StrEnum):
    """Approval state of a leave request."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class RecordKind(enum.StrEnum):
    """Row kinds sharing the ledger store table."""

    QUOTA = "QUOTA"
    CONFIG = "CONFIG"
    SNAPSHOT = "SNAPSHOT"


class LedgerAmountField(enum.StrEnum):
    """Numeric ledger columns HR may overwrite in manual override mode."""

    OPENING = "opening"
    ALLOCATED = "allocated"
    USED = "used"
    ADJUSTED = "adjusted"
    CLOSING = "closing"
    CARRY_FORWARD = "carry_forward"
