from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from leave_ledger.schemas.ledger import Amount


class QuotaCatalogResponse(BaseModel):
    """Configured annual entitlement per leave type."""

    quotas: dict[str, Amount]
    total_entitlement: Amount


class ReplaceQuotasRequest(BaseModel):
    """Request body for replacing the whole quota catalog."""

    quotas: dict[str, Decimal] = Field(default_factory=dict)


class RenameLeaveTypeRequest(BaseModel):
    """Request body for renaming a leave type."""

    new_name: str = Field(min_length=1, max_length=255)
