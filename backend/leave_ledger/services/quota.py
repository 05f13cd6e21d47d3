"""Leave-type quota catalog.

The catalog is an immutable value: every mutation returns a new catalog and
leaves the original untouched, so a computation holding a catalog can never
see it change underneath it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from decimal import Decimal
from types import MappingProxyType
from typing import TYPE_CHECKING

from leave_ledger.exceptions import QuotaError
from leave_ledger.services.rounding import ZERO

if TYPE_CHECKING:
    from leave_ledger.services.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)

# Used when the store holds no quota rows at all.
DEFAULT_QUOTAS: Mapping[str, Decimal] = MappingProxyType(
    {
        "Sick": Decimal("5"),
        "Vacation": Decimal("12"),
        "Personal": Decimal("3"),
    }
)


def _to_days(days: Decimal | int | float | str) -> Decimal:
    value = days if isinstance(days, Decimal) else Decimal(str(days))
    if not value.is_finite() or value < 0:
        raise QuotaError(f"Quota must be a non-negative number of days, got {days!r}")
    return value


def _check_name(leave_type: str) -> str:
    if not leave_type or not leave_type.strip():
        raise QuotaError("Leave type name must not be blank")
    return leave_type


class QuotaCatalog:
    """Annual entitlement in days per leave type.

    Keys are case-sensitive as stored; ``lookup`` adds a case-insensitive
    fallback for callers that receive loosely typed leave-type names.
    """

    __slots__ = ("_quotas",)

    def __init__(self, quotas: Mapping[str, Decimal | int | float | str] | None = None) -> None:
        entries = {_check_name(name): _to_days(days) for name, days in (quotas or {}).items()}
        self._quotas: Mapping[str, Decimal] = MappingProxyType(entries)

    @classmethod
    def with_defaults(cls) -> QuotaCatalog:
        return cls(DEFAULT_QUOTAS)

    # -- reads ---------------------------------------------------------------

    def get(self, leave_type: str) -> Decimal:
        """Entitlement for the exact key, 0 when not configured."""
        return self._quotas.get(leave_type, ZERO)

    def lookup(self, leave_type: str) -> Decimal:
        """Entitlement by exact key, then by case-insensitive key scan."""
        if leave_type in self._quotas:
            return self._quotas[leave_type]
        wanted = leave_type.lower()
        for name, days in self._quotas.items():
            if name.lower() == wanted:
                return days
        return ZERO

    def total_entitlement(self) -> Decimal:
        return sum(self._quotas.values(), ZERO)

    @property
    def leave_types(self) -> list[str]:
        return list(self._quotas)

    def as_dict(self) -> dict[str, Decimal]:
        return dict(self._quotas)

    # -- mutations (each returns a new catalog) ------------------------------

    def set(self, leave_type: str, days: Decimal | int | float | str) -> QuotaCatalog:
        updated = self.as_dict()
        updated[_check_name(leave_type)] = _to_days(days)
        return QuotaCatalog(updated)

    def add(self, leave_type: str) -> QuotaCatalog:
        """Add a new leave type with a zero entitlement."""
        if leave_type in self._quotas:
            raise QuotaError(f"Leave type {leave_type!r} already exists")
        return self.set(leave_type, ZERO)

    def adjust(self, leave_type: str, delta: Decimal | int) -> QuotaCatalog:
        """Step an entitlement up or down, never below zero."""
        if leave_type not in self._quotas:
            raise QuotaError(f"Leave type {leave_type!r} does not exist")
        return self.set(leave_type, max(self.get(leave_type) + Decimal(delta), ZERO))

    def rename(self, old: str, new: str) -> QuotaCatalog:
        """Rename a leave type, carrying its entitlement over."""
        if new == old:
            return self
        _check_name(new)
        if old not in self._quotas:
            raise QuotaError(f"Leave type {old!r} does not exist")
        if new in self._quotas:
            raise QuotaError(f"A leave type named {new!r} already exists")
        renamed = {(new if name == old else name): days for name, days in self._quotas.items()}
        return QuotaCatalog(renamed)

    def remove(self, leave_type: str) -> QuotaCatalog:
        if leave_type not in self._quotas:
            return self
        return QuotaCatalog({name: days for name, days in self._quotas.items() if name != leave_type})

    # -- container protocol --------------------------------------------------

    def __contains__(self, leave_type: object) -> bool:
        return leave_type in self._quotas

    def __iter__(self) -> Iterator[str]:
        return iter(self._quotas)

    def __len__(self) -> int:
        return len(self._quotas)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QuotaCatalog):
            return NotImplemented
        return dict(self._quotas) == dict(other._quotas)

    def __hash__(self) -> int:
        return hash(frozenset(self._quotas.items()))

    def __repr__(self) -> str:
        return f"QuotaCatalog({dict(self._quotas)!r})"


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


async def load_quota_catalog(store: SnapshotStore) -> QuotaCatalog:
    """Load the catalog, falling back to the defaults when none is stored.

    A failed read propagates as ``StoreReadError``; it is never replaced by
    the defaults.
    """
    stored = await store.list_quotas()
    if not stored:
        logger.info("No quota rows stored, using default quotas")
        return QuotaCatalog.with_defaults()
    return QuotaCatalog(stored)


async def save_quota_catalog(store: SnapshotStore, catalog: QuotaCatalog) -> None:
    """Persist the catalog as the complete set of quota rows."""
    await store.replace_quotas(catalog.as_dict())
    logger.info("Saved %d leave quotas", len(catalog))
