"""Tests for the monthly carry-forward ledger: compute, manual override and save."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from factories import make_employee, make_request, make_snapshot

from leave_ledger.config import Settings
from leave_ledger.exceptions import LedgerError, StoreReadError, StoreWriteError
from leave_ledger.models.enums import LeaveStatus, RecordKind
from leave_ledger.schemas.ledger import LedgerRow, ManualRowInput
from leave_ledger.schemas.period import PeriodKey
from leave_ledger.services.ledger import (
    LedgerConfig,
    ManualOverrideSession,
    compute_ledger,
    compute_row,
    load_ledger,
    recalculate_and_save,
    resolve_ledger_config,
)
from leave_ledger.services.snapshot_store import InMemoryRecordStore, SnapshotStore, StoredRecord

APRIL = PeriodKey(2025, 4)
MAY = PeriodKey(2025, 5)

ASHA = make_employee("E001", "Asha Rao")
BHAVIN = make_employee("E002", "bhavin shah")
ZOYA = make_employee("E003", "Zoya Khan")

CONFIG = LedgerConfig(monthly_accrual=Decimal("1.5"))


@pytest.fixture
def store() -> SnapshotStore:
    return SnapshotStore(InMemoryRecordStore())


class _ReadFailingRecordStore(InMemoryRecordStore):
    """Snapshot reads fail; every write attempt is recorded."""

    def __init__(self) -> None:
        super().__init__()
        self.writes: list[StoredRecord] = []

    async def list_all(self, kind: RecordKind, *, month_key: str | None = None) -> list[StoredRecord]:
        raise StoreReadError("snapshot store unreachable")

    async def upsert(self, record: StoredRecord) -> None:
        self.writes.append(record)
        await super().upsert(record)


class _ConfigUnreachableRecordStore(InMemoryRecordStore):
    """Config reads fail; snapshot reads work and every write is recorded."""

    def __init__(self) -> None:
        super().__init__()
        self.writes: list[StoredRecord] = []

    async def list_all(self, kind: RecordKind, *, month_key: str | None = None) -> list[StoredRecord]:
        if kind == RecordKind.CONFIG:
            raise StoreReadError("config unreachable")
        return await super().list_all(kind, month_key=month_key)

    async def upsert(self, record: StoredRecord) -> None:
        self.writes.append(record)
        await super().upsert(record)


class _FlakyRecordStore(InMemoryRecordStore):
    """Rejects writes for one employee."""

    def __init__(self, failing_employee_id: str) -> None:
        super().__init__()
        self.failing_employee_id = failing_employee_id

    async def upsert(self, record: StoredRecord) -> None:
        if record.employee_id == self.failing_employee_id:
            raise StoreWriteError(f"Could not write snapshot record {record.record_key}")
        await super().upsert(record)


# ---------------------------------------------------------------------------
# Compute
# ---------------------------------------------------------------------------


def test_first_month_with_overdrawn_leave_goes_negative() -> None:
    requests = [make_request(ASHA, date(2025, 5, 5), date(2025, 5, 6), days=2)]
    row = compute_row(MAY, ASHA, requests, CONFIG, [])

    assert row.opening == Decimal("0.00")
    assert row.allocated == Decimal("1.50")
    assert row.used == Decimal("2.00")
    assert row.adjusted == Decimal("0.00")
    assert row.closing == Decimal("-0.50")
    assert row.carry_forward == row.closing
    assert row.policy_code == "DEFAULT"
    assert row.department == "Engineering"
    assert not row.is_manual_override


def test_opening_is_previous_month_closing() -> None:
    prior = [make_snapshot("E001", "2025-04", "4.25")]
    row = compute_row(MAY, ASHA, [], CONFIG, prior)
    assert row.opening == Decimal("4.25")
    assert row.closing == Decimal("5.75")


def test_negative_prior_balance_is_carried() -> None:
    prior = [make_snapshot("E001", "2025-04", "-2.25")]
    row = compute_row(MAY, ASHA, [], CONFIG, prior)
    assert row.opening == Decimal("-2.25")
    assert row.closing == Decimal("-0.75")


def test_prior_snapshot_matched_through_identity_resolver() -> None:
    prior = [make_snapshot(" e001 ", "2025-04", "3")]
    assert compute_row(MAY, ASHA, [], CONFIG, prior).opening == Decimal("3.00")


def test_prior_snapshot_of_other_month_or_policy_is_ignored() -> None:
    prior = [
        make_snapshot("E001", "2025-03", "8"),
        make_snapshot("E001", "2025-04", "8", policy_code="CONTRACT"),
    ]
    assert compute_row(MAY, ASHA, [], CONFIG, prior).opening == Decimal("0.00")


def test_policy_accrual_override() -> None:
    contractor = make_employee("E010", "Kiran Das", policy_code="CONTRACT")
    config = LedgerConfig(monthly_accrual=Decimal("1.5"), policy_accruals={"CONTRACT": Decimal("1")})
    prior = [make_snapshot("E010", "2025-04", "2", policy_code="CONTRACT")]

    row = compute_row(MAY, contractor, [], config, prior)
    assert row.policy_code == "CONTRACT"
    assert row.allocated == Decimal("1.00")
    assert row.opening == Decimal("2.00")


def test_missing_department_shows_dash() -> None:
    employee = make_employee("E020", "No Dept", department=None)
    assert compute_row(MAY, employee, [], CONFIG, []).department == "-"


def test_pending_and_wfh_requests_do_not_consume_balance() -> None:
    requests = [
        make_request(ASHA, date(2025, 5, 5), days=1, status=LeaveStatus.PENDING),
        make_request(ASHA, date(2025, 5, 6), days=1, leave_type="Work From Home"),
        make_request(ASHA, date(2025, 5, 7), days=1, status=LeaveStatus.REJECTED),
    ]
    assert compute_row(MAY, ASHA, requests, CONFIG, []).used == Decimal("0.00")


def test_ledger_is_sorted_by_employee_name() -> None:
    rows = compute_ledger(MAY, [ZOYA, BHAVIN, ASHA], [], CONFIG, [])
    assert [row.employee_id for row in rows] == ["E001", "E002", "E003"]


def test_compute_is_deterministic() -> None:
    requests = [make_request(ASHA, date(2025, 4, 28), date(2025, 5, 7), days=10)]
    prior = [make_snapshot("E001", "2025-04", "1.5")]
    first = compute_ledger(MAY, [ASHA, BHAVIN], requests, CONFIG, prior)
    second = compute_ledger(MAY, [BHAVIN, ASHA], requests, CONFIG, prior)
    assert first == second


def test_balance_identity_holds_for_computed_rows() -> None:
    requests = [
        make_request(ASHA, date(2025, 4, 28), date(2025, 5, 7), days=8),
        make_request(BHAVIN, date(2025, 5, 30), days="0.5", is_half_day=True),
    ]
    prior = [make_snapshot("E001", "2025-04", "3.33"), make_snapshot("E002", "2025-04", "-1")]
    for row in compute_ledger(MAY, [ASHA, BHAVIN, ZOYA], requests, CONFIG, prior):
        assert row.closing == row.opening + row.allocated + row.adjusted - row.used
        assert row.carry_forward == row.closing


# ---------------------------------------------------------------------------
# Manual override
# ---------------------------------------------------------------------------


class TestManualOverrideSession:
    """HR edits to computed rows."""

    def _session(self) -> ManualOverrideSession:
        return ManualOverrideSession(compute_ledger(MAY, [ASHA, BHAVIN], [], CONFIG, []))

    def test_edit_is_kept_verbatim(self) -> None:
        session = self._session()
        row = session.set_amount("E001", "closing", "42")
        assert row.closing == Decimal("42.00")
        assert row.opening == Decimal("0.00")  # not re-derived

    @pytest.mark.parametrize("raw", ["abc", "", "   ", None, "nan", "inf", True])
    def test_invalid_input_becomes_zero(self, raw: object) -> None:
        session = self._session()
        assert session.set_amount("E001", "allocated", raw).allocated == Decimal("0")

    def test_input_is_rounded(self) -> None:
        session = self._session()
        assert session.set_amount("E001", "used", " 12.345 ").used == Decimal("12.35")

    def test_row_found_by_loose_id(self) -> None:
        session = self._session()
        assert session.set_amount("1", "used", "3").employee_id == "E001"

    def test_unknown_employee(self) -> None:
        with pytest.raises(LedgerError):
            self._session().set_amount("E999", "used", "1")

    def test_non_amount_column_is_rejected(self) -> None:
        with pytest.raises(LedgerError):
            self._session().set_amount("E001", "employee_name", "x")

    def test_apply_touches_only_sent_fields(self) -> None:
        session = self._session()
        row = session.apply(ManualRowInput(employee_id="E002", closing="7.5", policy_code="SPECIAL"))
        assert row.closing == Decimal("7.50")
        assert row.allocated == Decimal("1.50")
        assert row.policy_code == "SPECIAL"

    def test_reset_discards_edits(self) -> None:
        session = self._session()
        session.set_amount("E001", "closing", "9")
        assert session.is_dirty
        session.reset()
        assert not session.is_dirty
        assert session.rows == session.computed_rows

    def test_rows_to_save_are_flagged(self) -> None:
        rows = self._session().rows_to_save()
        assert all(row.is_manual_override for row in rows)


# ---------------------------------------------------------------------------
# Recalculate & save
# ---------------------------------------------------------------------------


async def test_save_then_next_month_chains(store: SnapshotStore) -> None:
    requests = [make_request(ASHA, date(2025, 5, 5), date(2025, 5, 6), days=2)]

    april = await recalculate_and_save(store, APRIL, [ASHA], requests, CONFIG)
    assert april.ok
    assert april.succeeded == ["E001"]

    may = await load_ledger(store, MAY, [ASHA], requests, CONFIG)
    assert may[0].opening == Decimal("1.50")
    assert may[0].closing == Decimal("1.00")


async def test_save_is_idempotent(store: SnapshotStore) -> None:
    employees = [ASHA, BHAVIN]
    await recalculate_and_save(store, MAY, employees, [], CONFIG)
    first = await store.list_for_period(MAY)
    await recalculate_and_save(store, MAY, employees, [], CONFIG)
    second = await store.list_for_period(MAY)

    assert len(second) == 2
    assert first == second


async def test_saved_snapshot_round_trips(store: SnapshotStore) -> None:
    requests = [make_request(ASHA, date(2025, 5, 5), days="0.5", is_half_day=True)]
    await recalculate_and_save(store, MAY, [ASHA], requests, CONFIG)

    stored = await store.get("E001", MAY, "DEFAULT")
    assert stored == compute_row(MAY, ASHA, requests, CONFIG, [])


async def test_manual_rows_are_saved_and_shown(store: SnapshotStore) -> None:
    session = ManualOverrideSession(await load_ledger(store, MAY, [ASHA, BHAVIN], [], CONFIG))
    session.set_amount("E001", "closing", "9.75")

    result = await recalculate_and_save(store, MAY, [ASHA, BHAVIN], [], CONFIG, manual_rows=session.rows_to_save())
    assert result.succeeded == ["E001", "E002"]

    shown = await load_ledger(store, MAY, [ASHA, BHAVIN], [], CONFIG)
    assert shown[0].closing == Decimal("9.75")
    assert shown[0].is_manual_override
    assert shown[0].employee_name == "Asha Rao"


async def test_manual_row_for_another_month_is_rejected(store: SnapshotStore) -> None:
    row = LedgerRow(employee_id="E001", month_key="2025-04", policy_code="DEFAULT")
    with pytest.raises(LedgerError):
        await recalculate_and_save(store, MAY, [ASHA], [], CONFIG, manual_rows=[row])
    assert await store.list_snapshots() == []


async def test_stored_computed_row_is_recomputed_on_view(store: SnapshotStore) -> None:
    await store.put(make_snapshot("E001", "2025-05", "99"))
    shown = await load_ledger(store, MAY, [ASHA], [], CONFIG)
    assert shown[0].closing == Decimal("1.50")


async def test_manual_row_with_edited_policy_code_round_trips(store: SnapshotStore) -> None:
    session = ManualOverrideSession(await load_ledger(store, MAY, [ASHA], [], CONFIG))
    session.apply(ManualRowInput(employee_id="E001", policy_code="SENIOR", closing="9"))

    result = await recalculate_and_save(store, MAY, [ASHA], [], CONFIG, manual_rows=session.rows_to_save())
    assert result.succeeded == ["E001"]

    shown = await load_ledger(store, MAY, [ASHA], [], CONFIG)
    assert shown[0].policy_code == "SENIOR"
    assert shown[0].closing == Decimal("9")
    assert shown[0].is_manual_override


async def test_locked_snapshot_under_other_policy_blocks_save(store: SnapshotStore) -> None:
    await store.put(make_snapshot("E001", "2025-05", "4", policy_code="SENIOR", is_locked=True))

    result = await recalculate_and_save(store, MAY, [ASHA], [], CONFIG)
    assert result.skipped == ["E001"]
    assert await store.get("E001", MAY, "DEFAULT") is None

    shown = await load_ledger(store, MAY, [ASHA], [], CONFIG)
    assert shown[0].policy_code == "SENIOR"
    assert shown[0].closing == Decimal("4")


async def test_locked_snapshot_is_not_overwritten(store: SnapshotStore) -> None:
    await store.put(make_snapshot("E001", "2025-05", "4", is_locked=True))

    result = await recalculate_and_save(store, MAY, [ASHA, BHAVIN], [], CONFIG)
    assert result.skipped == ["E001"]
    assert result.succeeded == ["E002"]

    locked = await store.get("E001", MAY, "DEFAULT")
    assert locked is not None
    assert locked.closing == Decimal("4")
    shown = await load_ledger(store, MAY, [ASHA], [], CONFIG)
    assert shown[0].is_locked


async def test_read_failure_writes_nothing() -> None:
    records = _ReadFailingRecordStore()
    with pytest.raises(StoreReadError):
        await recalculate_and_save(SnapshotStore(records), MAY, [ASHA], [], CONFIG, monthly_accrual=Decimal("2"))
    assert records.writes == []


async def test_config_read_failure_writes_nothing() -> None:
    records = _ConfigUnreachableRecordStore()
    with pytest.raises(StoreReadError):
        await recalculate_and_save(SnapshotStore(records), MAY, [ASHA], [], CONFIG, monthly_accrual=Decimal("2"))
    assert records.writes == []


async def test_write_failure_reports_each_employee() -> None:
    records = _FlakyRecordStore(failing_employee_id="E002")
    store = SnapshotStore(records)

    result = await recalculate_and_save(store, MAY, [ASHA, BHAVIN, ZOYA], [], CONFIG)

    assert not result.ok
    assert result.succeeded == ["E001", "E003"]
    assert [f.employee_id for f in result.failed] == ["E002"]
    assert "E002" not in {row.employee_id for row in await store.list_for_period(MAY)}


async def test_monthly_accrual_saved_only_when_changed(store: SnapshotStore) -> None:
    first = await recalculate_and_save(store, MAY, [ASHA], [], CONFIG, monthly_accrual=Decimal("1.5"))
    assert first.config_saved
    assert await store.get_monthly_accrual() == Decimal("1.5")

    second = await recalculate_and_save(store, MAY, [ASHA], [], CONFIG, monthly_accrual=Decimal("1.5"))
    assert not second.config_saved


async def test_resolve_config_prefers_stored_accrual(store: SnapshotStore) -> None:
    settings = Settings(default_monthly_accrual=Decimal("2"), default_policy_code="STD")
    assert (await resolve_ledger_config(store, settings)).monthly_accrual == Decimal("2")

    await store.put_monthly_accrual(Decimal("1.25"))
    config = await resolve_ledger_config(store, settings)
    assert config.monthly_accrual == Decimal("1.25")
    assert config.default_policy_code == "STD"
