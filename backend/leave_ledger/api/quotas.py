# ruff: noqa: TC001
"""Leave-type quota endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from leave_ledger.schemas.quota import QuotaCatalogResponse, RenameLeaveTypeRequest, ReplaceQuotasRequest
from leave_ledger.services.quota import QuotaCatalog, load_quota_catalog, save_quota_catalog
from leave_ledger.services.snapshot_store import SnapshotStoreDep

quotas_router = APIRouter(
    prefix="/quotas",
    tags=["quotas"],
)


def _build_response(catalog: QuotaCatalog) -> QuotaCatalogResponse:
    return QuotaCatalogResponse(quotas=catalog.as_dict(), total_entitlement=catalog.total_entitlement())


@quotas_router.get("", response_model=QuotaCatalogResponse)
async def get_quotas(store: SnapshotStoreDep) -> QuotaCatalogResponse:
    """Configured annual entitlement per leave type."""
    return _build_response(await load_quota_catalog(store))


@quotas_router.put("", response_model=QuotaCatalogResponse)
async def replace_quotas(payload: ReplaceQuotasRequest, store: SnapshotStoreDep) -> QuotaCatalogResponse:
    """Replace the whole catalog; types not listed are removed."""
    catalog = QuotaCatalog(payload.quotas)
    await save_quota_catalog(store, catalog)
    return _build_response(catalog)


@quotas_router.post("/{leave_type}/rename", response_model=QuotaCatalogResponse)
async def rename_leave_type(
    leave_type: str,
    payload: RenameLeaveTypeRequest,
    store: SnapshotStoreDep,
) -> QuotaCatalogResponse:
    """Rename a leave type, keeping its entitlement."""
    catalog = (await load_quota_catalog(store)).rename(leave_type, payload.new_name)
    await save_quota_catalog(store, catalog)
    return _build_response(catalog)
