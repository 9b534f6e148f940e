"""API routes for arrears and prepayment listings."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.dependencies import get_organization_id
from app.config import settings
from app.schemas.dashboard import ArrearsListResponse, PrepaymentListResponse
from app.services.reconciliation import attach_buildings, rank_arrears, resolve_prepayments
from app.services.reconciliation.periods import current_month_start
from app.services.snapshot_loader import SnapshotLoader, get_snapshot_loader

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/finance", tags=["finance"])


def clamp_limit(limit: Optional[int]) -> int:
    """Keep a requested row limit within 1..ARREARS_MAX_LIMIT."""
    if limit is None:
        return settings.ARREARS_DEFAULT_LIMIT
    return max(1, min(limit, settings.ARREARS_MAX_LIMIT))


@router.get("/arrears", response_model=ArrearsListResponse)
async def list_arrears(
    building_id: Optional[UUID] = Query(None, description="Only leases in this building"),
    min_arrears: float = Query(0, ge=0, description="Smallest balance to include"),
    limit: Optional[int] = Query(None, description="Maximum rows, clamped to the configured range"),
    org_id: UUID = Depends(get_organization_id),
    loader: SnapshotLoader = Depends(get_snapshot_loader),
) -> ArrearsListResponse:
    """Leases with outstanding balances, largest first, with tenant and building."""
    try:
        rows = await loader.fetch_arrears_view(
            org_id,
            limit=clamp_limit(limit),
            min_arrears=min_arrears,
            building_id=building_id,
        )
        profiles, unit_buildings = await asyncio.gather(
            loader.fetch_tenant_profiles(org_id, [row.tenant_user_id for row in rows]),
            loader.fetch_unit_buildings(org_id, [row.unit_id for row in rows]),
        )
        items = attach_buildings(rank_arrears(rows, profiles), unit_buildings)
    except Exception as e:
        logger.error(f"Error listing arrears: {e}")
        raise HTTPException(status_code=500, detail="Failed to load arrears")

    return ArrearsListResponse(data=items)


@router.get("/prepayments", response_model=PrepaymentListResponse)
async def list_prepayments(
    org_id: UUID = Depends(get_organization_id),
    loader: SnapshotLoader = Depends(get_snapshot_loader),
) -> PrepaymentListResponse:
    """Leases with rent paid beyond the current month."""
    try:
        view_rows, leases = await asyncio.gather(
            loader.fetch_prepayment_view(org_id),
            loader.fetch_leases_for_prepayment(org_id),
        )
        tenant_ids = [row.tenant_user_id for row in view_rows] + [
            lease.tenant_user_id for lease in leases
        ]
        profiles = await loader.fetch_tenant_profiles(org_id, tenant_ids)
        rows = resolve_prepayments(
            view_rows,
            leases,
            profiles,
            current_month_start(datetime.now(timezone.utc)),
        )
    except Exception as e:
        logger.error(f"Error listing prepayments: {e}")
        raise HTTPException(status_code=500, detail="Failed to load prepayments")

    return PrepaymentListResponse(data=rows)
