"""API routes for the manager dashboard."""

import asyncio
import logging
from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from app.api.dependencies import get_organization_id
from app.config import settings
from app.schemas.dashboard import DashboardOverview, DefaultersSummaryResponse
from app.services.reconciliation import build_overview, empty_overview, rank_arrears, summarize_defaulters
from app.services.reconciliation.periods import utc_today
from app.services.snapshot_loader import SnapshotLoader, get_snapshot_loader

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/manager/overview", response_model=DashboardOverview)
async def get_manager_overview(
    org_id: UUID = Depends(get_organization_id),
    loader: SnapshotLoader = Depends(get_snapshot_loader),
) -> DashboardOverview:
    """
    Manager dashboard: revenue, expenses, occupancy, arrears and prepayments.

    Always answers 200. If the overview cannot be computed, an all-zero
    payload is returned with ``error`` set.
    """
    try:
        now = datetime.now(timezone.utc)
        snapshot = await loader.load_dashboard(org_id, now=now)
        return build_overview(snapshot, now=now, window=settings.REPORT_WINDOW_MONTHS)
    except Exception:
        logger.exception(f"Dashboard overview failed for organization {org_id}")
        return empty_overview()


@router.get("/manager/defaulters-summary", response_model=DefaultersSummaryResponse)
async def get_defaulters_summary(
    org_id: UUID = Depends(get_organization_id),
    loader: SnapshotLoader = Depends(get_snapshot_loader),
) -> DefaultersSummaryResponse:
    """Defaulter count, share of active tenants, total arrears and top building."""
    try:
        rows, active_tenants = await asyncio.gather(
            loader.fetch_arrears_view(org_id, limit=settings.ARREARS_MAX_LIMIT),
            loader.count_active_tenants(org_id),
        )
        items = rank_arrears(rows)
        unit_buildings = await loader.fetch_unit_buildings(
            org_id, [item.unit_id for item in items]
        )
        summary = summarize_defaulters(
            items,
            active_tenants,
            unit_buildings,
            utc_today(),
            critical_days=settings.ARREARS_CRITICAL_DAYS,
        )
    except Exception as e:
        logger.error(f"Error building defaulters summary: {e}")
        raise HTTPException(status_code=500, detail="Failed to build defaulters summary")

    return DefaultersSummaryResponse(data=summary)
