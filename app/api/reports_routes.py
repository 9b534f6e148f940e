"""API routes for manager reports."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from app.api.dependencies import get_organization_id
from app.config import settings
from app.schemas.dashboard import FinancialReport
from app.services.reconciliation import build_financial_report
from app.services.snapshot_loader import SnapshotLoader, get_snapshot_loader

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/manager/reports", tags=["reports"])


@router.get("/overview", response_model=FinancialReport)
async def get_financial_overview(
    org_id: UUID = Depends(get_organization_id),
    loader: SnapshotLoader = Depends(get_snapshot_loader),
) -> FinancialReport:
    """
    Billed, collected, expenses and net per month and per property.

    Reads the same snapshot as the dashboard overview, over the configured
    reporting window.
    """
    try:
        now = datetime.now(timezone.utc)
        snapshot = await loader.load_dashboard(org_id, now=now)
        return build_financial_report(snapshot, now=now, window=settings.REPORT_WINDOW_MONTHS)
    except Exception as e:
        logger.error(f"Error building financial report for organization {org_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to load financial report")
