"""Pydantic schemas package."""
from app.schemas.dashboard import (
    ArrearsDetail,
    ArrearsItem,
    ArrearsListResponse,
    DashboardOverview,
    DashboardSummary,
    DefaultersSummary,
    DefaultersSummaryResponse,
    FinancialReport,
    OccupancyRow,
    PrepaymentListResponse,
    PrepaymentRow,
)
from app.schemas.records import DashboardSnapshot, parse_amount, parse_date

__all__ = [
    "ArrearsDetail",
    "ArrearsItem",
    "ArrearsListResponse",
    "DashboardOverview",
    "DashboardSnapshot",
    "DashboardSummary",
    "DefaultersSummary",
    "DefaultersSummaryResponse",
    "FinancialReport",
    "OccupancyRow",
    "PrepaymentListResponse",
    "PrepaymentRow",
    "parse_amount",
    "parse_date",
]
