"""Pydantic schemas for dashboard and finance responses.

Dashboard sections use camelCase keys; row-level records use snake_case keys,
matching what the manager UI reads.
"""
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for sections serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Revenue and expenses
class MonthBucket(BaseModel):
    """A month of the reporting window."""
    label: str  # e.g. "Mar"
    key: str  # e.g. "2024-03"


class RevenuePoint(BaseModel):
    """Collected revenue for one month."""
    label: str
    key: str
    revenue: float = 0.0


class ExpensePoint(BaseModel):
    """Expenses for one month."""
    label: str
    key: str
    expenses: float = 0.0


class RevenueSection(CamelModel):
    """Monthly revenue series with the current and previous month totals."""
    series: List[RevenuePoint] = Field(default_factory=list)
    current_month_revenue: float = 0.0
    prev_month_revenue: float = 0.0


class ExpensesSection(CamelModel):
    """Monthly expense series."""
    monthly: List[ExpensePoint] = Field(default_factory=list)


class PropertyRevenueRow(BaseModel):
    """Current-month collections, potential rent and expenses for one property."""
    name: str
    revenue: float = 0.0
    potential: float = 0.0
    percent: int = 0
    expenses: float = 0.0
    net: float = 0.0  # revenue - expenses


# Occupancy
class OccupancyRow(BaseModel):
    """Unit counts and rent potential for one building."""
    building_id: str
    property_name: str
    total_units: int = 0
    occupied_units: int = 0
    occupancy_rate: float = 0.0
    potential_revenue: float = 0.0


# Payments
class PaymentStatusCounts(BaseModel):
    """Distribution of payment records by status."""
    paid: int = 0
    pending: int = 0
    failed: int = 0


# Arrears
class ArrearsItem(BaseModel):
    """A ranked defaulter row."""
    lease_id: Optional[str] = None
    tenant_id: Optional[str] = None
    tenant_name: str
    tenant_phone: Optional[str] = None
    unit_id: Optional[str] = None
    unit_number: Optional[str] = None
    arrears_amount: float = 0.0
    open_invoices: int = 0
    oldest_due_date: Optional[date] = None


class AgeingBucket(BaseModel):
    """Arrears whose oldest invoice falls in one overdue range."""
    range: str  # "0-30", "31-60", "61-90", "90+"
    count: int = 0
    amount: float = 0.0


class ArrearsAgeing(BaseModel):
    """Arrears bucketed by age of the oldest open invoice."""
    buckets: List[AgeingBucket] = Field(default_factory=list)
    undated: int = 0


# Prepayments
class PrepaymentRow(BaseModel):
    """A lease with rent paid ahead."""
    lease_id: str
    tenant_id: Optional[str] = None
    unit_id: Optional[str] = None
    unit_number: Optional[str] = None
    tenant_name: Optional[str] = None
    rent_paid_until: Optional[date] = None
    next_rent_due_date: Optional[date] = None
    prepaid_months: int = 0
    is_prepaid: bool = False


# Maintenance
class MaintenanceItem(BaseModel):
    """A recent maintenance request."""
    id: str
    title: str
    status: str
    priority: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    property: str
    unit: str


class DashboardSummary(CamelModel):
    """Headline figures for the manager dashboard."""
    total_properties: int = 0
    total_tenants: int = 0
    monthly_revenue: float = 0.0
    revenue_delta: Optional[float] = None
    pending_requests: int = 0
    paid_invoices: int = 0
    pending_payments: int = 0


class DashboardOverview(CamelModel):
    """Full payload of the manager dashboard overview."""
    success: bool = True
    summary: DashboardSummary = Field(default_factory=DashboardSummary)
    revenue: RevenueSection = Field(default_factory=RevenueSection)
    property_revenue: List[PropertyRevenueRow] = Field(default_factory=list)
    expenses: ExpensesSection = Field(default_factory=ExpensesSection)
    payments: PaymentStatusCounts = Field(default_factory=PaymentStatusCounts)
    occupancy: List[OccupancyRow] = Field(default_factory=list)
    arrears: List[ArrearsItem] = Field(default_factory=list)
    arrears_ageing: ArrearsAgeing = Field(default_factory=ArrearsAgeing)
    prepayments: List[PrepaymentRow] = Field(default_factory=list)
    maintenance: List[MaintenanceItem] = Field(default_factory=list)
    error: Optional[str] = None


# Finance endpoints
class ArrearsDetail(ArrearsItem):
    """Arrears row enriched with its building."""
    building_id: Optional[str] = None
    building_name: Optional[str] = None


class ArrearsListResponse(BaseModel):
    """Response for the finance arrears endpoint."""
    success: bool = True
    data: List[ArrearsDetail] = Field(default_factory=list)


class PrepaymentListResponse(BaseModel):
    """Response for the finance prepayments endpoint."""
    success: bool = True
    data: List[PrepaymentRow] = Field(default_factory=list)


class TopBuilding(BaseModel):
    """Building carrying the largest arrears."""
    building_id: str
    building_name: str
    arrears_amount: float = 0.0


class DefaultersSummary(BaseModel):
    """Headline defaulter figures."""
    active_tenants: int = 0
    defaulters: int = 0
    defaulters_pct: int = 0
    total_arrears_amount: float = 0.0
    critical_defaulters: int = 0
    top_building: Optional[TopBuilding] = None


class DefaultersSummaryResponse(BaseModel):
    """Response for the defaulters summary endpoint."""
    success: bool = True
    data: DefaultersSummary = Field(default_factory=DefaultersSummary)


# Reports
class ReportPoint(BaseModel):
    """Billed, collected and spent amounts for one month."""
    label: str
    key: str
    billed: float = 0.0
    collected: float = 0.0
    expenses: float = 0.0
    net: float = 0.0  # collected - expenses


class PropertyFinancials(BaseModel):
    """Window totals for one property."""
    property_id: str
    name: str
    billed: float = 0.0
    collected: float = 0.0
    expenses: float = 0.0
    net: float = 0.0
    collection_rate: int = 0


class ReportKpis(CamelModel):
    """Window totals across the portfolio."""
    billed: float = 0.0
    collected: float = 0.0
    expenses: float = 0.0
    net: float = 0.0
    collection_rate: int = 0


class FinancialReport(CamelModel):
    """Payload of the manager financial report."""
    success: bool = True
    range_start: Optional[date] = None
    range_end: Optional[date] = None
    kpis: ReportKpis = Field(default_factory=ReportKpis)
    series: List[ReportPoint] = Field(default_factory=list)
    by_property: List[PropertyFinancials] = Field(default_factory=list)
