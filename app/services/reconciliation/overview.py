"""Assemble the manager dashboard overview from a data snapshot."""
import re
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from app.schemas.dashboard import (
    DashboardOverview,
    DashboardSummary,
    ExpensesSection,
    MaintenanceItem,
    PaymentStatusCounts,
    RevenueSection,
)
from app.schemas.records import DashboardSnapshot, MaintenanceRecord, PaymentRecord
from app.services.reconciliation.aggregation import (
    UNASSIGNED,
    aggregate_expenses,
    aggregate_revenue,
    property_expense_split,
    property_revenue_split,
    revenue_delta,
)
from app.services.reconciliation.arrears import bucket_arrears_by_age, rank_arrears
from app.services.reconciliation.matching import match_payments
from app.services.reconciliation.occupancy import potential_by_building, roll_occupancy
from app.services.reconciliation.periods import (
    add_months,
    build_month_buckets,
    current_month_start,
    format_month_key,
    utc_today,
)
from app.services.reconciliation.prepayments import resolve_prepayments

FAILED_QUERY_STATUS = re.compile(r"fail|cancel|timeout|insufficient", re.IGNORECASE)
CLOSED_MAINTENANCE_STATUSES = {"resolved", "completed"}

PARTIAL_DATA_ERROR = "Partial data returned due to an internal error."


def is_failed_payment(payment: PaymentRecord) -> bool:
    """An unverified payment the M-Pesa gateway reported as failed."""
    if payment.verified:
        return False
    if payment.mpesa_response_code and payment.mpesa_response_code != "0":
        return True
    return bool(
        payment.mpesa_query_status and FAILED_QUERY_STATUS.search(payment.mpesa_query_status)
    )


def payment_status_counts(payments: Iterable[PaymentRecord]) -> PaymentStatusCounts:
    """Count payments as paid (verified), failed, or pending (everything else)."""
    counts = PaymentStatusCounts()
    for payment in payments:
        if payment.verified:
            counts.paid += 1
        elif is_failed_payment(payment):
            counts.failed += 1
        else:
            counts.pending += 1
    return counts


def maintenance_items(records: Iterable[MaintenanceRecord]) -> List[MaintenanceItem]:
    return [
        MaintenanceItem(
            id=record.id,
            title=record.title or "Maintenance",
            status=record.status or "open",
            priority=record.priority or "medium",
            created_at=record.created_at,
            updated_at=record.updated_at,
            property=record.building_name or UNASSIGNED,
            unit=record.unit_number or "Unit",
        )
        for record in records
    ]


def build_overview(
    snapshot: DashboardSnapshot,
    now: Optional[datetime] = None,
    window: int = 12,
) -> DashboardOverview:
    """Compute every dashboard section from one snapshot.

    The independent passes (revenue, expenses, occupancy, arrears,
    prepayments) share nothing but the read-only snapshot.
    """
    now = now or datetime.now(timezone.utc)
    this_month = current_month_start(now)
    current_key = format_month_key(this_month)
    previous_key = format_month_key(add_months(this_month, -1))

    # Revenue
    buckets = build_month_buckets(now, window)
    matches = match_payments(snapshot.invoices, snapshot.payments)
    series = aggregate_revenue(matches, buckets)
    by_key = {point.key: point.revenue for point in series}
    current_revenue = by_key.get(current_key, 0.0)
    previous_revenue = by_key.get(previous_key, 0.0)

    # Expenses
    expense_series = aggregate_expenses(snapshot.expenses, buckets)

    # Occupancy and property revenue
    occupancy = roll_occupancy(snapshot.units, snapshot.buildings)
    property_revenue = property_revenue_split(
        matches,
        current_key,
        snapshot.buildings,
        potential_by_building(occupancy),
        property_expense_split(snapshot.expenses, current_key),
    )

    # Arrears and prepayments
    arrears = rank_arrears(snapshot.arrears, snapshot.tenant_profiles)
    ageing = bucket_arrears_by_age(arrears, utc_today(now))
    prepayments = resolve_prepayments(
        snapshot.prepayment_view,
        snapshot.prepayment_leases,
        snapshot.tenant_profiles,
        this_month,
    )

    payments = payment_status_counts(snapshot.payments)
    maintenance = maintenance_items(snapshot.maintenance)

    summary = DashboardSummary(
        total_properties=len(snapshot.buildings),
        total_tenants=snapshot.tenant_count,
        monthly_revenue=current_revenue,
        revenue_delta=revenue_delta(current_revenue, previous_revenue),
        pending_requests=sum(
            1 for item in maintenance if item.status.lower() not in CLOSED_MAINTENANCE_STATUSES
        ),
        paid_invoices=sum(1 for match in matches if match.is_settled),
        pending_payments=payments.pending,
    )

    return DashboardOverview(
        summary=summary,
        revenue=RevenueSection(
            series=series,
            current_month_revenue=current_revenue,
            prev_month_revenue=previous_revenue,
        ),
        property_revenue=property_revenue,
        expenses=ExpensesSection(monthly=expense_series),
        payments=payments,
        occupancy=occupancy,
        arrears=arrears,
        arrears_ageing=ageing,
        prepayments=prepayments,
        maintenance=maintenance,
    )


def empty_overview(error: str = PARTIAL_DATA_ERROR) -> DashboardOverview:
    """All-zero overview returned when the dashboard cannot be computed."""
    return DashboardOverview(success=True, error=error)
