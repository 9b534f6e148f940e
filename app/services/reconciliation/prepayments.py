"""Prepaid-month calculation from lease rent pointers.

A lease is prepaid when its ``rent_paid_until`` pointer reaches into or past
its baseline month: the later of the current month and the month of the next
rent due date. Prepaid months are counted inclusively from the baseline month.
"""
import logging
from datetime import date
from typing import Dict, Iterable, List, Optional

from app.schemas.dashboard import PrepaymentRow
from app.schemas.records import LeaseRecord, PrepaymentViewRow, TenantProfile
from app.services.reconciliation.periods import month_start, months_between

logger = logging.getLogger(__name__)


def compute_prepaid_months(
    rent_paid_until: Optional[date],
    next_rent_due_date: Optional[date],
    current_month_start: date,
) -> int:
    """Count whole months from the baseline month covered by ``rent_paid_until``.

    Examples:
        paid until 2024-06-01, current month 2024-03 -> 4 (Mar, Apr, May, Jun)
        paid until 2024-01-01, current month 2024-03 -> 0
    """
    baseline = current_month_start
    if next_rent_due_date is not None:
        next_due_month = month_start(next_rent_due_date)
        if next_due_month > current_month_start:
            baseline = next_due_month

    if rent_paid_until is None:
        return 0
    paid_month = month_start(rent_paid_until)
    if paid_month < baseline:
        return 0
    return max(0, months_between(baseline, paid_month) + 1)


def calculate_prepayment(
    lease: LeaseRecord,
    current_month_start: date,
    tenant_names: Optional[Dict[str, Optional[str]]] = None,
) -> PrepaymentRow:
    """Build the prepayment row of a lease from its own pointers."""
    tenant_names = tenant_names or {}
    months = compute_prepaid_months(
        lease.rent_paid_until, lease.next_rent_due_date, current_month_start
    )
    return PrepaymentRow(
        lease_id=lease.id,
        tenant_id=lease.tenant_user_id,
        unit_id=lease.unit_id,
        unit_number=lease.unit_number,
        tenant_name=tenant_names.get(lease.tenant_user_id) if lease.tenant_user_id else None,
        rent_paid_until=lease.rent_paid_until,
        next_rent_due_date=lease.next_rent_due_date,
        prepaid_months=months,
        is_prepaid=months > 0,
    )


def _from_view_row(
    row: PrepaymentViewRow,
    current_month_start: date,
    tenant_names: Dict[str, Optional[str]],
) -> PrepaymentRow:
    months = compute_prepaid_months(
        row.rent_paid_until, row.next_rent_due_date, current_month_start
    )
    if row.prepaid_months != months or (
        row.is_prepaid is not None and row.is_prepaid != (months > 0)
    ):
        logger.warning(
            f"Prepayment view row for lease {row.lease_id} reports "
            f"{row.prepaid_months} months (is_prepaid={row.is_prepaid}) but its "
            f"pointers give {months}; using {months}"
        )
    return PrepaymentRow(
        lease_id=row.lease_id,
        tenant_id=row.tenant_user_id,
        unit_id=row.unit_id,
        unit_number=row.unit_number,
        tenant_name=tenant_names.get(row.tenant_user_id) if row.tenant_user_id else None,
        rent_paid_until=row.rent_paid_until,
        next_rent_due_date=row.next_rent_due_date,
        prepaid_months=months,
        is_prepaid=months > 0,
    )


def resolve_prepayments(
    view_rows: Iterable[PrepaymentViewRow],
    lease_rows: Iterable[LeaseRecord],
    profiles: Iterable[TenantProfile],
    current_month_start: date,
) -> List[PrepaymentRow]:
    """Return prepaid leases, newest paid-until first.

    The prepayment view is used when it returns rows; otherwise every lease is
    recomputed from its pointers. View rows are re-validated against their own
    pointers and against the lease recomputation, and disagreements are logged,
    as are prepaid leases the view does not list. View rows without a lease are
    skipped. Leases with no prepaid months are left out.
    """
    tenant_names = {profile.id: profile.full_name for profile in profiles}
    recomputed = {
        lease.id: calculate_prepayment(lease, current_month_start, tenant_names)
        for lease in lease_rows
    }
    view_rows = list(view_rows)

    if view_rows:
        rows = []
        for view_row in view_rows:
            if not view_row.lease_id:
                logger.warning(
                    f"Skipping prepayment view row without a lease "
                    f"(unit {view_row.unit_number or view_row.unit_id})"
                )
                continue
            row = _from_view_row(view_row, current_month_start, tenant_names)
            lease_row = recomputed.get(row.lease_id)
            if lease_row is not None and lease_row.prepaid_months != row.prepaid_months:
                logger.warning(
                    f"Prepayment view and lease pointers disagree for lease {row.lease_id}: "
                    f"view={row.prepaid_months} lease={lease_row.prepaid_months}"
                )
            if row.tenant_name is None and lease_row is not None:
                row.tenant_name = lease_row.tenant_name
            rows.append(row)

        listed = {view_row.lease_id for view_row in view_rows}
        for lease_id, lease_row in recomputed.items():
            if lease_row.prepaid_months > 0 and lease_id not in listed:
                logger.warning(
                    f"Lease {lease_id} is prepaid {lease_row.prepaid_months} months "
                    f"by its pointers but missing from the prepayment view"
                )
    else:
        if recomputed:
            logger.info(
                f"Prepayment view returned no rows; recomputing {len(recomputed)} leases"
            )
        rows = list(recomputed.values())

    prepaid = [row for row in rows if row.prepaid_months > 0]
    prepaid.sort(key=lambda row: row.rent_paid_until or date.min, reverse=True)
    return prepaid
