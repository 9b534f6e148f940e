"""Rank defaulters and bucket arrears by age."""
from collections import OrderedDict
from datetime import date
from typing import Dict, Iterable, List, Optional

from app.schemas.dashboard import (
    AgeingBucket,
    ArrearsAgeing,
    ArrearsDetail,
    ArrearsItem,
    DefaultersSummary,
    TopBuilding,
)
from app.schemas.records import ArrearsRow, BuildingRecord, TenantProfile
from app.services.reconciliation.aggregation import safe_pct

UNKNOWN_TENANT = "Unknown tenant"

# (label, inclusive upper bound in days overdue); None is open-ended
AGEING_RANGES = (
    ("0-30", 30),
    ("31-60", 60),
    ("61-90", 90),
    ("90+", None),
)


def rank_arrears(
    rows: Iterable[ArrearsRow], profiles: Iterable[TenantProfile] = ()
) -> List[ArrearsItem]:
    """Sort arrears by amount, largest first, keeping input order on ties.

    Rows that cannot be attributed to a tenant are kept with a placeholder
    name so data-quality problems stay visible.
    """
    by_id: Dict[str, TenantProfile] = {profile.id: profile for profile in profiles}
    items = []
    for row in rows:
        profile = by_id.get(row.tenant_user_id) if row.tenant_user_id else None
        name = row.tenant_name or (profile.full_name if profile else None)
        phone = row.tenant_phone or (profile.phone_number if profile else None)
        items.append(
            ArrearsItem(
                lease_id=row.lease_id,
                tenant_id=row.tenant_user_id,
                tenant_name=name or UNKNOWN_TENANT,
                tenant_phone=phone,
                unit_id=row.unit_id,
                unit_number=row.unit_number,
                arrears_amount=row.arrears_amount,
                open_invoices=row.open_invoices_count,
                oldest_due_date=row.oldest_due_date,
            )
        )
    # sorted() is stable
    return sorted(items, key=lambda item: item.arrears_amount, reverse=True)


def age_range(oldest_due_date: date, today: date) -> str:
    """Label of the overdue range a due date falls into."""
    days = max(0, (today - oldest_due_date).days)
    for label, upper in AGEING_RANGES:
        if upper is None or days <= upper:
            return label
    return AGEING_RANGES[-1][0]


def bucket_arrears_by_age(items: Iterable[ArrearsItem], today: date) -> ArrearsAgeing:
    """Count and sum arrears per overdue range.

    Rows without an oldest due date are counted as ``undated``.
    """
    buckets: "OrderedDict[str, AgeingBucket]" = OrderedDict(
        (label, AgeingBucket(range=label)) for label, _ in AGEING_RANGES
    )
    undated = 0
    for item in items:
        if item.oldest_due_date is None:
            undated += 1
            continue
        bucket = buckets[age_range(item.oldest_due_date, today)]
        bucket.count += 1
        bucket.amount += item.arrears_amount
    return ArrearsAgeing(buckets=list(buckets.values()), undated=undated)


def attach_buildings(
    items: Iterable[ArrearsItem], unit_buildings: Dict[str, BuildingRecord]
) -> List[ArrearsDetail]:
    """Add building id and name to arrears rows through their unit."""
    details = []
    for item in items:
        building = unit_buildings.get(item.unit_id) if item.unit_id else None
        details.append(
            ArrearsDetail(
                **item.model_dump(),
                building_id=building.id if building else None,
                building_name=building.name if building else None,
            )
        )
    return details


def summarize_defaulters(
    items: Iterable[ArrearsItem],
    active_tenants: int,
    unit_buildings: Dict[str, BuildingRecord],
    today: date,
    critical_days: int = 30,
) -> DefaultersSummary:
    """Headline defaulter figures: count, share of tenants, total and top building."""
    positives = [item for item in items if item.arrears_amount > 0]
    total = sum(item.arrears_amount for item in positives)
    critical = [
        item
        for item in positives
        if item.oldest_due_date is not None and (today - item.oldest_due_date).days > critical_days
    ]

    building_totals: Dict[str, float] = {}
    building_names: Dict[str, str] = {}
    for item in positives:
        building = unit_buildings.get(item.unit_id) if item.unit_id else None
        if building is None:
            continue
        building_totals[building.id] = building_totals.get(building.id, 0.0) + item.arrears_amount
        building_names[building.id] = building.name or "Building"

    top_building: Optional[TopBuilding] = None
    for building_id, amount in building_totals.items():
        if top_building is None or amount > top_building.arrears_amount:
            top_building = TopBuilding(
                building_id=building_id,
                building_name=building_names[building_id],
                arrears_amount=amount,
            )

    return DefaultersSummary(
        active_tenants=active_tenants,
        defaulters=len(positives),
        defaulters_pct=safe_pct(len(positives), active_tenants),
        total_arrears_amount=total,
        critical_defaulters=len(critical),
        top_building=top_building,
    )
