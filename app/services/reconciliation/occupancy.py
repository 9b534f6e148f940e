"""Per-building occupancy and potential rent from unit and lease snapshots.

Pending leases count toward potential revenue but not toward occupancy: the
tenant is committed financially but has not moved in.
"""
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from app.schemas.dashboard import OccupancyRow
from app.schemas.records import BuildingRecord, UnitLease, UnitRecord
from app.services.reconciliation.aggregation import UNASSIGNED

ACTIVE = "active"
PENDING = "pending"

_NON_NUMERIC = re.compile(r"[^0-9.]")


def parse_currency(value: Optional[str]) -> float:
    """Parse a price label such as ``"KES 12,000"``; 0.0 if unusable."""
    if not value:
        return 0.0
    try:
        amount = float(_NON_NUMERIC.sub("", str(value)))
    except ValueError:
        return 0.0
    return amount if amount > 0 else 0.0


def _status(lease: UnitLease) -> str:
    return (lease.status or "").strip().lower()


def active_like_lease(unit: UnitRecord) -> Optional[UnitLease]:
    """First active lease of the unit, else its first pending lease."""
    for wanted in (ACTIVE, PENDING):
        for lease in unit.leases:
            if _status(lease) == wanted:
                return lease
    return None


def is_occupied(unit: UnitRecord) -> bool:
    """A unit is occupied only by an active lease."""
    return any(_status(lease) == ACTIVE for lease in unit.leases)


def resolve_unit_rent(unit: UnitRecord) -> float:
    """Monthly rent of the active-like lease, else the unit's price category."""
    lease = active_like_lease(unit)
    if lease is not None and lease.monthly_rent > 0:
        return lease.monthly_rent
    return parse_currency(unit.unit_price_category)


@dataclass
class BuildingOccupancy:
    """Running unit counts for one building."""

    total: int = 0
    occupied: int = 0
    potential: float = 0.0


def roll_occupancy(
    units: Iterable[UnitRecord], buildings: Iterable[BuildingRecord]
) -> List[OccupancyRow]:
    """Roll units up into one occupancy row per building.

    Needs every unit of a building before that building's row is meaningful.
    """
    names = {building.id: building.name for building in buildings}
    totals: Dict[str, BuildingOccupancy] = {}
    for unit in units:
        key = unit.building_id or UNASSIGNED
        entry = totals.setdefault(key, BuildingOccupancy())
        entry.total += 1
        if is_occupied(unit):
            entry.occupied += 1
        entry.potential += resolve_unit_rent(unit)

    return [
        OccupancyRow(
            building_id=key,
            property_name=names.get(key) or key,
            total_units=entry.total,
            occupied_units=entry.occupied,
            occupancy_rate=entry.occupied / entry.total if entry.total else 0.0,
            potential_revenue=entry.potential,
        )
        for key, entry in totals.items()
    ]


def potential_by_building(rows: Iterable[OccupancyRow]) -> Dict[str, float]:
    """Map building id to potential monthly rent."""
    return {row.building_id: row.potential_revenue for row in rows}
