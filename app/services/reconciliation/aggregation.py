"""Fold capped invoice payments and expenses into month and property totals."""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

from app.schemas.dashboard import ExpensePoint, MonthBucket, PropertyRevenueRow, RevenuePoint
from app.schemas.records import BuildingRecord, ExpenseRecord
from app.services.reconciliation.matching import InvoiceMatch
from app.services.reconciliation.periods import month_key

UNASSIGNED = "Unassigned"


def invoice_month_key(match: InvoiceMatch) -> Optional[str]:
    """Revenue month of an invoice: its period start, else its due date."""
    return month_key(match.invoice.period_start) or month_key(match.invoice.due_date)


def expense_month_key(expense: ExpenseRecord) -> Optional[str]:
    """Expense month: when it was incurred, else when it was recorded."""
    return month_key(expense.incurred_at) or month_key(expense.created_at)


def aggregate_revenue(
    matches: Iterable[InvoiceMatch], buckets: List[MonthBucket]
) -> List[RevenuePoint]:
    """Sum effective paid amounts into the window's month buckets.

    Invoices with nothing paid, no resolvable month, or a month outside the
    window contribute nothing.
    """
    totals: Dict[str, float] = {bucket.key: 0.0 for bucket in buckets}
    for match in matches:
        if match.effective_paid <= 0:
            continue
        key = invoice_month_key(match)
        if key in totals:
            totals[key] += match.effective_paid
    return [
        RevenuePoint(label=bucket.label, key=bucket.key, revenue=totals[bucket.key])
        for bucket in buckets
    ]


def aggregate_expenses(
    expenses: Iterable[ExpenseRecord], buckets: List[MonthBucket]
) -> List[ExpensePoint]:
    """Sum expense amounts into the window's month buckets."""
    totals: Dict[str, float] = {bucket.key: 0.0 for bucket in buckets}
    for expense in expenses:
        key = expense_month_key(expense)
        if key in totals:
            totals[key] += expense.amount
    return [
        ExpensePoint(label=bucket.label, key=bucket.key, expenses=totals[bucket.key])
        for bucket in buckets
    ]


def revenue_delta(current: float, previous: float) -> Optional[float]:
    """Month-over-month change in percent, or None when there is no baseline."""
    if previous == 0:
        return None
    return (current - previous) / previous * 100


def safe_pct(part: float, whole: float) -> int:
    """Rounded percentage, 0 when ``whole`` is 0."""
    if not whole:
        return 0
    return round(part / whole * 100)


@dataclass
class PropertyAccumulator:
    """Running totals for one property."""

    name: str
    revenue: float = 0.0
    potential: float = 0.0
    expenses: float = 0.0


def property_expense_split(
    expenses: Iterable[ExpenseRecord], current_key: str
) -> Dict[str, float]:
    """Current-month expenses per property id; unlinked expenses go to ``Unassigned``."""
    totals: Dict[str, float] = {}
    for expense in expenses:
        if expense_month_key(expense) != current_key:
            continue
        key = expense.property_id or UNASSIGNED
        totals[key] = totals.get(key, 0.0) + expense.amount
    return totals


def property_revenue_split(
    matches: Iterable[InvoiceMatch],
    current_key: str,
    buildings: Iterable[BuildingRecord],
    potential_by_building: Mapping[str, float],
    expenses_by_property: Optional[Mapping[str, float]] = None,
) -> List[PropertyRevenueRow]:
    """Current-month collected revenue against potential rent, per property.

    Every known building is listed even without revenue. Invoices and expenses
    without a building association are collected under ``Unassigned``. ``net``
    is revenue minus expenses.
    """
    accumulators: Dict[str, PropertyAccumulator] = {}
    for building in buildings:
        accumulators[building.id] = PropertyAccumulator(name=building.name or building.id)

    for match in matches:
        if match.effective_paid <= 0 or invoice_month_key(match) != current_key:
            continue
        key = match.invoice.building_id or UNASSIGNED
        if key not in accumulators:
            accumulators[key] = PropertyAccumulator(name=match.invoice.building_name or key)
        accumulators[key].revenue += match.effective_paid

    for key, potential in potential_by_building.items():
        if key not in accumulators:
            accumulators[key] = PropertyAccumulator(name=key)
        accumulators[key].potential = potential

    for key, amount in (expenses_by_property or {}).items():
        if key not in accumulators:
            accumulators[key] = PropertyAccumulator(name=key)
        accumulators[key].expenses += amount

    return [
        PropertyRevenueRow(
            name=acc.name,
            revenue=acc.revenue,
            potential=acc.potential,
            percent=safe_pct(acc.revenue, acc.potential),
            expenses=acc.expenses,
            net=acc.revenue - acc.expenses,
        )
        for acc in accumulators.values()
    ]
