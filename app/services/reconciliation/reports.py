"""Billed, collected and expense rollups for the manager financial report.

Billed is the invoice amount and collected is the capped effective paid
amount, both keyed by the invoice month. Expenses are keyed by when they were
incurred, else when they were recorded. Anything outside the window is left
out of every total.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

from app.schemas.dashboard import FinancialReport, PropertyFinancials, ReportKpis, ReportPoint
from app.schemas.records import DashboardSnapshot
from app.services.reconciliation.aggregation import (
    UNASSIGNED,
    expense_month_key,
    invoice_month_key,
    safe_pct,
)
from app.services.reconciliation.matching import match_payments
from app.services.reconciliation.periods import build_month_buckets, utc_today, window_start


@dataclass
class FinancialTotals:
    """Running billed, collected and expense totals."""

    name: str = ""
    billed: float = 0.0
    collected: float = 0.0
    expenses: float = 0.0

    @property
    def net(self) -> float:
        return self.collected - self.expenses


def build_financial_report(
    snapshot: DashboardSnapshot,
    now: Optional[datetime] = None,
    window: int = 12,
) -> FinancialReport:
    """Monthly and per-property billed/collected/expenses/net over the window."""
    now = now or datetime.now(timezone.utc)
    buckets = build_month_buckets(now, window)
    months: Dict[str, FinancialTotals] = {bucket.key: FinancialTotals() for bucket in buckets}
    names = {building.id: building.name or building.id for building in snapshot.buildings}
    properties: Dict[str, FinancialTotals] = {}

    def property_totals(key: str, fallback_name: Optional[str] = None) -> FinancialTotals:
        if key not in properties:
            properties[key] = FinancialTotals(name=names.get(key) or fallback_name or key)
        return properties[key]

    for match in match_payments(snapshot.invoices, snapshot.payments):
        month = months.get(invoice_month_key(match))
        if month is None:
            continue
        month.billed += match.invoice.amount
        month.collected += match.effective_paid
        totals = property_totals(
            match.invoice.building_id or UNASSIGNED, match.invoice.building_name
        )
        totals.billed += match.invoice.amount
        totals.collected += match.effective_paid

    for expense in snapshot.expenses:
        month = months.get(expense_month_key(expense))
        if month is None:
            continue
        month.expenses += expense.amount
        property_totals(expense.property_id or UNASSIGNED).expenses += expense.amount

    series = [
        ReportPoint(
            label=bucket.label,
            key=bucket.key,
            billed=months[bucket.key].billed,
            collected=months[bucket.key].collected,
            expenses=months[bucket.key].expenses,
            net=months[bucket.key].net,
        )
        for bucket in buckets
    ]

    by_property = [
        PropertyFinancials(
            property_id=key,
            name=totals.name,
            billed=totals.billed,
            collected=totals.collected,
            expenses=totals.expenses,
            net=totals.net,
            collection_rate=safe_pct(totals.collected, totals.billed),
        )
        for key, totals in properties.items()
    ]
    by_property.sort(key=lambda row: row.collected, reverse=True)

    billed = sum(point.billed for point in series)
    collected = sum(point.collected for point in series)
    expenses = sum(point.expenses for point in series)

    return FinancialReport(
        range_start=window_start(now, window),
        range_end=utc_today(now),
        kpis=ReportKpis(
            billed=billed,
            collected=collected,
            expenses=expenses,
            net=collected - expenses,
            collection_rate=safe_pct(collected, billed),
        ),
        series=series,
        by_property=by_property,
    )
