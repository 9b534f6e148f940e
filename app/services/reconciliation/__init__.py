"""Financial reconciliation and rollup engine.

Pure functions over an in-memory snapshot: no I/O happens here.
"""
from app.services.reconciliation.aggregation import (
    UNASSIGNED,
    aggregate_expenses,
    aggregate_revenue,
    property_expense_split,
    property_revenue_split,
    revenue_delta,
)
from app.services.reconciliation.arrears import (
    attach_buildings,
    bucket_arrears_by_age,
    rank_arrears,
    summarize_defaulters,
)
from app.services.reconciliation.matching import (
    InvoiceMatch,
    effective_paid,
    match_payments,
    sum_verified_payments,
)
from app.services.reconciliation.occupancy import parse_currency, resolve_unit_rent, roll_occupancy
from app.services.reconciliation.overview import (
    build_overview,
    empty_overview,
    payment_status_counts,
)
from app.services.reconciliation.periods import build_month_buckets, month_key
from app.services.reconciliation.prepayments import (
    calculate_prepayment,
    compute_prepaid_months,
    resolve_prepayments,
)
from app.services.reconciliation.reports import build_financial_report

__all__ = [
    "UNASSIGNED",
    "InvoiceMatch",
    "aggregate_expenses",
    "aggregate_revenue",
    "attach_buildings",
    "bucket_arrears_by_age",
    "build_financial_report",
    "build_month_buckets",
    "build_overview",
    "calculate_prepayment",
    "compute_prepaid_months",
    "effective_paid",
    "empty_overview",
    "match_payments",
    "month_key",
    "parse_currency",
    "payment_status_counts",
    "property_expense_split",
    "property_revenue_split",
    "rank_arrears",
    "resolve_prepayments",
    "resolve_unit_rent",
    "revenue_delta",
    "roll_occupancy",
    "summarize_defaulters",
    "sum_verified_payments",
]
