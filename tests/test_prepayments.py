"""Tests for prepaid-month calculation and view precedence."""
import logging
from datetime import date

from app.schemas.records import LeaseRecord, PrepaymentViewRow, TenantProfile
from app.services.reconciliation.prepayments import (
    calculate_prepayment,
    compute_prepaid_months,
    resolve_prepayments,
)

MARCH = date(2024, 3, 1)


def lease(lease_id, rent_paid_until, next_rent_due_date=None, tenant="t-1"):
    return LeaseRecord(
        id=lease_id,
        tenant_user_id=tenant,
        unit_id=f"u-{lease_id}",
        unit_number=f"A{lease_id}",
        status="active",
        rent_paid_until=rent_paid_until,
        next_rent_due_date=next_rent_due_date,
    )


class TestComputePrepaidMonths:
    """Counting months covered ahead of the baseline month."""

    def test_paid_through_june_from_march_is_four_months(self):
        assert compute_prepaid_months(date(2024, 6, 1), None, MARCH) == 4

    def test_paid_until_past_month_is_zero(self):
        assert compute_prepaid_months(date(2024, 1, 1), None, MARCH) == 0

    def test_paid_through_current_month_counts_one(self):
        assert compute_prepaid_months(date(2024, 3, 31), None, MARCH) == 1

    def test_future_next_due_date_moves_baseline(self):
        # Baseline is May, so May and June are prepaid
        assert compute_prepaid_months(date(2024, 6, 15), date(2024, 5, 5), MARCH) == 2

    def test_past_next_due_date_keeps_current_month(self):
        assert compute_prepaid_months(date(2024, 6, 1), date(2024, 1, 5), MARCH) == 4

    def test_paid_until_before_future_baseline_is_zero(self):
        assert compute_prepaid_months(date(2024, 4, 30), date(2024, 5, 1), MARCH) == 0

    def test_missing_paid_until_is_zero(self):
        assert compute_prepaid_months(None, date(2024, 5, 1), MARCH) == 0


class TestCalculatePrepayment:
    """Prepayment rows built from lease pointers."""

    def test_prepaid_lease(self):
        row = calculate_prepayment(lease("1", date(2024, 6, 1)), MARCH, {"t-1": "Jane Wanjiru"})
        assert row.prepaid_months == 4
        assert row.is_prepaid is True
        assert row.tenant_name == "Jane Wanjiru"
        assert row.unit_number == "A1"

    def test_lease_in_arrears_is_not_prepaid(self):
        row = calculate_prepayment(lease("2", date(2024, 1, 1)), MARCH)
        assert row.prepaid_months == 0
        assert row.is_prepaid is False
        assert row.tenant_name is None


class TestResolvePrepayments:
    """Choosing between the prepayment view and lease recomputation."""

    def test_recomputes_from_leases_when_view_is_empty(self):
        rows = resolve_prepayments(
            [],
            [
                lease("1", date(2024, 4, 30)),
                lease("2", date(2024, 1, 1)),
                lease("3", date(2024, 8, 31)),
            ],
            [TenantProfile(id="t-1", full_name="Jane Wanjiru")],
            MARCH,
        )
        assert [row.lease_id for row in rows] == ["3", "1"]
        assert [row.prepaid_months for row in rows] == [6, 2]
        assert all(row.tenant_name == "Jane Wanjiru" for row in rows)

    def test_view_rows_take_precedence(self):
        view = [
            PrepaymentViewRow(
                lease_id="9",
                tenant_user_id="t-9",
                unit_number="B2",
                rent_paid_until=date(2024, 5, 31),
                prepaid_months=3,
                is_prepaid=True,
            )
        ]
        rows = resolve_prepayments(view, [lease("1", date(2024, 6, 1))], [], MARCH)
        assert [row.lease_id for row in rows] == ["9"]
        assert rows[0].prepaid_months == 3

    def test_view_is_prepaid_flag_is_overridden_by_pointers(self, caplog):
        view = [
            PrepaymentViewRow(
                lease_id="9",
                rent_paid_until=date(2024, 1, 31),
                prepaid_months=2,
                is_prepaid=True,
            )
        ]
        with caplog.at_level(logging.WARNING):
            rows = resolve_prepayments(view, [], [], MARCH)

        assert rows == []
        assert "lease 9" in caplog.text

    def test_view_and_lease_disagreement_is_logged(self, caplog):
        view = [PrepaymentViewRow(lease_id="1", rent_paid_until=date(2024, 4, 30), prepaid_months=2)]
        with caplog.at_level(logging.WARNING):
            rows = resolve_prepayments(view, [lease("1", date(2024, 6, 30))], [], MARCH)

        assert rows[0].prepaid_months == 2
        assert "disagree" in caplog.text

    def test_tenant_name_falls_back_to_lease_recomputation(self):
        view = [PrepaymentViewRow(lease_id="1", rent_paid_until=date(2024, 4, 30), prepaid_months=2)]
        rows = resolve_prepayments(
            view,
            [lease("1", date(2024, 4, 30))],
            [TenantProfile(id="t-1", full_name="Jane Wanjiru")],
            MARCH,
        )
        assert rows[0].tenant_name == "Jane Wanjiru"

    def test_prepaid_lease_missing_from_view_is_logged(self, caplog):
        view = [
            PrepaymentViewRow(
                lease_id="L1", rent_paid_until=date(2024, 6, 30), prepaid_months=4
            )
        ]
        leases = [lease("L1", date(2024, 6, 30)), lease("L2", date(2024, 8, 31))]
        with caplog.at_level(logging.WARNING):
            rows = resolve_prepayments(view, leases, [], MARCH)

        assert [row.lease_id for row in rows] == ["L1"]
        assert "Lease L2" in caplog.text
        assert "missing from the prepayment view" in caplog.text
        assert "Lease L1" not in caplog.text

    def test_unprepaid_lease_missing_from_view_is_not_logged(self, caplog):
        view = [PrepaymentViewRow(lease_id="L1", rent_paid_until=date(2024, 6, 30), prepaid_months=4)]
        with caplog.at_level(logging.WARNING):
            resolve_prepayments(view, [lease("L3", date(2024, 1, 31))], [], MARCH)

        assert "L3" not in caplog.text

    def test_view_row_without_lease_is_skipped(self, caplog):
        view = [
            PrepaymentViewRow(
                lease_id=None, unit_number="C4", rent_paid_until=date(2024, 6, 30), prepaid_months=4
            ),
            PrepaymentViewRow(lease_id="L1", rent_paid_until=date(2024, 5, 31), prepaid_months=3),
        ]
        with caplog.at_level(logging.WARNING):
            rows = resolve_prepayments(view, [], [], MARCH)

        assert [row.lease_id for row in rows] == ["L1"]
        assert "None" not in [row.lease_id for row in rows]
        assert "without a lease" in caplog.text

    def test_view_row_lease_id_stays_null(self):
        assert PrepaymentViewRow(lease_id=None).lease_id is None
        assert PrepaymentViewRow(lease_id="").lease_id is None

    def test_nothing_to_report(self):
        assert resolve_prepayments([], [], [], MARCH) == []
