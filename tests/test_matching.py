"""Tests for invoice and payment matching."""
import pytest

from app.schemas.records import InvoiceRecord, PaymentRecord
from app.services.reconciliation.matching import (
    effective_paid,
    match_payments,
    sum_verified_payments,
)


def invoice(invoice_id="inv-1", amount=1000, **kwargs):
    return InvoiceRecord(id=invoice_id, amount=amount, **kwargs)


def payment(payment_id, invoice_id="inv-1", amount=0, verified=True, **kwargs):
    return PaymentRecord(
        id=payment_id, invoice_id=invoice_id, amount_paid=amount, verified=verified, **kwargs
    )


class TestEffectivePaid:
    """Capping payments at the invoice amount."""

    def test_overpayment_is_capped(self):
        assert effective_paid(1000, 1200) == 1000

    def test_partial_payment_is_kept(self):
        assert effective_paid(1000, 400) == 400

    def test_zero_amount_invoice_is_uncapped(self):
        assert effective_paid(0, 750) == 750

    @pytest.mark.parametrize("amount,paid", [(1000, 0), (1000, 999.99), (500, 10_000), (1, 1)])
    def test_never_exceeds_positive_amount(self, amount, paid):
        assert effective_paid(amount, paid) <= amount


class TestSumVerifiedPayments:
    """Grouping payments per invoice."""

    def test_only_verified_payments_count(self):
        totals = sum_verified_payments([
            payment("p1", amount=600),
            payment("p2", amount=300, verified=False),
            payment("p3", amount=100),
        ])
        assert totals == {"inv-1": 700}

    def test_verified_must_be_literally_true(self):
        totals = sum_verified_payments([payment("p1", amount=600, verified="yes")])
        assert totals == {}

    def test_payments_without_invoice_are_ignored(self):
        totals = sum_verified_payments([payment("p1", invoice_id=None, amount=600)])
        assert totals == {}

    def test_malformed_amount_counts_as_zero(self):
        totals = sum_verified_payments([
            payment("p1", amount="abc"),
            payment("p2", amount="250.50"),
        ])
        assert totals == {"inv-1": 250.5}


class TestMatchPayments:
    """Applying payments to invoices."""

    def test_two_payments_over_invoice_are_capped(self):
        matches = match_payments(
            [invoice(amount=1000)],
            [payment("p1", amount=600), payment("p2", amount=600)],
        )
        assert len(matches) == 1
        assert matches[0].paid_sum == 1200
        assert matches[0].effective_paid == 1000
        assert matches[0].is_settled

    def test_unpaid_invoice_matches_zero(self):
        matches = match_payments([invoice()], [])
        assert matches[0].effective_paid == 0
        assert not matches[0].is_settled

    def test_settled_by_flag_or_status_text(self):
        matches = match_payments(
            [
                invoice("a", is_paid=True),
                invoice("b", status_text="PAID"),
                invoice("c", status_text="partially_paid"),
            ],
            [],
        )
        assert [m.is_settled for m in matches] == [True, True, False]

    def test_settled_within_rounding_tolerance(self):
        matches = match_payments([invoice(amount=1000)], [payment("p1", amount=999.5)])
        assert matches[0].is_settled

    def test_zero_amount_invoice_is_not_settled_by_payments(self):
        matches = match_payments([invoice(amount=0)], [payment("p1", amount=50)])
        assert matches[0].effective_paid == 50
        assert not matches[0].is_settled
