"""Match verified payments to invoices and cap them at the invoice amount."""
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List

from app.schemas.records import InvoiceRecord, PaymentRecord

# Tolerance when deciding whether payments fully cover an invoice
FULLY_PAID_RATIO = 0.999


@dataclass(frozen=True)
class InvoiceMatch:
    """An invoice with the verified payments applied to it."""

    invoice: InvoiceRecord
    paid_sum: float
    effective_paid: float

    @property
    def is_settled(self) -> bool:
        """True when the invoice is flagged paid or its payments cover it."""
        if self.invoice.is_paid or (self.invoice.status_text or "").lower() == "paid":
            return True
        return self.invoice.amount > 0 and self.paid_sum >= self.invoice.amount * FULLY_PAID_RATIO


def sum_verified_payments(payments: Iterable[PaymentRecord]) -> Dict[str, float]:
    """Sum ``amount_paid`` of verified payments per invoice id."""
    totals: Dict[str, float] = defaultdict(float)
    for payment in payments:
        if not payment.verified or not payment.invoice_id:
            continue
        totals[payment.invoice_id] += payment.amount_paid
    return dict(totals)


def effective_paid(amount: float, paid_sum: float) -> float:
    """Cap the paid sum at the invoice amount.

    Invoices with a zero (legacy) amount have no cap.
    """
    if amount > 0:
        return min(paid_sum, amount)
    return paid_sum


def match_payments(
    invoices: Iterable[InvoiceRecord], payments: Iterable[PaymentRecord]
) -> List[InvoiceMatch]:
    """Apply verified payments to every invoice.

    Needs the complete payment set: a partial set under-reports invoices
    whose payments have not been read yet.
    """
    totals = sum_verified_payments(payments)
    matches = []
    for invoice in invoices:
        paid_sum = totals.get(invoice.id, 0.0)
        matches.append(
            InvoiceMatch(
                invoice=invoice,
                paid_sum=paid_sum,
                effective_paid=effective_paid(invoice.amount, paid_sum),
            )
        )
    return matches
