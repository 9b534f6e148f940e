"""Pydantic schemas for rows read from the database.

These are the inputs of the reconciliation engine. Every schema accepts ORM
objects (``from_attributes``) or plain dicts, and coerces unusable field values
to defaults instead of rejecting the row: a malformed date becomes ``None`` and
a malformed amount becomes ``0.0``.
"""
import math
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def parse_date(value: Any) -> Optional[date]:
    """Return the UTC calendar date of a value, or None if it has none.

    Aware datetimes are converted to UTC before the date is taken.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return parse_date(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            pass
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


def parse_amount(value: Any) -> float:
    """Return a finite float for a money value, or 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        amount = float(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError):
        return 0.0
    return amount if math.isfinite(amount) else 0.0


def _optional_id(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _strict_true(value: Any) -> bool:
    return value is True


# Field types shared by the row schemas
RecordId = Annotated[str, BeforeValidator(str)]
OptionalId = Annotated[Optional[str], BeforeValidator(_optional_id)]
Money = Annotated[float, BeforeValidator(parse_amount)]
Count = Annotated[int, BeforeValidator(lambda v: int(parse_amount(v)))]
LenientDate = Annotated[Optional[date], BeforeValidator(parse_date)]
Flag = Annotated[bool, BeforeValidator(_strict_true)]


class RecordBase(BaseModel):
    """Base for database row schemas."""

    model_config = ConfigDict(from_attributes=True)


class BuildingRecord(RecordBase):
    """A building (property)."""
    id: RecordId
    name: Optional[str] = None


class TenantProfile(RecordBase):
    """Name and phone enrichment for a tenant."""
    id: RecordId
    full_name: Optional[str] = None
    phone_number: Optional[str] = None


class InvoiceRecord(RecordBase):
    """An invoice with its building association flattened in."""
    id: RecordId
    lease_id: OptionalId = None
    amount: Money = 0.0
    is_paid: Flag = False
    status_text: Optional[str] = None
    due_date: LenientDate = None
    period_start: LenientDate = None
    invoice_type: Optional[str] = None
    building_id: OptionalId = None
    building_name: Optional[str] = None
    total_paid: Money = 0.0


class PaymentRecord(RecordBase):
    """A payment against an invoice."""
    id: RecordId
    invoice_id: OptionalId = None
    amount_paid: Money = 0.0
    verified: Flag = False
    payment_date: LenientDate = None
    mpesa_response_code: Optional[str] = None
    mpesa_query_status: Optional[str] = None


class LeaseRecord(RecordBase):
    """A lease with its rent pointers and unit number."""
    id: RecordId
    tenant_user_id: OptionalId = None
    unit_id: OptionalId = None
    unit_number: Optional[str] = None
    status: Optional[str] = None
    monthly_rent: Money = 0.0
    start_date: LenientDate = None
    rent_paid_until: LenientDate = None
    next_rent_due_date: LenientDate = None


class UnitLease(RecordBase):
    """Lease fields nested under a unit."""
    status: Optional[str] = None
    monthly_rent: Money = 0.0


class UnitRecord(RecordBase):
    """A unit with the leases attached to it."""
    id: RecordId
    building_id: OptionalId = None
    unit_number: Optional[str] = None
    unit_price_category: Optional[str] = None
    leases: Annotated[List[UnitLease], BeforeValidator(lambda v: [] if v is None else v)] = Field(
        default_factory=list
    )


class ExpenseRecord(RecordBase):
    """An expense booked against a property."""
    id: RecordId
    amount: Money = 0.0
    incurred_at: LenientDate = None
    created_at: LenientDate = None
    property_id: OptionalId = None


class ArrearsRow(RecordBase):
    """Outstanding balance for one lease, from the arrears view."""
    lease_id: OptionalId = None
    tenant_user_id: OptionalId = None
    tenant_name: Optional[str] = None
    tenant_phone: Optional[str] = None
    unit_id: OptionalId = None
    unit_number: Optional[str] = None
    arrears_amount: Money = 0.0
    open_invoices_count: Count = 0
    oldest_due_date: LenientDate = None


class PrepaymentViewRow(RecordBase):
    """A row of the precomputed prepayment view."""
    lease_id: OptionalId = None
    tenant_user_id: OptionalId = None
    unit_id: OptionalId = None
    unit_number: Optional[str] = None
    rent_paid_until: LenientDate = None
    next_rent_due_date: LenientDate = None
    prepaid_months: Count = 0
    is_prepaid: Optional[bool] = None


class MaintenanceRecord(RecordBase):
    """A maintenance request with unit and building names."""
    id: RecordId
    title: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    unit_number: Optional[str] = None
    building_name: Optional[str] = None


class DashboardSnapshot(BaseModel):
    """Everything the dashboard needs, fetched before any computation.

    Collections are always lists, possibly empty.
    """
    buildings: List[BuildingRecord] = Field(default_factory=list)
    tenant_count: int = 0
    invoices: List[InvoiceRecord] = Field(default_factory=list)
    payments: List[PaymentRecord] = Field(default_factory=list)
    units: List[UnitRecord] = Field(default_factory=list)
    expenses: List[ExpenseRecord] = Field(default_factory=list)
    arrears: List[ArrearsRow] = Field(default_factory=list)
    prepayment_view: List[PrepaymentViewRow] = Field(default_factory=list)
    prepayment_leases: List[LeaseRecord] = Field(default_factory=list)
    tenant_profiles: List[TenantProfile] = Field(default_factory=list)
    maintenance: List[MaintenanceRecord] = Field(default_factory=list)
