"""SQLAlchemy database models."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.database import Base


def local_now():
    """Return current time in local timezone."""
    return datetime.now().astimezone()


class LeaseStatus(str, enum.Enum):
    """Lease status enumeration."""

    PENDING = "pending"
    ACTIVE = "active"
    ENDED = "ended"
    TERMINATED = "terminated"


class InvoiceType(str, enum.Enum):
    """Invoice type enumeration."""

    RENT = "rent"
    WATER = "water"


class UserRole(str, enum.Enum):
    """User role enumeration."""

    ADMIN = "admin"
    MANAGER = "manager"
    CARETAKER = "caretaker"
    TENANT = "tenant"


class ApartmentBuilding(Base):
    """A property (building) owned by an organization."""

    __tablename__ = "apartment_buildings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), nullable=False)
    name = Column(String(255), nullable=False)
    location = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=local_now, nullable=False)

    # Relationships
    units = relationship("ApartmentUnit", back_populates="building")


class ApartmentUnit(Base):
    """A rentable unit inside a building."""

    __tablename__ = "apartment_units"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), nullable=False)
    building_id = Column(UUID(as_uuid=True), ForeignKey("apartment_buildings.id"), nullable=True)
    unit_number = Column(String(50), nullable=True)
    unit_price_category = Column(String(100), nullable=True)  # e.g. "KES 12,000"
    status = Column(String(30), nullable=True)  # vacant, occupied, notice, maintenance
    created_at = Column(DateTime(timezone=True), default=local_now, nullable=False)

    # Relationships
    building = relationship("ApartmentBuilding", back_populates="units")
    leases = relationship("Lease", back_populates="unit")


class Lease(Base):
    """Lease between a tenant and a unit."""

    __tablename__ = "leases"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), nullable=False)
    tenant_user_id = Column(UUID(as_uuid=True), ForeignKey("user_profiles.id"), nullable=True)
    unit_id = Column(UUID(as_uuid=True), ForeignKey("apartment_units.id"), nullable=True)
    status = Column(String(20), default=LeaseStatus.PENDING.value, nullable=False)
    monthly_rent = Column(Numeric(12, 2), nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    rent_paid_until = Column(Date, nullable=True)
    next_rent_due_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=local_now, nullable=False)

    # Relationships
    unit = relationship("ApartmentUnit", back_populates="leases")
    tenant = relationship("UserProfile", back_populates="leases")
    invoices = relationship("Invoice", back_populates="lease")


class Invoice(Base):
    """Rent or water invoice raised against a lease."""

    __tablename__ = "invoices"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), nullable=False)
    lease_id = Column(UUID(as_uuid=True), ForeignKey("leases.id"), nullable=True)
    invoice_type = Column(String(20), default=InvoiceType.RENT.value, nullable=False)
    amount = Column(Numeric(12, 2), default=0, nullable=False)
    status = Column(Boolean, default=False, nullable=True)  # legacy paid flag
    status_text = Column(String(30), nullable=True)  # unpaid, partially_paid, paid, void
    total_paid = Column(Numeric(12, 2), nullable=True)
    due_date = Column(Date, nullable=True)
    period_start = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=local_now, nullable=False)

    # Relationships
    lease = relationship("Lease", back_populates="invoices")
    payments = relationship("Payment", back_populates="invoice")


class Payment(Base):
    """Payment made against an invoice."""

    __tablename__ = "payments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), nullable=False)
    invoice_id = Column(UUID(as_uuid=True), ForeignKey("invoices.id"), nullable=True)
    tenant_user_id = Column(UUID(as_uuid=True), nullable=True)
    amount_paid = Column(Numeric(12, 2), default=0, nullable=False)
    verified = Column(Boolean, default=False, nullable=False)
    payment_date = Column(DateTime(timezone=True), nullable=True)
    months_paid = Column(Integer, nullable=True)
    mpesa_response_code = Column(String(20), nullable=True)
    mpesa_query_status = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=local_now, nullable=False)

    # Relationships
    invoice = relationship("Invoice", back_populates="payments")


class Expense(Base):
    """Operating expense recorded against a property."""

    __tablename__ = "expenses"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), nullable=False)
    property_id = Column(UUID(as_uuid=True), ForeignKey("apartment_buildings.id"), nullable=True)
    amount = Column(Numeric(12, 2), default=0, nullable=False)
    category = Column(String(100), nullable=True)
    incurred_at = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=local_now, nullable=True)


class UserProfile(Base):
    """Profile for managers, caretakers and tenants."""

    __tablename__ = "user_profiles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), nullable=True)
    full_name = Column(String(255), nullable=True)
    phone_number = Column(String(50), nullable=True)
    role = Column(String(20), default=UserRole.TENANT.value, nullable=False)
    created_at = Column(DateTime(timezone=True), default=local_now, nullable=False)

    # Relationships
    leases = relationship("Lease", back_populates="tenant")


class MaintenanceRequest(Base):
    """Maintenance request raised for a unit."""

    __tablename__ = "maintenance_requests"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), nullable=False)
    unit_id = Column(UUID(as_uuid=True), ForeignKey("apartment_units.id"), nullable=True)
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String(30), default="open", nullable=True)
    priority = Column(String(20), default="medium", nullable=True)
    created_at = Column(DateTime(timezone=True), default=local_now, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=local_now, onupdate=local_now, nullable=True)

    # Relationships
    unit = relationship("ApartmentUnit")


# Database Indexes
Index("ix_apartment_buildings_org", ApartmentBuilding.organization_id)
Index("ix_apartment_units_org_building", ApartmentUnit.organization_id, ApartmentUnit.building_id)
Index("ix_leases_org_status", Lease.organization_id, Lease.status)
Index("ix_invoices_org_type_due", Invoice.organization_id, Invoice.invoice_type, Invoice.due_date)
Index("ix_invoices_period_start", Invoice.period_start)
Index("ix_payments_org_invoice", Payment.organization_id, Payment.invoice_id)
Index("ix_expenses_org_incurred", Expense.organization_id, Expense.incurred_at)
Index("ix_maintenance_requests_org_updated", MaintenanceRequest.organization_id, MaintenanceRequest.updated_at)


# Read-only views, created by migrations and kept out of Base.metadata
view_metadata = MetaData()

lease_arrears_view = Table(
    "vw_lease_arrears_detail",
    view_metadata,
    Column("organization_id", UUID(as_uuid=True)),
    Column("lease_id", UUID(as_uuid=True)),
    Column("tenant_user_id", UUID(as_uuid=True)),
    Column("tenant_name", String(255)),
    Column("tenant_phone", String(50)),
    Column("unit_id", UUID(as_uuid=True)),
    Column("unit_number", String(50)),
    Column("arrears_amount", Numeric(12, 2)),
    Column("open_invoices_count", Integer),
    Column("oldest_due_date", Date),
)

lease_prepayment_view = Table(
    "vw_lease_prepayment_status",
    view_metadata,
    Column("organization_id", UUID(as_uuid=True)),
    Column("lease_id", UUID(as_uuid=True)),
    Column("tenant_user_id", UUID(as_uuid=True)),
    Column("unit_id", UUID(as_uuid=True)),
    Column("unit_number", String(50)),
    Column("rent_paid_until", Date),
    Column("next_rent_due_date", Date),
    Column("prepaid_months", Integer),
    Column("is_prepaid", Boolean),
)
