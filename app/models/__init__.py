"""Database models package."""
from app.models.db_models import (
    # Portfolio
    ApartmentBuilding,
    ApartmentUnit,
    Lease,
    LeaseStatus,
    UserProfile,
    UserRole,
    # Billing
    Invoice,
    InvoiceType,
    Payment,
    Expense,
    # Operations
    MaintenanceRequest,
    # Views
    lease_arrears_view,
    lease_prepayment_view,
)

__all__ = [
    # Portfolio
    "ApartmentBuilding",
    "ApartmentUnit",
    "Lease",
    "LeaseStatus",
    "UserProfile",
    "UserRole",
    # Billing
    "Invoice",
    "InvoiceType",
    "Payment",
    "Expense",
    # Operations
    "MaintenanceRequest",
    # Views
    "lease_arrears_view",
    "lease_prepayment_view",
]
