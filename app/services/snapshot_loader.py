"""Read the dashboard snapshot for an organization.

Each source is read in its own session so the independent queries can run
concurrently. A failing source is logged and treated as empty; the dashboard
renders with whatever the other sources returned.
"""
import asyncio
import logging
import uuid
from datetime import date, datetime, timezone
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, TypeVar

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from app.config import settings
from app.models.db_models import (
    ApartmentBuilding,
    ApartmentUnit,
    Expense,
    Invoice,
    Lease,
    LeaseStatus,
    MaintenanceRequest,
    Payment,
    UserProfile,
    UserRole,
    lease_arrears_view,
    lease_prepayment_view,
)
from app.schemas.records import (
    ArrearsRow,
    BuildingRecord,
    DashboardSnapshot,
    ExpenseRecord,
    InvoiceRecord,
    LeaseRecord,
    MaintenanceRecord,
    PaymentRecord,
    PrepaymentViewRow,
    TenantProfile,
    UnitRecord,
)
from app.services.reconciliation.periods import window_start

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _as_uuids(ids: Iterable[Optional[str]]) -> List[uuid.UUID]:
    """Convert string ids to UUIDs, skipping blanks and malformed ids."""
    result = []
    for value in ids:
        if not value:
            continue
        try:
            result.append(uuid.UUID(str(value)))
        except ValueError:
            logger.warning(f"Skipping malformed id: {value!r}")
    return result


class SnapshotLoader:
    """Fetches the rows the reconciliation engine works on."""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def _fetch(
        self,
        source: str,
        query: Callable[[AsyncSession], Awaitable[T]],
        default: T,
    ) -> T:
        """Run one read in its own session; log and return ``default`` on failure."""
        try:
            async with self._session_factory() as session:
                return await query(session)
        except Exception as e:
            logger.warning(f"Failed to load {source}, continuing without it: {e}")
            return default

    # ------------------------------------------------------------------
    # Individual sources
    # ------------------------------------------------------------------

    async def fetch_buildings(self, org_id: uuid.UUID) -> List[BuildingRecord]:
        async def query(session: AsyncSession) -> List[BuildingRecord]:
            result = await session.execute(
                select(ApartmentBuilding.id, ApartmentBuilding.name)
                .where(ApartmentBuilding.organization_id == org_id)
                .order_by(ApartmentBuilding.name)
            )
            return [BuildingRecord.model_validate(dict(row._mapping)) for row in result.all()]

        return await self._fetch("buildings", query, [])

    async def count_tenants(self, org_id: uuid.UUID) -> int:
        async def query(session: AsyncSession) -> int:
            result = await session.execute(
                select(func.count(UserProfile.id)).where(
                    UserProfile.organization_id == org_id,
                    UserProfile.role == UserRole.TENANT.value,
                )
            )
            return result.scalar() or 0

        return await self._fetch("tenant count", query, 0)

    async def count_active_tenants(self, org_id: uuid.UUID) -> int:
        """Active leases that have both a unit and a tenant."""
        async def query(session: AsyncSession) -> int:
            result = await session.execute(
                select(func.count(Lease.id)).where(
                    Lease.organization_id == org_id,
                    Lease.status == LeaseStatus.ACTIVE.value,
                    Lease.unit_id.isnot(None),
                    Lease.tenant_user_id.isnot(None),
                )
            )
            return result.scalar() or 0

        return await self._fetch("active tenant count", query, 0)

    async def fetch_invoices(self, org_id: uuid.UUID, since: date) -> List[InvoiceRecord]:
        """Revenue invoices whose period (or due date) starts on or after ``since``."""
        async def query(session: AsyncSession) -> List[InvoiceRecord]:
            result = await session.execute(
                select(
                    Invoice.id,
                    Invoice.lease_id,
                    Invoice.amount,
                    Invoice.status.label("is_paid"),
                    Invoice.status_text,
                    Invoice.due_date,
                    Invoice.period_start,
                    Invoice.invoice_type,
                    Invoice.total_paid,
                    ApartmentUnit.building_id,
                    ApartmentBuilding.name.label("building_name"),
                )
                .select_from(Invoice)
                .outerjoin(Lease, Invoice.lease_id == Lease.id)
                .outerjoin(ApartmentUnit, Lease.unit_id == ApartmentUnit.id)
                .outerjoin(ApartmentBuilding, ApartmentUnit.building_id == ApartmentBuilding.id)
                .where(
                    Invoice.organization_id == org_id,
                    Invoice.invoice_type.in_(settings.REVENUE_INVOICE_TYPES),
                    or_(
                        Invoice.period_start >= since,
                        and_(Invoice.period_start.is_(None), Invoice.due_date >= since),
                    ),
                )
            )
            return [InvoiceRecord.model_validate(dict(row._mapping)) for row in result.all()]

        return await self._fetch("invoices", query, [])

    async def fetch_payments(
        self, org_id: uuid.UUID, verified_only: bool = False
    ) -> List[PaymentRecord]:
        """Payments of the organization.

        The dashboard reads all of them for the status distribution; the
        matcher only counts the verified ones either way.
        """
        async def query(session: AsyncSession) -> List[PaymentRecord]:
            stmt = select(
                Payment.id,
                Payment.invoice_id,
                Payment.amount_paid,
                Payment.verified,
                Payment.payment_date,
                Payment.mpesa_response_code,
                Payment.mpesa_query_status,
            ).where(Payment.organization_id == org_id)
            if verified_only:
                stmt = stmt.where(Payment.verified.is_(True))
            result = await session.execute(stmt)
            return [PaymentRecord.model_validate(dict(row._mapping)) for row in result.all()]

        return await self._fetch("payments", query, [])

    async def fetch_units(self, org_id: uuid.UUID) -> List[UnitRecord]:
        async def query(session: AsyncSession) -> List[UnitRecord]:
            result = await session.execute(
                select(ApartmentUnit)
                .options(selectinload(ApartmentUnit.leases))
                .where(ApartmentUnit.organization_id == org_id)
            )
            return [UnitRecord.model_validate(unit) for unit in result.scalars().all()]

        return await self._fetch("units", query, [])

    async def fetch_unit_buildings(
        self, org_id: uuid.UUID, unit_ids: Iterable[Optional[str]]
    ) -> Dict[str, BuildingRecord]:
        """Map unit id to its building."""
        ids = _as_uuids(unit_ids)
        if not ids:
            return {}

        async def query(session: AsyncSession) -> Dict[str, BuildingRecord]:
            result = await session.execute(
                select(ApartmentUnit.id, ApartmentBuilding.id, ApartmentBuilding.name)
                .join(ApartmentBuilding, ApartmentUnit.building_id == ApartmentBuilding.id)
                .where(ApartmentUnit.organization_id == org_id, ApartmentUnit.id.in_(ids))
            )
            return {
                str(unit_id): BuildingRecord(id=building_id, name=name)
                for unit_id, building_id, name in result.all()
            }

        return await self._fetch("unit buildings", query, {})

    async def fetch_expenses(self, org_id: uuid.UUID, since: date) -> List[ExpenseRecord]:
        async def query(session: AsyncSession) -> List[ExpenseRecord]:
            result = await session.execute(
                select(
                    Expense.id,
                    Expense.amount,
                    Expense.incurred_at,
                    Expense.created_at,
                    Expense.property_id,
                ).where(
                    Expense.organization_id == org_id,
                    or_(
                        Expense.incurred_at >= since,
                        and_(Expense.incurred_at.is_(None), Expense.created_at >= since),
                    ),
                )
            )
            return [ExpenseRecord.model_validate(dict(row._mapping)) for row in result.all()]

        return await self._fetch("expenses", query, [])

    async def fetch_arrears_view(
        self,
        org_id: uuid.UUID,
        limit: Optional[int] = None,
        min_arrears: float = 0,
        building_id: Optional[uuid.UUID] = None,
    ) -> List[ArrearsRow]:
        """Arrears view rows, largest balance first."""
        async def query(session: AsyncSession) -> List[ArrearsRow]:
            stmt = (
                select(lease_arrears_view)
                .where(lease_arrears_view.c.organization_id == org_id)
                .order_by(lease_arrears_view.c.arrears_amount.desc())
            )
            if min_arrears > 0:
                stmt = stmt.where(lease_arrears_view.c.arrears_amount >= min_arrears)
            if building_id is not None:
                stmt = stmt.where(
                    lease_arrears_view.c.unit_id.in_(
                        select(ApartmentUnit.id).where(ApartmentUnit.building_id == building_id)
                    )
                )
            if limit:
                stmt = stmt.limit(limit)
            result = await session.execute(stmt)
            return [ArrearsRow.model_validate(dict(row._mapping)) for row in result.all()]

        return await self._fetch("arrears view", query, [])

    async def fetch_prepayment_view(self, org_id: uuid.UUID) -> List[PrepaymentViewRow]:
        async def query(session: AsyncSession) -> List[PrepaymentViewRow]:
            result = await session.execute(
                select(lease_prepayment_view).where(
                    lease_prepayment_view.c.organization_id == org_id
                )
            )
            return [PrepaymentViewRow.model_validate(dict(row._mapping)) for row in result.all()]

        return await self._fetch("prepayment view", query, [])

    async def fetch_leases_for_prepayment(self, org_id: uuid.UUID) -> List[LeaseRecord]:
        """Active leases with a paid-until pointer."""
        async def query(session: AsyncSession) -> List[LeaseRecord]:
            result = await session.execute(
                select(
                    Lease.id,
                    Lease.tenant_user_id,
                    Lease.unit_id,
                    ApartmentUnit.unit_number,
                    Lease.status,
                    Lease.monthly_rent,
                    Lease.start_date,
                    Lease.rent_paid_until,
                    Lease.next_rent_due_date,
                )
                .select_from(Lease)
                .outerjoin(ApartmentUnit, Lease.unit_id == ApartmentUnit.id)
                .where(
                    Lease.organization_id == org_id,
                    Lease.status == LeaseStatus.ACTIVE.value,
                    Lease.rent_paid_until.isnot(None),
                )
                .limit(settings.PREPAYMENT_LEASE_LIMIT)
            )
            return [LeaseRecord.model_validate(dict(row._mapping)) for row in result.all()]

        return await self._fetch("prepayment leases", query, [])

    async def fetch_tenant_profiles(
        self, org_id: uuid.UUID, tenant_ids: Iterable[Optional[str]]
    ) -> List[TenantProfile]:
        ids = _as_uuids(set(tenant_ids))
        if not ids:
            return []

        async def query(session: AsyncSession) -> List[TenantProfile]:
            result = await session.execute(
                select(UserProfile.id, UserProfile.full_name, UserProfile.phone_number).where(
                    UserProfile.organization_id == org_id,
                    UserProfile.id.in_(ids),
                )
            )
            return [TenantProfile.model_validate(dict(row._mapping)) for row in result.all()]

        return await self._fetch("tenant profiles", query, [])

    async def fetch_recent_maintenance(
        self, org_id: uuid.UUID, limit: int
    ) -> List[MaintenanceRecord]:
        async def query(session: AsyncSession) -> List[MaintenanceRecord]:
            result = await session.execute(
                select(
                    MaintenanceRequest.id,
                    MaintenanceRequest.title,
                    MaintenanceRequest.status,
                    MaintenanceRequest.priority,
                    MaintenanceRequest.created_at,
                    MaintenanceRequest.updated_at,
                    ApartmentUnit.unit_number,
                    ApartmentBuilding.name.label("building_name"),
                )
                .select_from(MaintenanceRequest)
                .outerjoin(ApartmentUnit, MaintenanceRequest.unit_id == ApartmentUnit.id)
                .outerjoin(ApartmentBuilding, ApartmentUnit.building_id == ApartmentBuilding.id)
                .where(MaintenanceRequest.organization_id == org_id)
                .order_by(MaintenanceRequest.updated_at.desc().nulls_last())
                .limit(limit)
            )
            return [MaintenanceRecord.model_validate(dict(row._mapping)) for row in result.all()]

        return await self._fetch("maintenance requests", query, [])

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    async def load_dashboard(
        self, org_id: uuid.UUID, now: Optional[datetime] = None
    ) -> DashboardSnapshot:
        """Fetch every dashboard source, then the profiles they reference."""
        now = now or datetime.now(timezone.utc)
        since = window_start(now, settings.REPORT_WINDOW_MONTHS)

        (
            buildings,
            tenant_count,
            invoices,
            payments,
            units,
            expenses,
            arrears,
            prepayment_view,
            prepayment_leases,
            maintenance,
        ) = await asyncio.gather(
            self.fetch_buildings(org_id),
            self.count_tenants(org_id),
            self.fetch_invoices(org_id, since),
            self.fetch_payments(org_id),
            self.fetch_units(org_id),
            self.fetch_expenses(org_id, since),
            self.fetch_arrears_view(org_id, limit=settings.ARREARS_DEFAULT_LIMIT),
            self.fetch_prepayment_view(org_id),
            self.fetch_leases_for_prepayment(org_id),
            self.fetch_recent_maintenance(org_id, settings.RECENT_MAINTENANCE_LIMIT),
        )

        tenant_ids = (
            [row.tenant_user_id for row in arrears]
            + [row.tenant_user_id for row in prepayment_view]
            + [lease.tenant_user_id for lease in prepayment_leases]
        )
        profiles = await self.fetch_tenant_profiles(org_id, tenant_ids)

        logger.info(
            f"Loaded dashboard snapshot for {org_id}: {len(invoices)} invoices, "
            f"{len(payments)} payments, {len(units)} units, {len(expenses)} expenses"
        )

        return DashboardSnapshot(
            buildings=buildings,
            tenant_count=tenant_count,
            invoices=invoices,
            payments=payments,
            units=units,
            expenses=expenses,
            arrears=arrears,
            prepayment_view=prepayment_view,
            prepayment_leases=prepayment_leases,
            tenant_profiles=profiles,
            maintenance=maintenance,
        )


# Singleton instance
_snapshot_loader: Optional[SnapshotLoader] = None


def get_snapshot_loader() -> SnapshotLoader:
    """Get or create the singleton snapshot loader."""
    global _snapshot_loader

    if _snapshot_loader is None:
        from app.database import get_session_factory

        _snapshot_loader = SnapshotLoader(get_session_factory())

    return _snapshot_loader
