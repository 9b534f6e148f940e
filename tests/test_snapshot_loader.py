"""Tests for the dashboard snapshot loader."""
import logging
import uuid
from datetime import date, datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from app.schemas.records import ArrearsRow, LeaseRecord, PrepaymentViewRow, TenantProfile
from app.services.snapshot_loader import SnapshotLoader, _as_uuids

ORG_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


class FakeResult:
    """Stands in for a SQLAlchemy result."""

    def __init__(self, rows=None, scalar=None, objects=None):
        self._rows = rows or []
        self._scalar = scalar
        self._objects = objects or []

    def all(self):
        return self._rows

    def scalar(self):
        return self._scalar

    def scalars(self):
        return MagicMock(all=MagicMock(return_value=self._objects))


class FakeSession:
    """Async context-managed session returning a fixed result."""

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.statements = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def execute(self, statement):
        self.statements.append(statement)
        if self.error is not None:
            raise self.error
        return self.result


def row(**values):
    return SimpleNamespace(_mapping=values)


def loader_with(session: FakeSession) -> SnapshotLoader:
    return SnapshotLoader(MagicMock(return_value=session))


# =============================================================================
# INDIVIDUAL SOURCES
# =============================================================================

class TestFetches:
    """Row conversion and failure handling of single sources."""

    @pytest.mark.asyncio
    async def test_fetch_buildings(self):
        building_id = uuid.uuid4()
        session = FakeSession(FakeResult(rows=[row(id=building_id, name="Riverside")]))

        buildings = await loader_with(session).fetch_buildings(ORG_ID)

        assert len(buildings) == 1
        assert buildings[0].id == str(building_id)
        assert buildings[0].name == "Riverside"

    @pytest.mark.asyncio
    async def test_fetch_invoices_coerces_fields(self):
        session = FakeSession(FakeResult(rows=[
            row(
                id=uuid.uuid4(),
                lease_id=None,
                amount="1000.00",
                is_paid=None,
                status_text="unpaid",
                due_date=date(2024, 3, 5),
                period_start=None,
                invoice_type="rent",
                total_paid=None,
                building_id=None,
                building_name=None,
            )
        ]))

        invoices = await loader_with(session).fetch_invoices(ORG_ID, date(2023, 4, 1))

        assert invoices[0].amount == 1000
        assert invoices[0].is_paid is False
        assert invoices[0].total_paid == 0

    @pytest.mark.asyncio
    async def test_fetch_units_with_leases(self):
        unit = SimpleNamespace(
            id=uuid.uuid4(),
            building_id=uuid.uuid4(),
            unit_number="A1",
            unit_price_category="KES 12,000",
            leases=[SimpleNamespace(status="active", monthly_rent=None)],
        )
        session = FakeSession(FakeResult(objects=[unit]))

        units = await loader_with(session).fetch_units(ORG_ID)

        assert units[0].unit_number == "A1"
        assert units[0].leases[0].status == "active"
        assert units[0].leases[0].monthly_rent == 0

    @pytest.mark.asyncio
    async def test_count_tenants(self):
        session = FakeSession(FakeResult(scalar=7))
        assert await loader_with(session).count_tenants(ORG_ID) == 7

    @pytest.mark.asyncio
    async def test_verified_only_filters_payments(self):
        session = FakeSession(FakeResult(rows=[]))

        await loader_with(session).fetch_payments(ORG_ID, verified_only=True)

        assert "payments.verified IS" in str(session.statements[0])

    @pytest.mark.asyncio
    async def test_failed_fetch_is_empty_and_logged(self, caplog):
        session = FakeSession(error=OperationalError("SELECT", {}, Exception("connection refused")))

        with caplog.at_level(logging.WARNING):
            invoices = await loader_with(session).fetch_invoices(ORG_ID, date(2023, 4, 1))
            count = await loader_with(session).count_tenants(ORG_ID)

        assert invoices == []
        assert count == 0
        assert "Failed to load invoices" in caplog.text
        assert "Failed to load tenant count" in caplog.text

    @pytest.mark.asyncio
    async def test_tenant_profiles_skip_query_without_ids(self):
        factory = MagicMock()
        loader = SnapshotLoader(factory)

        assert await loader.fetch_tenant_profiles(ORG_ID, [None, ""]) == []
        factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_unit_buildings(self):
        unit_id, building_id = uuid.uuid4(), uuid.uuid4()
        session = FakeSession(FakeResult(rows=[(unit_id, building_id, "Riverside")]))

        mapping = await loader_with(session).fetch_unit_buildings(ORG_ID, [str(unit_id)])

        assert mapping[str(unit_id)].id == str(building_id)
        assert mapping[str(unit_id)].name == "Riverside"

    def test_as_uuids_skips_malformed(self):
        good = uuid.uuid4()
        assert _as_uuids([str(good), None, "not-a-uuid", ""]) == [good]


# =============================================================================
# SNAPSHOT
# =============================================================================

class TestLoadDashboard:
    """Fan-out of every source into one snapshot."""

    @pytest.mark.asyncio
    async def test_profiles_loaded_for_referenced_tenants(self):
        loader = SnapshotLoader(MagicMock())
        empty = AsyncMock(return_value=[])
        profiles = AsyncMock(return_value=[TenantProfile(id="t-1", full_name="Jane Wanjiru")])

        with patch.multiple(
            loader,
            fetch_buildings=empty,
            count_tenants=AsyncMock(return_value=4),
            fetch_invoices=empty,
            fetch_payments=empty,
            fetch_units=empty,
            fetch_expenses=empty,
            fetch_arrears_view=AsyncMock(return_value=[ArrearsRow(lease_id="l1", tenant_user_id="t-1")]),
            fetch_prepayment_view=AsyncMock(return_value=[PrepaymentViewRow(lease_id="l2", tenant_user_id="t-2")]),
            fetch_leases_for_prepayment=AsyncMock(return_value=[LeaseRecord(id="l3", tenant_user_id="t-3")]),
            fetch_recent_maintenance=empty,
            fetch_tenant_profiles=profiles,
        ):
            snapshot = await loader.load_dashboard(
                ORG_ID, now=datetime(2024, 3, 15, tzinfo=timezone.utc)
            )

        assert snapshot.tenant_count == 4
        assert snapshot.tenant_profiles[0].full_name == "Jane Wanjiru"
        requested = profiles.call_args.args[1]
        assert set(requested) == {"t-1", "t-2", "t-3"}

    @pytest.mark.asyncio
    async def test_invoice_window_starts_eleven_months_back(self):
        loader = SnapshotLoader(MagicMock())
        empty = AsyncMock(return_value=[])
        fetch_invoices = AsyncMock(return_value=[])

        with patch.multiple(
            loader,
            fetch_buildings=empty,
            count_tenants=AsyncMock(return_value=0),
            fetch_invoices=fetch_invoices,
            fetch_payments=empty,
            fetch_units=empty,
            fetch_expenses=empty,
            fetch_arrears_view=empty,
            fetch_prepayment_view=empty,
            fetch_leases_for_prepayment=empty,
            fetch_recent_maintenance=empty,
            fetch_tenant_profiles=empty,
        ):
            await loader.load_dashboard(ORG_ID, now=datetime(2024, 3, 15, tzinfo=timezone.utc))

        fetch_invoices.assert_awaited_once_with(ORG_ID, date(2023, 4, 1))
