"""Tests for occupancy and potential revenue rollups."""
import pytest

from app.schemas.records import BuildingRecord, UnitRecord
from app.services.reconciliation.aggregation import UNASSIGNED
from app.services.reconciliation.occupancy import (
    parse_currency,
    potential_by_building,
    resolve_unit_rent,
    roll_occupancy,
)

BUILDINGS = [BuildingRecord(id="b1", name="Riverside")]


def unit(unit_id, building_id="b1", leases=None, price=None):
    return UnitRecord(
        id=unit_id,
        building_id=building_id,
        unit_number=unit_id.upper(),
        unit_price_category=price,
        leases=leases,
    )


class TestParseCurrency:
    """Price category labels."""

    @pytest.mark.parametrize("label,expected", [
        ("KES 12,000", 12000),
        ("8500", 8500),
        ("Ksh 9,500.50", 9500.5),
        ("", 0),
        (None, 0),
        ("call for price", 0),
        ("1.2.3", 0),
    ])
    def test_labels(self, label, expected):
        assert parse_currency(label) == expected


class TestResolveUnitRent:
    """Rent used for a unit's potential revenue."""

    def test_active_lease_rent_wins(self):
        u = unit("u1", leases=[{"status": "active", "monthly_rent": 15000}], price="KES 12,000")
        assert resolve_unit_rent(u) == 15000

    def test_active_preferred_over_pending(self):
        u = unit("u1", leases=[
            {"status": "pending", "monthly_rent": 9000},
            {"status": "Active", "monthly_rent": 11000},
        ])
        assert resolve_unit_rent(u) == 11000

    def test_zero_rent_falls_back_to_price_category(self):
        u = unit("u1", leases=[{"status": "active", "monthly_rent": 0}], price="KES 12,000")
        assert resolve_unit_rent(u) == 12000

    def test_terminated_lease_is_ignored(self):
        u = unit("u1", leases=[{"status": "terminated", "monthly_rent": 20000}], price="7000")
        assert resolve_unit_rent(u) == 7000


class TestRollOccupancy:
    """Per-building unit rollups."""

    def test_pending_lease_counts_for_potential_not_occupancy(self):
        rows = roll_occupancy(
            [unit("u1", leases=[{"status": "pending", "monthly_rent": 10000}])], BUILDINGS
        )

        assert len(rows) == 1
        assert rows[0].total_units == 1
        assert rows[0].occupied_units == 0
        assert rows[0].occupancy_rate == 0
        assert rows[0].potential_revenue == 10000

    def test_building_rollup(self):
        units = [
            unit("u1", leases=[{"status": "active", "monthly_rent": 10000}]),
            unit("u2", leases=[{"status": "active", "monthly_rent": 12000}]),
            unit("u3", leases=None, price="KES 9,000"),
            unit("u4", leases=[{"status": "ended", "monthly_rent": 10000}]),
        ]
        row = roll_occupancy(units, BUILDINGS)[0]

        assert row.building_id == "b1"
        assert row.property_name == "Riverside"
        assert row.total_units == 4
        assert row.occupied_units == 2
        assert row.occupancy_rate == 0.5
        assert row.potential_revenue == 31000

    def test_occupied_never_exceeds_total(self):
        units = [
            unit("u1", leases=[{"status": "active"}, {"status": "active"}]),
            unit("u2", building_id=None, leases=[{"status": "active"}]),
        ]
        for row in roll_occupancy(units, BUILDINGS):
            assert 0 <= row.occupied_units <= row.total_units
            assert 0 <= row.occupancy_rate <= 1

    def test_units_without_building_are_unassigned(self):
        rows = roll_occupancy([unit("u1", building_id=None)], BUILDINGS)
        assert rows[0].building_id == UNASSIGNED
        assert rows[0].property_name == UNASSIGNED

    def test_unnamed_building_is_labelled_by_its_id(self):
        buildings = [BuildingRecord(id="b2", name=None)]
        rows = roll_occupancy([unit("u1", building_id="b2")], buildings)
        assert rows[0].building_id == "b2"
        assert rows[0].property_name == "b2"

    def test_unknown_building_is_labelled_by_its_id(self):
        rows = roll_occupancy([unit("u1", building_id="b9")], BUILDINGS)
        assert rows[0].property_name == "b9"

    def test_potential_by_building(self):
        rows = roll_occupancy(
            [unit("u1", leases=[{"status": "active", "monthly_rent": 10000}])], BUILDINGS
        )
        assert potential_by_building(rows) == {"b1": 10000}

    def test_no_units(self):
        assert roll_occupancy([], BUILDINGS) == []
