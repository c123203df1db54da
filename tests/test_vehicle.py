#!/usr/bin/env python3
"""Tests for Vehicle, MaintenanceRecord and their enums."""

import pytest

from fleetpro import MaintenanceRecord, MaintenanceType, Reason, Vehicle, VehicleType


@pytest.fixture
def road():
    return Vehicle(
        vehicle_number="M01",
        brand="Fiat",
        model="Ducato",
        type=VehicleType.ROAD,
        current_usage=42000,
        maintenance_frequency=30000,
        maintenance_interval_months=12,
        registration_date="2020-03-01",
        purchase_date="2020-02-20",
    )


@pytest.fixture
def excavator():
    return Vehicle(
        vehicle_number="E07",
        brand="Komatsu",
        model="PC210",
        type=VehicleType.CONSTRUCTION,
        current_usage=3200,
        maintenance_frequency=500,
        maintenance_interval_months=6,
        registration_date="2019-05-01",
        purchase_date="2019-05-01",
        last_inspection_date="2024-01-01",
        inspection_interval_months=12,
    )


class TestVehicleDefaults:
    """Tests for Vehicle construction."""

    def test_assigns_id_and_empty_history(self, road):
        assert road.id
        assert road.maintenance_history == []

    def test_ids_are_unique(self, road, excavator):
        assert road.id != excavator.id

    def test_keeps_given_id(self):
        vehicle = Vehicle("M2", "Fiat", "Panda", VehicleType.ROAD, 0, 10000, 12,
                          "2024-01-01", "2024-01-01", id="abc")
        assert vehicle.id == "abc"

    def test_name(self, road):
        assert road.name == "Fiat Ducato"


class TestLastMaintenance:
    """Tests for the last-maintenance properties."""

    def test_without_history_falls_back_to_purchase(self, road):
        assert road.last_maintenance is None
        assert road.last_maintenance_usage == 0
        assert road.last_maintenance_date == "2020-02-20"

    def test_head_of_history_wins(self, road):
        newest = MaintenanceRecord(date="2024-06-01", usage_value=40000)
        older = MaintenanceRecord(date="2024-12-01", usage_value=41000)
        road.maintenance_history = [newest, older]
        assert road.last_maintenance is newest
        assert road.last_maintenance_usage == 40000
        assert road.last_maintenance_date == "2024-06-01"


class TestInspectionInterval:
    """Tests for the display inspection interval."""

    def test_road_defaults_to_24_months(self, road):
        assert road.inspection_interval_months is None
        assert road.effective_inspection_interval_months == 24

    def test_road_keeps_explicit_interval(self, road):
        road.inspection_interval_months = 12
        assert road.effective_inspection_interval_months == 12

    def test_construction_has_none(self, excavator):
        assert excavator.effective_inspection_interval_months is None


class TestUnits:
    """Tests for usage units."""

    def test_units(self):
        assert VehicleType.ROAD.unit == "km"
        assert VehicleType.CONSTRUCTION.unit == "h"
        assert VehicleType.CONSTRUCTION.unit_label == "operating hours"

    def test_format_usage(self, road, excavator):
        assert road.format_usage() == "42,000 km"
        assert excavator.format_usage(3250.4) == "3,250 h"


class TestMaintenanceRecord:
    """Tests for MaintenanceRecord."""

    def test_defaults(self):
        record = MaintenanceRecord(date="2025-01-15", usage_value=1200)
        assert record.id
        assert record.type == MaintenanceType.SCHEDULED
        assert record.parts_replaced == ""
        assert record.checklist == []

    def test_checklist(self):
        record = MaintenanceRecord(
            date="2025-01-15", usage_value=1200, oil_change=True, fuel_filter=True
        )
        assert record.checklist == ["oil change", "fuel filter"]

    def test_stored_type_values(self):
        assert MaintenanceType("PROGRAMMATA") is MaintenanceType.SCHEDULED
        assert MaintenanceType("STRAORDINARIA") is MaintenanceType.EXTRAORDINARY


class TestReason:
    """Tests for Reason enum."""

    def test_display_names(self):
        assert Reason.INSPECTION.display_name == "Legal inspection"
        assert Reason.NONE.display_name == "-"
