"""
Fleet maintenance tracking.

This package provides the model and rules for tracking fleet maintenance:
- VehicleType: Road (km) or construction (operating hours) assets
- MaintenanceRecord: Completed interventions
- Vehicle: One asset with its intervals and history
- evaluate / DueStatus / Reason: Overdue verdict for a vehicle
- Fleet: The owned collection and its mutations
- YamlFleetStore: Whole-document persistence
- advisor.FleetAdvisor: Gemini-backed advice and photo extraction
"""

from .errors import (
    AdvisoryError,
    DuplicateVehicleError,
    FleetError,
    FleetFileError,
    InvalidVehicleError,
    PersistenceError,
    UsageDecreaseError,
    VehicleNotFoundError,
)
from .vehicle_type import VehicleType
from .reason import Reason
from .maintenance_record import MaintenanceRecord, MaintenanceType
from .vehicle import Vehicle
from .due_status import DueStatus
from .calculations import (
    AVERAGE_MONTH_DAYS,
    EARLY_WARNING_FACTOR,
    calc_due_date,
    compliance_percent,
    months_between,
)
from .evaluator import evaluate
from .fleet import Fleet, FleetStats
from .loader import (
    InMemoryFleetStore,
    YamlFleetStore,
    load_fleet,
    save_fleet,
    vehicle_from_dict,
    vehicle_to_dict,
)

__all__ = [
    "AdvisoryError",
    "DuplicateVehicleError",
    "FleetError",
    "FleetFileError",
    "InvalidVehicleError",
    "PersistenceError",
    "UsageDecreaseError",
    "VehicleNotFoundError",
    "VehicleType",
    "Reason",
    "MaintenanceRecord",
    "MaintenanceType",
    "Vehicle",
    "DueStatus",
    "AVERAGE_MONTH_DAYS",
    "EARLY_WARNING_FACTOR",
    "calc_due_date",
    "compliance_percent",
    "months_between",
    "evaluate",
    "Fleet",
    "FleetStats",
    "InMemoryFleetStore",
    "YamlFleetStore",
    "load_fleet",
    "save_fleet",
    "vehicle_from_dict",
    "vehicle_to_dict",
]
