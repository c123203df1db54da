"""Fleet aggregate - owns the vehicles and applies mutations."""

import copy
import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

from .calculations import DateLike, compliance_percent, is_number, to_datetime
from .due_status import DueStatus
from .errors import (
    DuplicateVehicleError,
    InvalidVehicleError,
    PersistenceError,
    UsageDecreaseError,
    VehicleNotFoundError,
)
from .evaluator import evaluate
from .maintenance_record import MaintenanceRecord, MaintenanceType, new_id
from .vehicle import Vehicle
from .vehicle_type import VehicleType

logger = logging.getLogger(__name__)


class FleetStore(Protocol):
    """Persistence provider: whole-fleet load and save."""

    def load(self) -> Optional[List[Vehicle]]:
        ...

    def save(self, vehicles: List[Vehicle]) -> None:
        ...


@dataclass
class FleetStats:
    """Aggregate dashboard figures."""

    total: int
    road: int
    construction: int
    overdue: int
    compliance_percent: float


def _require_number(value, field: str, positive: bool = False) -> None:
    if not is_number(value):
        raise InvalidVehicleError(f"{field} must be a finite number")
    if positive and value <= 0:
        raise InvalidVehicleError(f"{field} must be greater than zero")
    if value < 0:
        raise InvalidVehicleError(f"{field} must not be negative")


def _require_text(value, field: str, optional: bool = False) -> None:
    if optional and value is None:
        return
    if not isinstance(value, str):
        raise InvalidVehicleError(f"{field} must be text")


def _require_date(value, field: str, optional: bool = False) -> None:
    if optional and value is None:
        return
    if not isinstance(value, str) or to_datetime(value) is None:
        raise InvalidVehicleError(f"{field} must be an ISO date (YYYY-MM-DD)")


def validate_record(record: MaintenanceRecord) -> None:
    """Reject maintenance records that must not be persisted."""
    if not isinstance(record, MaintenanceRecord):
        raise InvalidVehicleError("maintenance history must contain maintenance records")
    if not isinstance(record.type, MaintenanceType):
        raise InvalidVehicleError(f"Unknown maintenance type: {record.type!r}")
    _require_text(record.id, "id")
    _require_date(record.date, "date")
    _require_number(record.usage_value, "usageValue")
    _require_text(record.parts_replaced, "partsReplaced")


def validate_vehicle(vehicle: Vehicle) -> None:
    """Reject vehicles that must not be persisted (or could not be loaded back)."""
    if not isinstance(vehicle.type, VehicleType):
        raise InvalidVehicleError(f"Unknown vehicle type: {vehicle.type!r}")
    _require_text(vehicle.id, "id")
    _require_text(vehicle.vehicle_number, "vehicleNumber")
    _require_text(vehicle.brand, "brand")
    _require_text(vehicle.model, "model")
    _require_text(vehicle.license_plate, "licensePlate", optional=True)
    _require_text(vehicle.photo, "photo", optional=True)
    _require_number(vehicle.current_usage, "currentUsage")
    _require_number(vehicle.maintenance_frequency, "maintenanceFrequency", positive=True)
    _require_number(
        vehicle.maintenance_interval_months, "maintenanceIntervalMonths", positive=True
    )
    if vehicle.inspection_interval_months is not None:
        _require_number(
            vehicle.inspection_interval_months, "inspectionIntervalMonths", positive=True
        )
    _require_date(vehicle.purchase_date, "purchaseDate")
    _require_date(vehicle.registration_date, "registrationDate")
    _require_date(vehicle.last_inspection_date, "lastInspectionDate", optional=True)
    if not isinstance(vehicle.maintenance_history, list):
        raise InvalidVehicleError("maintenanceHistory must be a list")
    for record in vehicle.maintenance_history:
        validate_record(record)


class Fleet:
    """
    The owned collection of vehicles, keyed by id.

    Mutations are serialized by a single writer lock. Each one builds a new
    vehicle map, swaps it in, and then saves the full fleet through the store
    with the lock released. A failed save restores the previous map and raises
    PersistenceError. If a later mutation has already committed by then, the
    failed change is not rolled back: it stays in memory and is written by the
    later save, but PersistenceError is still raised to its caller.

    Readers get deep copies; no outside code holds the owned instances.
    """

    def __init__(self, store: Optional[FleetStore] = None, vehicles: Optional[List[Vehicle]] = None):
        self._store = store
        self._lock = threading.Lock()
        self._save_lock = threading.Lock()
        self._vehicles: Dict[str, Vehicle] = {}
        self._revision = 0
        self._saved_revision = 0
        for vehicle in vehicles or []:
            self._vehicles[vehicle.id] = copy.deepcopy(vehicle)

    @classmethod
    def load(cls, store: FleetStore) -> "Fleet":
        """Hydrate a fleet from the store. An absent document is an empty fleet."""
        vehicles = store.load()
        fleet = cls(store, vehicles)
        logger.info("Loaded fleet with %d vehicles", len(fleet))
        return fleet

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._vehicles)

    def __contains__(self, vehicle_id: str) -> bool:
        return vehicle_id in self._vehicles

    def get(self, vehicle_id: str) -> Vehicle:
        """Copy of one vehicle. Raises VehicleNotFoundError."""
        vehicle = self._vehicles.get(vehicle_id)
        if vehicle is None:
            raise VehicleNotFoundError(vehicle_id)
        return copy.deepcopy(vehicle)

    def vehicles(self) -> List[Vehicle]:
        """Snapshot copies of all vehicles."""
        return copy.deepcopy(list(self._vehicles.values()))

    def statuses(self, now: Optional[DateLike] = None) -> List[tuple]:
        """(vehicle, DueStatus) pairs for the whole fleet."""
        return [(v, evaluate(v, now)) for v in self.vehicles()]

    def overdue(self, now: Optional[DateLike] = None) -> List[tuple]:
        """(vehicle, DueStatus) pairs for overdue vehicles only."""
        return [(v, s) for v, s in self.statuses(now) if s.overdue]

    def stats(self, now: Optional[DateLike] = None) -> FleetStats:
        """Totals by type, overdue count and compliance percentage."""
        vehicles = list(self._vehicles.values())
        total = len(vehicles)
        overdue = sum(1 for v in vehicles if evaluate(v, now).overdue)
        return FleetStats(
            total=total,
            road=sum(1 for v in vehicles if v.type is VehicleType.ROAD),
            construction=sum(1 for v in vehicles if v.type is VehicleType.CONSTRUCTION),
            overdue=overdue,
            compliance_percent=compliance_percent(total, overdue),
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_vehicle(self, vehicle: Vehicle) -> Vehicle:
        """Insert a new vehicle, assigning an id and empty history if absent."""
        vehicle = copy.deepcopy(vehicle)
        if not vehicle.id:
            vehicle.id = new_id()
        if vehicle.maintenance_history is None:
            vehicle.maintenance_history = []
        validate_vehicle(vehicle)

        def change(vehicles: Dict[str, Vehicle]) -> None:
            if vehicle.id in vehicles:
                raise DuplicateVehicleError(f"Vehicle '{vehicle.id}' already exists")
            vehicles[vehicle.id] = vehicle

        self._mutate(change)
        logger.info("Added vehicle %s (%s)", vehicle.id, vehicle.name)
        return copy.deepcopy(vehicle)

    def update_vehicle(self, vehicle: Vehicle) -> Vehicle:
        """Replace a stored vehicle wholesale. The id must already exist."""
        vehicle = copy.deepcopy(vehicle)
        if vehicle.maintenance_history is None:
            vehicle.maintenance_history = []
        validate_vehicle(vehicle)

        def change(vehicles: Dict[str, Vehicle]) -> None:
            if vehicle.id not in vehicles:
                raise VehicleNotFoundError(vehicle.id)
            vehicles[vehicle.id] = vehicle

        self._mutate(change)
        logger.info("Updated vehicle %s", vehicle.id)
        return copy.deepcopy(vehicle)

    def delete_vehicle(self, vehicle_id: str) -> None:
        """Remove a vehicle and its entire history. Irreversible."""

        def change(vehicles: Dict[str, Vehicle]) -> None:
            if vehicle_id not in vehicles:
                raise VehicleNotFoundError(vehicle_id)
            del vehicles[vehicle_id]

        self._mutate(change)
        logger.info("Deleted vehicle %s", vehicle_id)

    def record_usage_update(
        self, vehicle_id: str, new_value: float, allow_decrease: bool = False
    ) -> Vehicle:
        """
        Set the current usage counter without touching history.

        A reading below the current counter is rejected unless allow_decrease
        is set (odometer or hour-meter replacement).
        """
        _require_number(new_value, "currentUsage")
        updated = {}

        def change(vehicles: Dict[str, Vehicle]) -> None:
            vehicle = vehicles.get(vehicle_id)
            if vehicle is None:
                raise VehicleNotFoundError(vehicle_id)
            self._check_decrease(vehicle, new_value, allow_decrease)
            vehicle.current_usage = new_value
            updated["vehicle"] = vehicle

        self._mutate(change)
        logger.info("Usage of vehicle %s set to %s", vehicle_id, new_value)
        return copy.deepcopy(updated["vehicle"])

    def apply_maintenance_record(
        self, vehicle_id: str, record: MaintenanceRecord, allow_decrease: bool = False
    ) -> Vehicle:
        """
        Prepend a record to the vehicle's history and adopt its usage reading.

        Raises VehicleNotFoundError for an unknown vehicle id.
        """
        record = copy.deepcopy(record)
        if not record.id:
            record.id = new_id()
        validate_record(record)
        updated = {}

        def change(vehicles: Dict[str, Vehicle]) -> None:
            vehicle = vehicles.get(vehicle_id)
            if vehicle is None:
                raise VehicleNotFoundError(vehicle_id)
            self._check_decrease(vehicle, record.usage_value, allow_decrease)
            vehicle.maintenance_history.insert(0, record)
            vehicle.current_usage = record.usage_value
            updated["vehicle"] = vehicle

        self._mutate(change)
        logger.info(
            "Recorded %s maintenance on vehicle %s at %s",
            record.type.display_name.lower(),
            vehicle_id,
            record.usage_value,
        )
        return copy.deepcopy(updated["vehicle"])

    @staticmethod
    def _check_decrease(vehicle: Vehicle, new_value: float, allow_decrease: bool) -> None:
        if not allow_decrease and new_value < vehicle.current_usage:
            logger.warning(
                "Rejected usage decrease on vehicle %s: %s -> %s",
                vehicle.id,
                vehicle.current_usage,
                new_value,
            )
            raise UsageDecreaseError(
                f"New reading {new_value:,.0f} is below the current "
                f"{vehicle.current_usage:,.0f} {vehicle.type.unit}"
            )

    def _mutate(self, change) -> None:
        """Apply change to a copy of the map, commit it, then persist."""
        with self._lock:
            previous = self._vehicles
            working = copy.deepcopy(previous)
            change(working)
            self._vehicles = working
            self._revision += 1
            revision = self._revision
            snapshot = copy.deepcopy(list(working.values()))

        if self._store is None:
            return
        try:
            self._persist(snapshot, revision)
        except Exception as e:
            with self._lock:
                if self._revision == revision:
                    self._vehicles = previous
                    self._revision += 1
            logger.exception("Failed to save fleet")
            if isinstance(e, PersistenceError):
                raise
            raise PersistenceError(str(e)) from e

    def _persist(self, snapshot: List[Vehicle], revision: int) -> None:
        with self._save_lock:
            # A later mutation may already have written a newer snapshot
            if revision < self._saved_revision:
                return
            self._store.save(snapshot)
            self._saved_revision = revision
