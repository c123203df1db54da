"""YAML loading and saving of the whole fleet document."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .errors import FleetFileError, InvalidVehicleError, PersistenceError
from .maintenance_record import MaintenanceRecord, MaintenanceType
from .schema import normalize, validate_document
from .vehicle import Vehicle
from .vehicle_type import VehicleType

logger = logging.getLogger(__name__)


def _parse_object(dct: Dict[str, Any]) -> Union[Vehicle, MaintenanceRecord, dict]:
    """Parse dictionary into appropriate object type."""
    # Vehicle (history already parsed, inner objects are hooked first)
    if "vehicleNumber" in dct and "maintenanceFrequency" in dct:
        return Vehicle(
            vehicle_number=dct["vehicleNumber"],
            brand=dct["brand"],
            model=dct["model"],
            type=VehicleType(dct["type"]),
            current_usage=dct["currentUsage"],
            maintenance_frequency=dct["maintenanceFrequency"],
            maintenance_interval_months=dct["maintenanceIntervalMonths"],
            registration_date=dct["registrationDate"],
            purchase_date=dct["purchaseDate"],
            license_plate=dct.get("licensePlate"),
            last_inspection_date=dct.get("lastInspectionDate"),
            inspection_interval_months=dct.get("inspectionIntervalMonths"),
            maintenance_history=dct.get("maintenanceHistory"),
            photo=dct.get("photo"),
            id=dct.get("id"),
        )
    # Maintenance record
    elif "usageValue" in dct and "date" in dct:
        return MaintenanceRecord(
            date=dct["date"],
            usage_value=dct["usageValue"],
            type=MaintenanceType(dct.get("type") or MaintenanceType.SCHEDULED.value),
            parts_replaced=dct.get("partsReplaced", ""),
            oil_change=dct.get("oilChange", False),
            air_filter=dct.get("airFilter", False),
            oil_filter=dct.get("oilFilter", False),
            fuel_filter=dct.get("fuelFilter", False),
            id=dct.get("id"),
        )
    else:
        # Top-level document and unknown structures stay as dicts
        return dct


def record_to_dict(record: MaintenanceRecord) -> Dict[str, Any]:
    """Serialize a MaintenanceRecord to the document format (camelCase keys)."""
    return {
        "id": record.id,
        "date": record.date,
        "type": record.type.value,
        "partsReplaced": record.parts_replaced,
        "oilChange": record.oil_change,
        "airFilter": record.air_filter,
        "oilFilter": record.oil_filter,
        "fuelFilter": record.fuel_filter,
        "usageValue": record.usage_value,
    }


def vehicle_to_dict(vehicle: Vehicle) -> Dict[str, Any]:
    """Serialize a Vehicle to the document format, omitting unset optionals."""
    d: Dict[str, Any] = {
        "id": vehicle.id,
        "vehicleNumber": vehicle.vehicle_number,
        "brand": vehicle.brand,
        "model": vehicle.model,
        "type": vehicle.type.value,
        "currentUsage": vehicle.current_usage,
        "maintenanceFrequency": vehicle.maintenance_frequency,
        "maintenanceIntervalMonths": vehicle.maintenance_interval_months,
        "registrationDate": vehicle.registration_date,
        "purchaseDate": vehicle.purchase_date,
    }
    if vehicle.license_plate is not None:
        d["licensePlate"] = vehicle.license_plate
    if vehicle.last_inspection_date is not None:
        d["lastInspectionDate"] = vehicle.last_inspection_date
    if vehicle.inspection_interval_months is not None:
        d["inspectionIntervalMonths"] = vehicle.inspection_interval_months
    if vehicle.photo is not None:
        d["photo"] = vehicle.photo
    d["maintenanceHistory"] = [record_to_dict(r) for r in vehicle.maintenance_history]
    return d


def fleet_to_document(vehicles: List[Vehicle]) -> Dict[str, Any]:
    """Build the whole fleet document."""
    return {"vehicles": [vehicle_to_dict(v) for v in vehicles]}


def _hook(data: Any) -> Any:
    return json.loads(json.dumps(data, default=str), object_hook=_parse_object)


def vehicle_from_dict(data: Dict[str, Any]) -> Vehicle:
    """Build a Vehicle from a wire dict, raising InvalidVehicleError if malformed."""
    try:
        vehicle = _hook(data)
    except (KeyError, ValueError, TypeError) as e:
        raise InvalidVehicleError(f"Malformed vehicle data: {e}") from e
    if not isinstance(vehicle, Vehicle):
        raise InvalidVehicleError("Malformed vehicle data: missing required fields")
    return vehicle


def record_from_dict(data: Dict[str, Any]) -> MaintenanceRecord:
    """Build a MaintenanceRecord from a wire dict."""
    try:
        record = _hook(data)
    except (KeyError, ValueError, TypeError) as e:
        raise InvalidVehicleError(f"Malformed maintenance record: {e}") from e
    if not isinstance(record, MaintenanceRecord):
        raise InvalidVehicleError("Malformed maintenance record: date and usageValue are required")
    return record


def load_fleet(filename: Union[str, Path]) -> Optional[List[Vehicle]]:
    """
    Load all vehicles from a fleet YAML file.

    Returns None when the file does not exist. Raises FleetFileError when the
    file is not valid YAML or does not match the schema.
    """
    path = Path(filename)
    if not path.exists():
        return None
    try:
        with open(path, "rb") as fp:
            raw = yaml.load(fp, Loader=yaml.SafeLoader)
    except yaml.YAMLError as e:
        raise FleetFileError(f"{path}: YAML parse error: {e}") from e
    except OSError as e:
        raise PersistenceError(f"{path}: {e}") from e

    if raw is None:
        return []
    data = normalize(raw)
    errors = validate_document(data)
    if errors:
        raise FleetFileError(f"{path}: " + "; ".join(e.strip() for e in errors))

    document = json.loads(json.dumps(data), object_hook=_parse_object)
    return document["vehicles"]


def save_fleet(filename: Union[str, Path], vehicles: List[Vehicle]) -> None:
    """
    Write the whole fleet document.

    Writes to a temporary file beside the target and renames it over the
    original, so a failed write leaves the previous document intact.
    """
    path = Path(filename)
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    except OSError as e:
        raise PersistenceError(f"{path}: {e}") from e
    try:
        with os.fdopen(fd, "w") as fp:
            yaml.dump(
                fleet_to_document(vehicles),
                fp,
                default_flow_style=False,
                allow_unicode=True,
                sort_keys=False,
                width=120,
            )
        os.replace(tmp_name, path)
    except OSError as e:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise PersistenceError(f"{path}: {e}") from e


class YamlFleetStore:
    """Persistence provider backed by a single YAML file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[List[Vehicle]]:
        return load_fleet(self.path)

    def save(self, vehicles: List[Vehicle]) -> None:
        save_fleet(self.path, vehicles)
        logger.debug("Saved %d vehicles to %s", len(vehicles), self.path)


class InMemoryFleetStore:
    """Persistence provider that keeps the serialized document in memory."""

    def __init__(self, vehicles: Optional[List[Vehicle]] = None):
        self.document: Optional[Dict[str, Any]] = None
        self.saves = 0
        if vehicles is not None:
            self.document = fleet_to_document(vehicles)

    def load(self) -> Optional[List[Vehicle]]:
        if self.document is None:
            return None
        return json.loads(json.dumps(self.document), object_hook=_parse_object)["vehicles"]

    def save(self, vehicles: List[Vehicle]) -> None:
        self.document = fleet_to_document(vehicles)
        self.saves += 1
