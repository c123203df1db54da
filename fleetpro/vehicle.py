"""Vehicle class - one fleet asset with its maintenance history."""

from typing import List, Optional

from .maintenance_record import MaintenanceRecord, new_id
from .vehicle_type import VehicleType

DEFAULT_INSPECTION_INTERVAL_MONTHS = 24


class Vehicle:
    """Fleet asset, its service intervals and maintenance history.

    ``maintenance_history`` is kept most-recent-first. Callers insert new
    records at position 0; nothing here re-sorts the list.
    """

    def __init__(
        self,
        vehicle_number: str,
        brand: str,
        model: str,
        type: VehicleType,
        current_usage: float,
        maintenance_frequency: float,
        maintenance_interval_months: float,
        registration_date: str,
        purchase_date: str,
        license_plate: Optional[str] = None,
        last_inspection_date: Optional[str] = None,
        inspection_interval_months: Optional[float] = None,
        maintenance_history: Optional[List[MaintenanceRecord]] = None,
        photo: Optional[str] = None,
        id: Optional[str] = None,
    ):
        self.id = id or new_id()
        self.vehicle_number = vehicle_number
        self.brand = brand
        self.model = model
        self.license_plate = license_plate
        self.type = type
        self.current_usage = current_usage
        self.maintenance_frequency = maintenance_frequency
        self.maintenance_interval_months = maintenance_interval_months
        self.last_inspection_date = last_inspection_date
        self.inspection_interval_months = inspection_interval_months
        self.registration_date = registration_date
        self.purchase_date = purchase_date
        self.maintenance_history = maintenance_history or []
        self.photo = photo

    @property
    def name(self) -> str:
        """Human-readable vehicle name."""
        return f"{self.brand} {self.model}".strip()

    @property
    def last_maintenance(self) -> Optional[MaintenanceRecord]:
        """Most recent intervention (head of the history)."""
        if not self.maintenance_history:
            return None
        return self.maintenance_history[0]

    @property
    def last_maintenance_usage(self) -> float:
        """Usage at the last intervention, 0 when never serviced."""
        last = self.last_maintenance
        if last is None or last.usage_value is None:
            return 0
        return last.usage_value

    @property
    def last_maintenance_date(self) -> Optional[str]:
        """Date of the last intervention, falling back to the purchase date."""
        last = self.last_maintenance
        if last is None:
            return self.purchase_date
        return last.date

    @property
    def effective_inspection_interval_months(self) -> Optional[float]:
        """Inspection interval for display (road vehicles default to 24)."""
        if self.type is not VehicleType.ROAD:
            return None
        return self.inspection_interval_months or DEFAULT_INSPECTION_INTERVAL_MONTHS

    def format_usage(self, value: Optional[float] = None) -> str:
        """Usage reading with its unit, e.g. '12,500 km'."""
        if value is None:
            value = self.current_usage
        return f"{value:,.0f} {self.type.unit}"
