"""MaintenanceRecord class for completed maintenance interventions."""

import uuid
from enum import Enum
from typing import List, Optional


class MaintenanceType(Enum):
    """Kind of intervention. Values match the stored fleet documents."""

    SCHEDULED = "PROGRAMMATA"
    EXTRAORDINARY = "STRAORDINARIA"

    @property
    def display_name(self) -> str:
        return "Scheduled" if self is MaintenanceType.SCHEDULED else "Extraordinary"


class MaintenanceRecord:
    """A maintenance intervention and the usage reading it was done at."""

    def __init__(
            self,
            date: str,
            usage_value: float,
            type: MaintenanceType = MaintenanceType.SCHEDULED,
            parts_replaced: str = "",
            oil_change: bool = False,
            air_filter: bool = False,
            oil_filter: bool = False,
            fuel_filter: bool = False,
            id: Optional[str] = None,
    ):
        self.id = id or new_id()
        self.date = date
        self.type = type
        self.parts_replaced = parts_replaced or ""
        self.oil_change = bool(oil_change)
        self.air_filter = bool(air_filter)
        self.oil_filter = bool(oil_filter)
        self.fuel_filter = bool(fuel_filter)
        self.usage_value = usage_value

    @property
    def checklist(self) -> List[str]:
        """Names of the checked standard items."""
        items = [
            ("oil change", self.oil_change),
            ("air filter", self.air_filter),
            ("oil filter", self.oil_filter),
            ("fuel filter", self.fuel_filter),
        ]
        return [name for name, done in items if done]


def new_id() -> str:
    """Fresh opaque identifier for vehicles and records."""
    return uuid.uuid4().hex
