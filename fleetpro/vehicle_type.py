"""VehicleType enum for road and construction assets."""

from enum import Enum


class VehicleType(Enum):
    """Kind of asset. Decides the usage unit and whether inspections apply."""

    ROAD = "ROAD"  # usage in kilometres, legal inspection applies
    CONSTRUCTION = "CONSTRUCTION"  # usage in operating hours

    @property
    def unit(self) -> str:
        """Short usage unit label."""
        return "km" if self is VehicleType.ROAD else "h"

    @property
    def unit_label(self) -> str:
        return "kilometres" if self is VehicleType.ROAD else "operating hours"

    @property
    def display_name(self) -> str:
        return "Road" if self is VehicleType.ROAD else "Construction"
