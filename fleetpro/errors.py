"""Exceptions raised by fleet operations."""


class FleetError(Exception):
    """Base class for recoverable fleet errors."""


class VehicleNotFoundError(FleetError, KeyError):
    """A mutation or lookup referenced an unknown vehicle id."""

    def __init__(self, vehicle_id: str):
        super().__init__(vehicle_id)
        self.vehicle_id = vehicle_id

    def __str__(self) -> str:
        return f"Vehicle '{self.vehicle_id}' not found"


class DuplicateVehicleError(FleetError):
    """A vehicle with the same id is already in the fleet."""


class InvalidVehicleError(FleetError, ValueError):
    """Vehicle or maintenance data failed validation."""


class UsageDecreaseError(InvalidVehicleError):
    """A new usage reading is lower than the current counter."""


class PersistenceError(FleetError):
    """The fleet document could not be read or written."""


class FleetFileError(PersistenceError):
    """The fleet document exists but is not valid YAML or fails the schema."""


class AdvisoryError(FleetError):
    """The advisory service call failed or returned something unusable."""
