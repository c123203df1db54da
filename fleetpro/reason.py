"""Reason enum for the single reported overdue cause."""

from enum import Enum


class Reason(Enum):
    """Why a vehicle is overdue. Declared in reporting priority order."""

    NONE = "NONE"
    INSPECTION = "INSPECTION"  # legal inspection
    USAGE = "USAGE"  # km or hours since last service
    TIME = "TIME"  # months since last service

    @property
    def display_name(self) -> str:
        labels = {
            Reason.NONE: "-",
            Reason.INSPECTION: "Legal inspection",
            Reason.USAGE: "Usage",
            Reason.TIME: "Time (months)",
        }
        return labels[self]
