"""DueStatus dataclass for an evaluated vehicle."""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from .reason import Reason


@dataclass
class DueStatus:
    """Verdict for one vehicle at a reference time."""

    overdue: bool
    reason: Reason
    usage_overdue: bool = False
    time_overdue: bool = False
    inspection_overdue: bool = False
    usage_since_service: Optional[float] = None
    months_since_service: Optional[float] = None
    months_since_inspection: Optional[float] = None
    next_service_usage: Optional[float] = None
    next_service_date: Optional[date] = None
    next_inspection_date: Optional[date] = None

    @property
    def is_ok(self) -> bool:
        return not self.overdue
