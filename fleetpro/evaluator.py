"""Due-status evaluation: usage, calendar and legal-inspection checks."""

from datetime import datetime
from typing import Optional

from .calculations import (
    DateLike,
    calc_due_date,
    calc_due_usage,
    exceeds_threshold,
    is_number,
    months_between,
)
from .due_status import DueStatus
from .reason import Reason
from .vehicle import Vehicle
from .vehicle_type import VehicleType


def evaluate(vehicle: Vehicle, now: Optional[DateLike] = None) -> DueStatus:
    """
    Decide whether a vehicle is overdue and report one reason.

    Three independent checks, each flagged at 90% of its interval:
    - Usage: current usage minus usage at last service vs. maintenance frequency
    - Time: months since last service (or purchase) vs. maintenance interval
    - Inspection: months since last inspection vs. inspection interval
      (road vehicles with both fields set only)

    Reported reason priority is INSPECTION, then USAGE, then TIME. Missing or
    malformed fields make the affected check pass; nothing here raises.
    """
    if now is None:
        now = datetime.now()

    last_usage = vehicle.last_maintenance_usage
    last_date = vehicle.last_maintenance_date

    usage_since = None
    if is_number(vehicle.current_usage) and is_number(last_usage):
        usage_since = vehicle.current_usage - last_usage
    usage_overdue = exceeds_threshold(usage_since, vehicle.maintenance_frequency)

    months_since = months_between(last_date, now)
    time_overdue = exceeds_threshold(months_since, vehicle.maintenance_interval_months)

    months_since_inspection = None
    inspection_overdue = False
    next_inspection = None
    if (
        vehicle.type is VehicleType.ROAD
        and vehicle.last_inspection_date
        and vehicle.inspection_interval_months
    ):
        months_since_inspection = months_between(vehicle.last_inspection_date, now)
        inspection_overdue = exceeds_threshold(
            months_since_inspection, vehicle.inspection_interval_months
        )
        next_inspection = calc_due_date(
            vehicle.last_inspection_date, vehicle.inspection_interval_months
        )

    if inspection_overdue:
        reason = Reason.INSPECTION
    elif usage_overdue:
        reason = Reason.USAGE
    elif time_overdue:
        reason = Reason.TIME
    else:
        reason = Reason.NONE

    return DueStatus(
        overdue=reason is not Reason.NONE,
        reason=reason,
        usage_overdue=usage_overdue,
        time_overdue=time_overdue,
        inspection_overdue=inspection_overdue,
        usage_since_service=usage_since,
        months_since_service=months_since,
        months_since_inspection=months_since_inspection,
        next_service_usage=calc_due_usage(last_usage, vehicle.maintenance_frequency),
        next_service_date=calc_due_date(last_date, vehicle.maintenance_interval_months),
        next_inspection_date=next_inspection,
    )
