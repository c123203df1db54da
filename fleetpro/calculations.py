"""Helper functions for due-status calculations."""

import math
from datetime import date, datetime, timezone
from typing import Optional, Union

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

# Every interval is flagged once 90% of it has been consumed.
EARLY_WARNING_FACTOR = 0.9
AVERAGE_MONTH_DAYS = 30.44

DateLike = Union[str, date, datetime]


def to_datetime(value: Optional[DateLike]) -> Optional[datetime]:
    """
    Normalize an ISO string, date or datetime to a naive datetime.

    Aware values are converted to UTC first. Returns None for missing or
    unparseable input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        result = value
    elif isinstance(value, date):
        result = datetime(value.year, value.month, value.day)
    else:
        try:
            result = date_parser.isoparse(str(value))
        except (ValueError, OverflowError):
            return None
    if result.tzinfo is not None:
        result = result.astimezone(timezone.utc).replace(tzinfo=None)
    return result


def months_between(start: Optional[DateLike], end: DateLike) -> Optional[float]:
    """Elapsed months using the average month length (days / 30.44)."""
    start_dt = to_datetime(start)
    end_dt = to_datetime(end)
    if start_dt is None or end_dt is None:
        return None
    days = (end_dt - start_dt).total_seconds() / 86400
    return days / AVERAGE_MONTH_DAYS


def is_number(value) -> bool:
    """True for a finite int or float (bools excluded)."""
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def exceeds_threshold(elapsed: Optional[float], interval: Optional[float]) -> bool:
    """True when elapsed is strictly past the early-warning share of interval."""
    if not is_number(elapsed) or not is_number(interval) or interval <= 0:
        return False
    return elapsed > interval * EARLY_WARNING_FACTOR


def calc_due_date(
    last_date: Optional[DateLike], interval_months: Optional[float]
) -> Optional[date]:
    """Calendar due date for display: last + interval months."""
    last = to_datetime(last_date)
    if not is_number(interval_months) or interval_months <= 0 or last is None:
        return None
    months = int(interval_months)
    days = int((interval_months - months) * 30)
    try:
        return (last + relativedelta(months=months, days=days)).date()
    except (ValueError, OverflowError):
        return None


def calc_due_usage(last_usage: float, frequency: Optional[float]) -> Optional[float]:
    """Usage reading at which the next service is due (hard limit)."""
    if not is_number(frequency) or frequency <= 0:
        return None
    return (last_usage if is_number(last_usage) else 0) + frequency


def compliance_percent(total: int, overdue: int) -> float:
    """Share of compliant vehicles, 0 for an empty fleet."""
    if total <= 0:
        return 0
    return (total - overdue) / total * 100
