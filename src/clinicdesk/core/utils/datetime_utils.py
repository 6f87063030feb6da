"""
Date and time helpers for the ERP wire format.

The backend documents its ``YYYY-MM-DDTHH:MM:SSZ`` literals as local wall-clock
time despite the trailing ``Z``, so these helpers never convert to or from UTC.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Tuple, Union

ERP_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
ERP_DATE_FORMAT = "%Y-%m-%d"


def _as_local(value: datetime) -> datetime:
    if value.tzinfo is not None:
        # Aware values are shifted to local wall-clock first
        return value.astimezone().replace(tzinfo=None)
    return value


def to_erp_datetime(value: datetime) -> str:
    """Format using local time components, e.g. ``2026-02-08T09:30:45Z``."""
    return _as_local(value).strftime(ERP_DATETIME_FORMAT)


def to_date_string(value: Union[date, datetime]) -> str:
    """Format as ``YYYY-MM-DD`` in local time."""
    if isinstance(value, datetime):
        value = _as_local(value)
    return value.strftime(ERP_DATE_FORMAT)


def parse_erp_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ERP literal back into a naive local datetime."""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1]
    # Some endpoints return fractional seconds or an explicit offset
    for fmt in ("%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M:%S.%f", "%Y-%m-%d"):
        try:
            return datetime.strptime(text[:26], fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text).replace(tzinfo=None)
    except ValueError:
        return None


def day_bounds(day: Union[date, datetime, None] = None) -> Tuple[datetime, datetime]:
    """Local midnight of ``day`` and of the following day."""
    if day is None:
        day = datetime.now()
    if isinstance(day, datetime):
        day = _as_local(day).date()
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1)


def max_appointment_date(window_days: int = 7, now: Optional[datetime] = None) -> date:
    """Last day on which an appointment may be booked."""
    base = now or datetime.now()
    return (base + timedelta(days=window_days)).date()
