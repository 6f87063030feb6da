"""
ERP datetime formatting tests.
"""

from datetime import date, datetime, timedelta, timezone

from clinicdesk.core.utils.datetime_utils import (
    day_bounds,
    max_appointment_date,
    parse_erp_datetime,
    to_date_string,
    to_erp_datetime,
)


def test_to_erp_datetime_uses_wall_clock_components():
    assert to_erp_datetime(datetime(2026, 2, 8, 9, 30, 45)) == "2026-02-08T09:30:45Z"


def test_aware_values_are_shifted_to_local_time():
    aware = datetime(2026, 2, 8, 9, 30, 45, tzinfo=timezone.utc)
    assert to_erp_datetime(aware) == aware.astimezone().strftime("%Y-%m-%dT%H:%M:%SZ")


def test_parse_round_trips_as_naive_local():
    parsed = parse_erp_datetime("2026-02-08T09:30:45Z")
    assert parsed == datetime(2026, 2, 8, 9, 30, 45)
    assert parsed.tzinfo is None


def test_parse_accepts_fractional_seconds_and_dates():
    assert parse_erp_datetime("2026-02-08T09:30:45.123Z") == datetime(2026, 2, 8, 9, 30, 45, 123000)
    assert parse_erp_datetime("2026-02-08") == datetime(2026, 2, 8)
    assert parse_erp_datetime("") is None
    assert parse_erp_datetime("not a date") is None


def test_day_bounds_span_one_local_day():
    start, end = day_bounds(date(2026, 2, 8))
    assert start == datetime(2026, 2, 8)
    assert end - start == timedelta(days=1)


def test_to_date_string_and_appointment_window():
    now = datetime(2026, 2, 8, 23, 59)
    assert to_date_string(now) == "2026-02-08"
    assert max_appointment_date(7, now) == date(2026, 2, 15)
