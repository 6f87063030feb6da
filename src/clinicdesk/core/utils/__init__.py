"""
Utility functions for ClinicDesk application.

This module provides the filter-expression and date helpers shared by every
component that talks to the ERP record store.
"""

from .datetime_utils import (
    day_bounds,
    max_appointment_date,
    parse_erp_datetime,
    to_date_string,
    to_erp_datetime,
)
from .odata import (
    and_,
    contains,
    eq,
    escape_odata_string,
    in_list,
    parse_numeric_suffix,
)

__all__ = [
    # Datetime utilities
    "to_erp_datetime",
    "to_date_string",
    "parse_erp_datetime",
    "day_bounds",
    "max_appointment_date",
    # Filter utilities
    "escape_odata_string",
    "eq",
    "contains",
    "in_list",
    "and_",
    "parse_numeric_suffix",
]
