"""
Filter-expression helpers for the ERP's OData-style query dialect.

Every piece of free text interpolated into a ``$filter`` must pass through
``escape_odata_string`` first.
"""

import re
from typing import Iterable, Optional

_STRIPPED_CHARS = re.compile(r"[<>{}|\\^~\[\]`]")
_NUMERIC_SUFFIX = re.compile(r"(\d+)$")


def escape_odata_string(value: Optional[str]) -> str:
    """Escape a string for use inside a single-quoted filter literal."""
    if not value:
        return ""
    escaped = value.replace("'", "''")
    escaped = _STRIPPED_CHARS.sub("", escaped)
    return escaped.strip()


def eq(field: str, value: str) -> str:
    """``field eq 'value'`` with the value escaped."""
    return f"{field} eq '{escape_odata_string(value)}'"


def contains(field: str, value: str) -> str:
    """``contains(field,'value')`` with the value escaped."""
    return f"contains({field},'{escape_odata_string(value)}')"


def in_list(field: str, values: Iterable[str]) -> str:
    """``field in ('a','b')`` with every value escaped."""
    quoted = ",".join(f"'{escape_odata_string(v)}'" for v in values)
    return f"{field} in ({quoted})"


def and_(*clauses: Optional[str]) -> str:
    """Join the non-empty clauses with ``and``."""
    return " and ".join(c for c in clauses if c)


def parse_numeric_suffix(name: str) -> Optional[int]:
    """Parse the trailing subject id out of a ``PREFIX_123`` ledger name."""
    match = _NUMERIC_SUFFIX.search(name or "")
    if not match:
        return None
    return int(match.group(1))
