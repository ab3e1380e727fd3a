"""Time helpers.

Keep all timestamps consistent and timezone-aware.
Python 3.13 deprecates naive UTC helpers like datetime.utcnow(); use this module instead.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timezone

_YEAR_RE = re.compile(r"^\d{4}$")
_YEAR_MONTH_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


def utcnow() -> datetime:
    """Return the current time as a timezone-aware datetime in UTC (+00:00)."""

    return datetime.now(timezone.utc)


def parse_ymd_date(date_str: str) -> date:
    """Parse a YYYY-MM-DD string into a `datetime.date`.

    Raises:
        ValueError: if `date_str` is not a valid YYYY-MM-DD date.
    """

    return date.fromisoformat(date_str)


def parse_partial_date(value: str | None, *, end: bool = False) -> date | None:
    """Parse YYYY, YYYY-MM or YYYY-MM-DD into a date bound.

    Partial values expand to the start of the period, or to its last day when
    `end` is true ('2023' -> 2023-12-31, '2024-02' -> 2024-02-29).

    Returns None for blank input.

    Raises:
        ValueError: for anything else.
    """

    raw = (value or "").strip()
    if not raw:
        return None

    if _YEAR_RE.match(raw):
        year = int(raw)
        return date(year, 12, 31) if end else date(year, 1, 1)

    m = _YEAR_MONTH_RE.match(raw)
    if m:
        year, month = int(m.group(1)), int(m.group(2))
        day = calendar.monthrange(year, month)[1] if end else 1
        return date(year, month, day)

    return parse_ymd_date(raw)
