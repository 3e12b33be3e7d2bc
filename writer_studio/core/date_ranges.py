"""
Date range selectors.

The dashboard asks for data with a selector string (``last7days``,
``lifetime``, ``2025``, ``may``, ``custom``...). Every backend needs a
concrete window instead: the time-series store wants a relative lookback
(``-7d``), the warehouse and the relational store want inclusive start/end
dates. ``resolve_date_range`` is the only place that translation happens.
"""

import calendar
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from writer_studio.core.errors import BadRequestError
from writer_studio.models.dtos import DateRangeDTO

DEFAULT_SELECTOR = "last30days"

# selector -> number of days of lookback
LOOKBACK_DAYS = {
    "last7days": 7,
    "last14days": 14,
    "last28days": 28,
    "last30days": 30,
    "last90days": 90,
    "last365days": 365,
}

# Older dashboard pages send the bare day count.
LEGACY_ALIASES = {
    "7": "last7days",
    "14": "last14days",
    "28": "last28days",
    "30": "last30days",
    "90": "last90days",
    "365": "last365days",
}

MONTH_NAMES = {name.lower(): index for index, name in enumerate(calendar.month_name) if name}
MONTH_ABBREVIATIONS = {name.lower(): index for index, name in enumerate(calendar.month_abbr) if name}

_YEAR_RE = re.compile(r"^\d{4}$")
_YEAR_MONTH_RE = re.compile(r"^(\d{4})-(\d{1,2})$")


@dataclass(frozen=True)
class DateRange:
    """
    A resolved reporting window.

    Attributes:
        selector: The selector this range was resolved from.
        start: First day included, or None for no lower bound.
        end: Last day included.
        lookback: Relative lookback for backends that take one (``"7d"``),
            None when the window is absolute or unbounded.
    """

    selector: str
    start: Optional[date]
    end: date
    lookback: Optional[str] = None

    @property
    def is_unbounded(self) -> bool:
        return self.start is None

    @property
    def days(self) -> Optional[int]:
        if self.start is None:
            return None
        return (self.end - self.start).days + 1

    def contains(self, day: date) -> bool:
        if day > self.end:
            return False
        return self.start is None or day >= self.start

    def to_dto(self) -> DateRangeDTO:
        return DateRangeDTO(selector=self.selector, start_date=self.start, end_date=self.end)


def resolve_date_range(
    selector: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    today: Optional[date] = None,
) -> DateRange:
    """
    Translate a dashboard selector into a concrete window.

    Args:
        selector: One of the ``last*days`` selectors, a legacy day count,
            ``lifetime``, a year (``2024``), a month (``2024-05`` or ``may``
            for the current year) or ``custom``. Defaults to ``last30days``.
        start_date: First day, required for ``custom``.
        end_date: Last day, required for ``custom``.
        today: Reference date, defaults to the current date.

    Returns:
        DateRange: The resolved window; ``end`` never lies after ``today``.

    Raises:
        BadRequestError: If the selector is unknown or the custom window is incomplete or inverted.
    """
    today = today or date.today()
    key = (selector or DEFAULT_SELECTOR).strip().lower()
    key = LEGACY_ALIASES.get(key, key)

    if key in LOOKBACK_DAYS:
        days = LOOKBACK_DAYS[key]
        return DateRange(selector=key, start=today - timedelta(days=days), end=today, lookback=f"{days}d")

    if key == "lifetime":
        return DateRange(selector=key, start=None, end=today, lookback=None)

    if key == "custom":
        if start_date is None or end_date is None:
            raise BadRequestError("Custom range requires start_date and end_date")
        if start_date > end_date:
            raise BadRequestError("start_date must not be after end_date")
        return DateRange(selector=key, start=start_date, end=end_date)

    if _YEAR_RE.match(key):
        year = int(key)
        start = date(year, 1, 1)
        if start > today:
            raise BadRequestError(f"Year {year} is in the future")
        return DateRange(selector=key, start=start, end=min(date(year, 12, 31), today))

    match = _YEAR_MONTH_RE.match(key)
    if match:
        year, month = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12:
            raise BadRequestError(f"Unknown date range: {selector}")
        return _month_range(key, year, month, today)

    month = MONTH_NAMES.get(key) or MONTH_ABBREVIATIONS.get(key)
    if month:
        return _month_range(key, today.year, month, today)

    raise BadRequestError(f"Unknown date range: {selector}")


def _month_range(selector: str, year: int, month: int, today: date) -> DateRange:
    start = date(year, month, 1)
    if start > today:
        raise BadRequestError(f"Month {selector} is in the future")
    last_day = start + relativedelta(months=1) - timedelta(days=1)
    return DateRange(selector=selector, start=start, end=min(last_day, today))
