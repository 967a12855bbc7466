# kpi_portal/brand_kpi_reporting/periods.py
"""
Period keys and elapsed-window helpers.

A reporting cell is identified by (brand_id, kpi_id, year, month[, day]).
user_id is never part of the key: several users may hold a row for the
same cell and reconciliation picks one of them.
"""

import calendar
from dataclasses import dataclass
from datetime import date
from typing import Dict, Optional, Tuple

from .exceptions import ValidationError


def _check_month(month: int) -> None:
    if not 1 <= int(month) <= 12:
        raise ValidationError(f"month must be between 1 and 12, got {month}")


def _check_day(day: int) -> None:
    if not 1 <= int(day) <= 31:
        raise ValidationError(f"day must be between 1 and 31, got {day}")


@dataclass(frozen=True)
class PeriodKey:
    """One reporting cell."""

    brand_id: str
    kpi_id: str
    year: int
    month: int
    day: Optional[int] = None

    def __post_init__(self):
        _check_month(self.month)
        if self.day is not None:
            _check_day(self.day)

    @property
    def is_daily(self) -> bool:
        return self.day is not None

    def as_filter(self) -> Dict[str, object]:
        """Store filter matching every user's row for this cell."""
        match = {
            'brand_id': self.brand_id,
            'kpi_id': self.kpi_id,
            'year': self.year,
            'month': self.month,
        }
        if self.day is not None:
            match['day'] = self.day
        return match

    def period(self) -> Tuple[int, int, Optional[int]]:
        return (self.year, self.month, self.day)


@dataclass(frozen=True)
class PeriodRange:
    """Batch filter: a whole year, one month, or one day."""

    year: int
    month: Optional[int] = None
    day: Optional[int] = None

    def __post_init__(self):
        if self.day is not None and self.month is None:
            raise ValidationError("day filter requires a month")
        if self.month is not None:
            _check_month(self.month)
        if self.day is not None:
            _check_day(self.day)

    def as_filter(self) -> Dict[str, object]:
        match: Dict[str, object] = {'year': self.year}
        if self.month is not None:
            match['month'] = self.month
        if self.day is not None:
            match['day'] = self.day
        return match


@dataclass(frozen=True)
class Period:
    """The period part of a cell, used by the resolvers."""

    year: int
    month: int
    day: Optional[int] = None

    def __post_init__(self):
        _check_month(self.month)
        if self.day is not None:
            _check_day(self.day)


def elapsed_month_boundary(year: int, as_of: date) -> int:
    """
    Last month of `year` that counts towards YTD.

    Returns:
        12 for past years, the current month for the current year,
        0 for future years
    """
    if year < as_of.year:
        return 12
    if year == as_of.year:
        return as_of.month
    return 0


def elapsed_day_boundary(year: int, month: int, as_of: date) -> int:
    """Last day of (year, month) that counts towards month-to-date."""
    _check_month(month)
    if (year, month) < (as_of.year, as_of.month):
        return calendar.monthrange(year, month)[1]
    if (year, month) == (as_of.year, as_of.month):
        return as_of.day
    return 0


def analyze_period(year: int, month: int, as_of: date) -> Dict:
    """
    Describe the selected (year, month) relative to `as_of`.

    Returns:
        Dictionary with:
        - is_historical / is_current / is_future
        - elapsed_months: months counted by YTD for this year
        - days_in_month: calendar length of the selected month
        - elapsed_days: days counted by month-to-date
    """
    _check_month(month)
    is_historical = (year, month) < (as_of.year, as_of.month)
    is_future = (year, month) > (as_of.year, as_of.month)

    return {
        'is_historical': is_historical,
        'is_current': not is_historical and not is_future,
        'is_future': is_future,
        'elapsed_months': elapsed_month_boundary(year, as_of),
        'days_in_month': calendar.monthrange(year, month)[1],
        'elapsed_days': elapsed_day_boundary(year, month, as_of),
    }
