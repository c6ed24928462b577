from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from errors import InvalidInput


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


def _last_day_of_month(year: int, month: int) -> date:
    if month == 12:
        return date(year + 1, 1, 1) - date.resolution
    return date(year, month + 1, 1) - date.resolution


def month_range(month: int, year: int) -> DateRange:
    """Inclusive bounds covering every instant of the given calendar month."""
    if month < 1 or month > 12:
        raise InvalidInput("Month must be between 1 and 12")
    start = datetime.combine(date(year, month, 1), time.min)
    end = datetime.combine(_last_day_of_month(year, month), time.max)
    return DateRange(start, end)


def year_range(year: int) -> DateRange:
    return DateRange(
        datetime.combine(date(year, 1, 1), time.min),
        datetime.combine(date(year, 12, 31), time.max),
    )


def resolve_filter(month: Optional[int], year: Optional[int]) -> Optional[DateRange]:
    """
    Turn optional month/year query values into a date range.

    Both given selects the month, a year alone selects the whole year and
    neither means no date filter. A month without a year is rejected.
    """
    if month is None and year is None:
        return None
    if year is None:
        raise InvalidInput("A month filter requires a year")
    if month is None:
        return year_range(year)
    return month_range(month, year)
