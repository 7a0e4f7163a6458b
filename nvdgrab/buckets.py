"""Calendar-month time buckets.

The NVD API caps a publication-date window at 120 days, so a year range
is fetched one calendar month at a time.
"""

import calendar
import datetime as dt
from dataclasses import dataclass

from .errors import ArgumentError


@dataclass(frozen=True, order=True)
class MonthBucket:
    """One calendar month of publication dates.

    Attributes:
        year: Four-digit year.
        month: Month number, 1–12.
    """

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be in 1..12, got {self.month}")

    @property
    def days(self) -> int:
        """Number of days in the month (leap years respected)."""
        return calendar.monthrange(self.year, self.month)[1]

    @property
    def start(self) -> dt.datetime:
        """First second of the month."""
        return dt.datetime(self.year, self.month, 1, 0, 0, 0)

    @property
    def end(self) -> dt.datetime:
        """Last second of the month."""
        return dt.datetime(self.year, self.month, self.days, 23, 59, 59)

    def __str__(self) -> str:
        return f"{self.year}-{self.month:02d}"


def month_buckets(year_start: int, year_end: int) -> list[MonthBucket]:
    """Enumerate every month from January of ``year_start`` to December of ``year_end``.

    Args:
        year_start: First year (inclusive).
        year_end: Last year (inclusive).

    Returns:
        Buckets in chronological order.

    Raises:
        ArgumentError: If ``year_start`` is after ``year_end`` or either
            year is outside the range ``datetime`` can represent.
    """
    for year in (year_start, year_end):
        if not dt.MINYEAR <= year <= dt.MAXYEAR:
            raise ArgumentError(f"Year {year} is out of range ({dt.MINYEAR}..{dt.MAXYEAR})")
    if year_start > year_end:
        raise ArgumentError(f"Start year {year_start} must be less than or equal to end year {year_end}")
    return [MonthBucket(year, month) for year in range(year_start, year_end + 1) for month in range(1, 13)]
