"""
Calendar Range Builder for Shift Roster

Produces the complete weeks (Sunday to Saturday) overlapping a target month,
so a calendar grid never has partial rows. Months are 0-indexed (0 = January).
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import List
import calendar


@dataclass(frozen=True)
class CalendarDay:
    """One date of the scheduling grid"""
    date: date
    weekday: int  # 0 = Sunday ... 6 = Saturday
    in_target_month: bool

    @property
    def key(self) -> str:
        return format_date_key(self.date)

    @property
    def is_padding(self) -> bool:
        return not self.in_target_month


def format_date_key(day: date) -> str:
    """Format date as YYYY-MM-DD"""
    return day.strftime("%Y-%m-%d")


def sunday_weekday(day: date) -> int:
    """Weekday number with Sunday = 0, Saturday = 6"""
    return (day.weekday() + 1) % 7


def _check_month(month: int):
    if not 0 <= month <= 11:
        raise ValueError(f"Month must be in 0-11, got {month}")


def days_in_month(year: int, month: int) -> int:
    _check_month(month)
    return calendar.monthrange(year, month + 1)[1]


def get_days_in_month(year: int, month: int) -> List[date]:
    """Dates of the target month only"""
    return [date(year, month + 1, day) for day in range(1, days_in_month(year, month) + 1)]


def get_full_weeks_range(year: int, month: int) -> List[CalendarDay]:
    """Dates from the Sunday on/before the 1st through the Saturday on/after the last day"""
    last = date(year, month + 1, days_in_month(year, month))
    first = last.replace(day=1)

    start = first - timedelta(days=sunday_weekday(first))
    end = last + timedelta(days=6 - sunday_weekday(last))

    days = []
    current = start
    while current <= end:
        days.append(CalendarDay(
            date=current,
            weekday=sunday_weekday(current),
            in_target_month=first <= current <= last,
        ))
        current += timedelta(days=1)
    return days
