"""Date manipulation utilities"""

import calendar
from datetime import date, timedelta
from typing import List

from dateutil.relativedelta import relativedelta


def inclusive_days(start: date, end: date) -> List[date]:
    """Every day in [start, end]; empty when end precedes start"""
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


def days_in_month(year: int, month: int) -> int:
    """Number of days in the given calendar month"""
    return calendar.monthrange(year, month)[1]


def month_start(day: date) -> date:
    return day.replace(day=1)


def month_end(day: date) -> date:
    return day.replace(day=days_in_month(day.year, day.month))


def clamp_day(year: int, month: int, day_of_month: int) -> date:
    """Build a date, clamping the day to the last real day of the month (Feb 30 -> Feb 28/29)"""
    return date(year, month, min(day_of_month, days_in_month(year, month)))


def iter_months(start: date, end: date) -> List[date]:
    """First day of every calendar month touched by [start, end]"""
    months = []
    current = month_start(start)
    last = month_start(end)
    while current <= last:
        months.append(current)
        if current == last:
            break
        current += relativedelta(months=1)
    return months


def overlaps(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """True when two inclusive date ranges share at least one day"""
    return start_a <= end_b and start_b <= end_a
