"""Business-day adjustment for income dates (weekends and US federal holidays)"""

from datetime import date, timedelta
from functools import lru_cache
from typing import FrozenSet, List

from dateutil.relativedelta import MO, TH, relativedelta

from paycheck_planner.domain.exceptions import InvalidRecurrenceError
from paycheck_planner.utils.date_utils import days_in_month, inclusive_days

ONE_DAY = timedelta(days=1)

# Longest run of consecutive non-business days (holiday Monday + weekend) plus slack
MAX_ROLLBACK_DAYS = 6


@lru_cache(maxsize=256)
def federal_holidays(year: int) -> FrozenSet[date]:
    """
    The ten fixed-rule US federal holidays for a year.

    Holidays are taken on their rule date; observed-day shifts are not applied.
    """
    return frozenset(
        {
            date(year, 1, 1),  # New Year's Day
            date(year, 1, 1) + relativedelta(weekday=MO(+3)),  # Martin Luther King Jr. Day
            date(year, 2, 1) + relativedelta(weekday=MO(+3)),  # Presidents' Day
            date(year, 5, 31) + relativedelta(weekday=MO(-1)),  # Memorial Day
            date(year, 7, 4),  # Independence Day
            date(year, 9, 1) + relativedelta(weekday=MO(+1)),  # Labor Day
            date(year, 10, 1) + relativedelta(weekday=MO(+2)),  # Columbus Day
            date(year, 11, 11),  # Veterans Day
            date(year, 11, 1) + relativedelta(weekday=TH(+4)),  # Thanksgiving
            date(year, 12, 25),  # Christmas Day
        }
    )


def is_business_day(day: date) -> bool:
    return day.weekday() < 5 and day not in federal_holidays(day.year)


def adjust_to_previous_business_day(day: date) -> date:
    """Roll a date backward one day at a time until it is a business day (idempotent)"""
    while not is_business_day(day):
        day -= ONE_DAY
    return day


def natural_date_candidates(adjusted: date, item_id: str | None = None) -> List[date]:
    """Every date that rolls back to ``adjusted``, earliest first"""
    if not is_business_day(adjusted):
        raise InvalidRecurrenceError(
            f"Adjusted occurrence {adjusted.isoformat()} is not a business day", item_id
        )

    candidates = [adjusted]
    for candidate in inclusive_days(adjusted + ONE_DAY, adjusted + timedelta(days=MAX_ROLLBACK_DAYS)):
        if adjust_to_previous_business_day(candidate) != adjusted:
            break
        candidates.append(candidate)
    return candidates


def recover_natural_date(
    adjusted: date,
    preferred_day: int | None = None,
    item_id: str | None = None,
) -> date:
    """
    Recover the pre-adjustment date behind an adjusted business day.

    Fallback for items that only carry an adjusted date. A candidate falling on
    ``preferred_day`` (clamped to the month length) wins. Without a preferred day the
    roll-back cannot be told apart from a real pay date, so the adjusted date is
    taken as its own natural date.
    """
    candidates = natural_date_candidates(adjusted, item_id)
    if preferred_day is not None:
        for candidate in candidates:
            if candidate.day == min(preferred_day, days_in_month(candidate.year, candidate.month)):
                return candidate
    return candidates[0]
