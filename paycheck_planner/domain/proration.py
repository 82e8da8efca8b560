"""Daily proration of monthly amounts across paycheck periods"""

from datetime import date
from decimal import Decimal
from typing import List

from paycheck_planner.domain.models import MonthSegment, to_cents
from paycheck_planner.utils.date_utils import days_in_month, iter_months, month_end


def days_per_month(period_start: date, period_end: date) -> List[MonthSegment]:
    """Split an inclusive date range into per-calendar-month day counts"""
    segments = []
    for first_of_month in iter_months(period_start, period_end):
        segment_start = max(first_of_month, period_start)
        segment_end = min(month_end(first_of_month), period_end)
        segments.append(
            MonthSegment(
                year=first_of_month.year,
                month=first_of_month.month,
                days=(segment_end - segment_start).days + 1,
            )
        )
    return segments


def prorate_monthly_amount(monthly_amount: Decimal, period_start: date, period_end: date) -> Decimal:
    """
    Day-weighted share of a monthly figure for one period.

    Sum over touched months of (monthly_amount / days_in_month) * days_in_period,
    rounded to cents once at the end. A period covering exactly one full month
    yields the monthly amount itself.
    """
    total = Decimal(0)
    for segment in days_per_month(period_start, period_end):
        daily_rate = Decimal(monthly_amount) / days_in_month(segment.year, segment.month)
        total += daily_rate * segment.days
    return to_cents(total)
