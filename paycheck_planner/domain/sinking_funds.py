"""Per-paycheck sinking fund contribution targets"""

import math
from datetime import date
from decimal import Decimal
from typing import Iterable, List

from dateutil.relativedelta import relativedelta

from paycheck_planner.domain.models import (
    ZERO,
    PaycheckPeriod,
    SinkingFund,
    SinkingFundLine,
    to_cents,
)

# Paychecks per month for each inferred pay frequency
PAYCHECKS_PER_MONTH = {
    "weekly": Decimal("4.33"),
    "bi-weekly": Decimal("2.17"),
    "monthly": Decimal("1"),
}

# Contributions per month for each fund frequency (used for missed-contribution counts)
CONTRIBUTIONS_PER_MONTH = {
    "weekly": Decimal("4.33"),
    "bi-weekly": Decimal("2.17"),
    "monthly": Decimal("1"),
    "quarterly": Decimal("0.33"),
    "annually": Decimal("0.083"),
}

QUARTER_START_MONTHS = {1, 4, 7, 10}


def infer_pay_frequency(period: PaycheckPeriod) -> str:
    """Classify a period by the gap to the next paycheck (unknown gap: bi-weekly)"""
    if period.next_paycheck_date is None:
        return "bi-weekly"
    gap = (period.next_paycheck_date - period.paycheck_date).days
    if gap <= 8:
        return "weekly"
    if gap <= 16:
        return "bi-weekly"
    return "monthly"


def week_of_month(day: date) -> int:
    return math.ceil(day.day / 7)


def months_between(start: date, end: date) -> int:
    """Whole calendar months from start to end (negative when end is earlier)"""
    delta = relativedelta(end, start)
    return delta.years * 12 + delta.months


def paycheck_contribution(fund: SinkingFund, period: PaycheckPeriod) -> Decimal:
    """
    Amount this paycheck should put toward a fund, capped at what the fund still needs.

    Weekly, bi-weekly and monthly funds spread the monthly contribution over the
    paychecks of a month; quarterly funds take three months' worth on the first
    paycheck of a quarter; annual funds take a year's worth two to three months
    before the expense (or on the first January paycheck when no date is known).
    """
    needed = fund.target_amount - fund.current_amount
    if not fund.is_active or needed <= 0:
        return ZERO

    pay_frequency = infer_pay_frequency(period)
    paycheck_date = period.paycheck_date
    frequency = fund.contribution_frequency
    amount = ZERO

    if frequency == "quarterly":
        if paycheck_date.month in QUARTER_START_MONTHS and paycheck_date.day <= 7:
            amount = fund.monthly_contribution * 3
    elif frequency == "annually":
        if fund.next_expense_date is not None:
            if 2 <= months_between(paycheck_date, fund.next_expense_date) <= 3:
                amount = fund.monthly_contribution * 12
        elif paycheck_date.month == 1 and paycheck_date.day <= 7:
            amount = fund.monthly_contribution * 12
    else:
        # Bi-weekly funds on weekly pay skip every other week
        skip = frequency == "bi-weekly" and pay_frequency == "weekly" and week_of_month(paycheck_date) % 2 == 0
        if not skip:
            amount = fund.monthly_contribution / PAYCHECKS_PER_MONTH[pay_frequency]

    return min(to_cents(amount), to_cents(needed))


def missed_contributions(fund: SinkingFund, as_of: date) -> int:
    """Contributions expected since creation that the current balance does not account for"""
    per_month = CONTRIBUTIONS_PER_MONTH.get(fund.contribution_frequency, Decimal(1))
    expected = math.floor(months_between(fund.creation_date, as_of) * per_month)
    per_contribution = fund.monthly_contribution if fund.monthly_contribution > 0 else Decimal(1)
    made = math.floor(fund.current_amount / per_contribution)
    return max(0, expected - made)


def _is_urgent(fund: SinkingFund, as_of: date, urgent_months: int) -> bool:
    if fund.next_expense_date is None:
        return False
    return fund.next_expense_date <= as_of + relativedelta(months=urgent_months)


def plan_contributions(
    funds: Iterable[SinkingFund],
    period: PaycheckPeriod,
    as_of: date,
    strategy: str = "proportional",
    urgent_months: int = 6,
) -> List[SinkingFundLine]:
    """
    Requested contribution line per active fund, ordered by the chosen strategy.

    Strategies:
    - proportional: largest target first
    - deadline-priority: urgent funds first, then earliest expense date
    - frequency-based: funds matching the pay frequency first, then most missed contributions

    Lines carry the requested amount; the allocation engine caps them to the pool.
    """
    active = [fund for fund in funds if fund.is_active]
    pay_frequency = infer_pay_frequency(period)

    if strategy == "deadline-priority":
        active.sort(
            key=lambda f: (
                not _is_urgent(f, as_of, urgent_months),
                f.next_expense_date is None,
                f.next_expense_date or date.max,
            )
        )
    elif strategy == "frequency-based":
        active.sort(
            key=lambda f: (
                f.contribution_frequency != pay_frequency,
                -missed_contributions(f, as_of),
            )
        )
    else:
        active.sort(key=lambda f: f.target_amount, reverse=True)

    return [
        SinkingFundLine(
            id=fund.id,
            name=fund.name,
            suggested_amount=paycheck_contribution(fund, period),
            contribution_frequency=fund.contribution_frequency,
            target_amount=fund.target_amount,
            current_amount=fund.current_amount,
            is_urgent=_is_urgent(fund, as_of, urgent_months),
            next_expense_date=fund.next_expense_date,
        )
        for fund in active
    ]
